"""Classification: the read-only status of one mapping on disk.

Rules are checked in order and the first match wins:

1. source metadata unreadable          -> ERROR
2. target does not exist                -> MISSING
3. target metadata unreadable           -> ERROR
4. source not a regular file            -> ERROR
5. target not a regular file            -> CONFLICT
6. source and target are the same file  -> OK
7. target has other hardlinks           -> BROKEN
8. otherwise                            -> CONFLICT

Neither endpoint's symlinks are followed.
"""

from __future__ import annotations

import os
import stat

from prompt_sync.engine.identity import DEFAULT_IDENTITY, FileIdentity
from prompt_sync.models import Mapping, Record, Status


def classify(mapping: Mapping, identity: FileIdentity | None = None) -> Record:
    """Inspect ``mapping`` and return its status. Never modifies the filesystem."""
    identity = identity or DEFAULT_IDENTITY

    try:
        source_stat = os.lstat(mapping.source)
    except OSError as e:
        return Record.for_mapping(
            mapping, Status.ERROR, f"source metadata error {mapping.source}: {e}"
        )

    try:
        target_stat = os.lstat(mapping.target)
    except FileNotFoundError:
        return Record.for_mapping(mapping, Status.MISSING, "target missing")
    except OSError as e:
        return Record.for_mapping(
            mapping, Status.ERROR, f"target metadata error {mapping.target}: {e}"
        )

    if not stat.S_ISREG(source_stat.st_mode):
        return Record.for_mapping(mapping, Status.ERROR, "source is not a regular file")

    if not stat.S_ISREG(target_stat.st_mode):
        return Record.for_mapping(
            mapping, Status.CONFLICT, "target exists but is not a regular file"
        )

    if identity.same_file(mapping.source, source_stat, mapping.target, target_stat):
        return Record.for_mapping(mapping, Status.OK, "inode match")

    if identity.link_count(target_stat) > 1:
        return Record.for_mapping(
            mapping, Status.BROKEN, "target is hardlinked to a different source"
        )

    return Record.for_mapping(mapping, Status.CONFLICT, "target differs and is not linked")
