"""Decision table: what to do with a classified mapping.

``decide`` is pure: it looks only at the status and the flags, so every
combination can be tested without a filesystem.

| status   | link                                   | repair                          |
|----------|----------------------------------------|---------------------------------|
| OK       | skip ("already linked")                | skip ("already healthy")        |
| MISSING  | create                                 | create                          |
| BROKEN   | only-missing: skip; !force: fail;      | replace                         |
|          | else replace                           |                                 |
| CONFLICT | only-missing: skip; !force: fail;      | force: replace; else skip       |
|          | else replace                           |                                 |
| ERROR    | pass through                           | pass through                    |

``repair`` replaces BROKEN targets without ``--force``. Independent files
(CONFLICT) are only ever replaced with ``--force``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from prompt_sync.models import Status


class Command(Enum):
    LINK = "link"
    REPAIR = "repair"


class Action(Enum):
    """What the engine should do next."""

    SKIP = "skip"  # Report SKIPPED, touch nothing
    CREATE = "create"  # Target is absent; link it
    REPLACE = "replace"  # Target exists; displace it, then link
    FAIL = "fail"  # Report ERROR, touch nothing
    PASS_THROUGH = "pass_through"  # Keep the classification record as-is


@dataclass(frozen=True)
class Decision:
    action: Action
    message: str | None = None


def decide(
    status: Status,
    command: Command,
    force: bool = False,
    only_missing: bool = False,
) -> Decision:
    if status is Status.ERROR:
        return Decision(Action.PASS_THROUGH)

    if status is Status.OK:
        message = "already linked" if command is Command.LINK else "already healthy"
        return Decision(Action.SKIP, message)

    if status is Status.MISSING:
        return Decision(Action.CREATE)

    if command is Command.LINK and status in (Status.BROKEN, Status.CONFLICT):
        if only_missing:
            return Decision(Action.SKIP, "skipped by --only-missing")
        if not force:
            return Decision(Action.FAIL, "target exists and differs (use --force)")
        return Decision(Action.REPLACE)

    if command is Command.REPAIR and status is Status.BROKEN:
        return Decision(Action.REPLACE)

    if command is Command.REPAIR and status is Status.CONFLICT:
        if force:
            return Decision(Action.REPLACE)
        return Decision(Action.SKIP, "conflict skipped (use --force to override)")

    return Decision(Action.FAIL, "unexpected state")
