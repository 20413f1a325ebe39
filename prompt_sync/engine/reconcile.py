"""Classify a mapping, pick an action, and carry it out.

Every call produces exactly one ``Record``. Filesystem failures become ERROR
records and are never retried; the caller moves on to the next mapping.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from prompt_sync.engine.classifier import classify
from prompt_sync.engine.decisions import Action, Command, decide
from prompt_sync.engine.identity import FileIdentity
from prompt_sync.errors import SafeFsError
from prompt_sync.models import Mapping, Record, Status
from prompt_sync.safety import operation_log
from prompt_sync.safety.operation_log import LogEntry, OperationLog
from prompt_sync.safety.safe_fs import (
    calculate_sha256,
    create_hard_link_checked,
    ensure_parent_dir,
    remove_existing_target_file,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplyOptions:
    """Flags shared by ``link``, ``repair`` and ``bootstrap``."""

    force: bool = False
    only_missing: bool = False
    dry_run: bool = False
    backup_dir: Path | None = None


def apply(
    mapping: Mapping,
    command: Command,
    options: ApplyOptions,
    identity: FileIdentity | None = None,
) -> Record:
    current = classify(mapping, identity)
    decision = decide(current.status, command, options.force, options.only_missing)
    logger.debug(
        "%s %s: %s -> %s",
        command.value,
        mapping.target,
        current.status.value,
        decision.action.value,
    )

    if decision.action is Action.PASS_THROUGH:
        return current
    if decision.action is Action.SKIP:
        return Record.for_mapping(mapping, Status.SKIPPED, decision.message)
    if decision.action is Action.FAIL:
        return Record.for_mapping(mapping, Status.ERROR, decision.message)
    if decision.action is Action.CREATE:
        return create_link(mapping, options.dry_run)
    return replace_link(mapping, options.dry_run, options.backup_dir)


def apply_link(
    mapping: Mapping,
    force: bool = False,
    only_missing: bool = False,
    dry_run: bool = False,
    backup_dir: Path | None = None,
) -> Record:
    options = ApplyOptions(
        force=force, only_missing=only_missing, dry_run=dry_run, backup_dir=backup_dir
    )
    return apply(mapping, Command.LINK, options)


def apply_repair(
    mapping: Mapping,
    force: bool = False,
    dry_run: bool = False,
    backup_dir: Path | None = None,
) -> Record:
    options = ApplyOptions(force=force, dry_run=dry_run, backup_dir=backup_dir)
    return apply(mapping, Command.REPAIR, options)


# --- Actions ---


def create_link(mapping: Mapping, dry_run: bool) -> Record:
    """Link a target that does not exist yet."""
    if dry_run:
        return Record.for_mapping(mapping, Status.WOULD_CREATE, "would create hardlink")

    try:
        ensure_parent_dir(mapping.target)
        create_hard_link_checked(mapping.source, mapping.target)
    except (SafeFsError, OSError) as e:
        return Record.for_mapping(mapping, Status.ERROR, str(e))

    return Record.for_mapping(mapping, Status.CREATED, "created hardlink")


def replace_link(mapping: Mapping, dry_run: bool, backup_dir: Path | None) -> Record:
    """Displace an existing target (optionally into ``backup_dir``) and link it.

    With a backup directory, every attempt is written to the operation log,
    including the hash and backup location captured before any failure.
    """
    if dry_run:
        return Record.for_mapping(
            mapping, Status.WOULD_REPLACE, "would replace target with hardlink"
        )

    hash_before = None
    backup_location = None
    try:
        ensure_parent_dir(mapping.target)
        if backup_dir is not None:
            hash_before = _hash_or_none(mapping.target)
        outcome = remove_existing_target_file(mapping.target, backup_dir)
        backup_location = outcome.backup_path
        create_hard_link_checked(mapping.source, mapping.target)
    except (SafeFsError, OSError) as e:
        _log_replace(
            backup_dir, mapping, "failed",
            error=str(e), hash_before=hash_before, backup_location=backup_location,
        )
        return Record.for_mapping(mapping, Status.ERROR, str(e))

    _log_replace(
        backup_dir, mapping, "success",
        hash_before=hash_before, backup_location=backup_location,
    )
    return Record.for_mapping(mapping, Status.REPLACED, "replaced target with hardlink")


def _hash_or_none(path: Path) -> str | None:
    try:
        return calculate_sha256(path)
    except SafeFsError:
        return None


def _log_replace(
    backup_dir: Path | None,
    mapping: Mapping,
    status: str,
    error: str | None = None,
    hash_before: str | None = None,
    backup_location: Path | None = None,
) -> None:
    """Best-effort: a failing log write never changes the mapping's outcome."""
    if backup_dir is None:
        return
    entry = LogEntry.create(
        action=operation_log.Action.REPLACE,
        source=mapping.source,
        target=mapping.target,
        status=status,
        error=error,
        hash_before=hash_before,
        backup_location=backup_location,
    )
    try:
        OperationLog(backup_dir).record(entry)
    except (OSError, ValueError) as e:
        logger.warning("failed to write operation log in %s: %s", backup_dir, e)
