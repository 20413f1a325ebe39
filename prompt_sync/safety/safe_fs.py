"""Safety-checked filesystem primitives used by the reconciliation engine.

Nothing here decides *whether* to touch a file; callers do that. These
helpers make sure that when a file is touched it is a regular file, lives on
the right filesystem, and (when a backup directory is configured) is preserved
with a hash sidecar before it is displaced.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import stat
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from prompt_sync.errors import (
    CrossDeviceLinkError,
    DirectoryTargetError,
    InsufficientSpaceError,
    NotRegularFileError,
    SafeFsError,
)

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"
HASH_SUFFIX = ".sha256"
HASH_ALGORITHM = "sha256"
DEFAULT_MAX_VERSIONS = 100

_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class BackupOutcome:
    """Where a displaced target was preserved, if anywhere."""

    backup_path: Path | None = None

    @classmethod
    def none(cls) -> BackupOutcome:
        return cls(backup_path=None)


# --- Linking ---


def ensure_parent_dir(path: Path) -> None:
    parent = path.parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise SafeFsError(f"failed to create parent directories {parent}: {e}") from e


def create_hard_link_checked(source: Path, target: Path) -> None:
    """Hardlink ``target`` to ``source`` after re-checking the source on disk."""
    try:
        source_stat = os.lstat(source)
    except OSError as e:
        raise SafeFsError(f"failed to inspect source {source}: {e}") from e

    if not stat.S_ISREG(source_stat.st_mode):
        raise NotRegularFileError(f"source is not a regular file: {source}")

    check_same_filesystem(source_stat, target)

    try:
        os.link(source, target)
    except OSError as e:
        raise SafeFsError(f"failed to create hardlink {target} -> {source}: {e}") from e
    logger.debug("linked %s -> %s", target, source)


def check_same_filesystem(source_stat: os.stat_result, target: Path) -> None:
    """Hardlinks cannot cross devices; compare the source with the target's parent."""
    target_parent = target.parent
    try:
        parent_stat = os.stat(target_parent)
    except OSError as e:
        raise SafeFsError(
            f"failed to inspect target parent directory {target_parent}: {e}"
        ) from e

    if source_stat.st_dev != parent_stat.st_dev:
        raise CrossDeviceLinkError(
            "hardlink across filesystems is not supported: "
            f"source={source_stat.st_dev} target_parent={parent_stat.st_dev}"
        )


# --- Hashing ---


def calculate_sha256(path: Path) -> str:
    hasher = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            while chunk := f.read(_CHUNK_SIZE):
                hasher.update(chunk)
    except OSError as e:
        raise SafeFsError(f"failed to read file for hashing {path}: {e}") from e
    return hasher.hexdigest()


def hash_sidecar_path(backup_path: Path) -> Path:
    return backup_path.with_name(backup_path.name + HASH_SUFFIX)


def save_hash_metadata(backup_path: Path, digest: str, file_size: int) -> Path:
    """Write the ``key=value`` sidecar next to a backup file."""
    sidecar = hash_sidecar_path(backup_path)
    body = (
        f"algorithm={HASH_ALGORITHM}\n"
        f"hash={digest}\n"
        f"size={file_size}\n"
        f"timestamp={datetime.now(timezone.utc).isoformat()}\n"
    )
    try:
        sidecar.write_text(body, encoding="utf-8")
    except OSError as e:
        raise SafeFsError(f"failed to write hash metadata to {sidecar}: {e}") from e
    return sidecar


def read_hash_metadata(sidecar: Path) -> dict[str, str]:
    """Parse a sidecar file back into a dict."""
    values = {}
    for line in sidecar.read_text(encoding="utf-8").splitlines():
        key, sep, value = line.partition("=")
        if sep:
            values[key.strip()] = value.strip()
    return values


# --- Disk space ---


def check_disk_space(path: Path, required_bytes: int) -> None:
    """Fail fast if the filesystem holding ``path`` has less than ``required_bytes`` free.

    ``path`` may not exist yet; its nearest existing ancestor is measured.
    """
    probe = path
    while not probe.exists() and probe.parent != probe:
        probe = probe.parent

    try:
        available = shutil.disk_usage(probe).free
    except OSError as e:
        raise SafeFsError(f"failed to check disk space for {probe}: {e}") from e

    if available < required_bytes:
        raise InsufficientSpaceError(required_bytes, available)


# --- Displacing targets ---


def remove_existing_target_file(target: Path, backup_dir: Path | None) -> BackupOutcome:
    """Delete ``target``, or move it into ``backup_dir`` when one is configured.

    Directories are never removed. A target that has already vanished is not
    an error.
    """
    try:
        target_stat = os.lstat(target)
    except FileNotFoundError:
        return BackupOutcome.none()
    except OSError as e:
        raise SafeFsError(f"failed to inspect existing target {target}: {e}") from e

    if stat.S_ISDIR(target_stat.st_mode):
        raise DirectoryTargetError(f"target is a directory; refusing to replace: {target}")

    if backup_dir is not None:
        return backup_target_file(target, backup_dir, target_stat.st_size)

    try:
        os.unlink(target)
    except OSError as e:
        raise SafeFsError(f"failed to remove existing target {target}: {e}") from e
    return BackupOutcome.none()


def backup_target_file(target: Path, backup_dir: Path, file_size: int) -> BackupOutcome:
    check_disk_space(backup_dir, file_size)

    try:
        backup_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise SafeFsError(f"failed to create backup directory {backup_dir}: {e}") from e

    backup_path = build_backup_path(backup_dir, target)

    try:
        os.rename(target, backup_path)
    except OSError:
        # Typically EXDEV: the backup directory is on another filesystem
        logger.debug("rename into backup failed, copying instead: %s", target)
        try:
            shutil.copy2(target, backup_path, follow_symlinks=False)
        except OSError as e:
            raise SafeFsError(f"failed to copy target to backup {backup_path}: {e}") from e
        try:
            os.unlink(target)
        except OSError as e:
            raise SafeFsError(f"failed to remove existing target {target}: {e}") from e

    # Rename and copy2 both keep the target's mtime; retention needs the backup time
    try:
        os.utime(backup_path)
    except OSError as e:
        logger.warning("failed to stamp backup time on %s: %s", backup_path, e)

    return finalize_backup(backup_dir, backup_path, file_size)


def build_backup_path(backup_dir: Path, target: Path) -> Path:
    """``<unix-seconds>-<name>.bak``, with a counter if that name is taken."""
    stamp = int(time.time())
    name = target.name or "target"
    candidate = backup_dir / f"{stamp}-{name}{BACKUP_SUFFIX}"
    i = 1
    while os.path.lexists(candidate):
        candidate = backup_dir / f"{stamp}-{name}-{i}{BACKUP_SUFFIX}"
        i += 1
    return candidate


def finalize_backup(backup_dir: Path, backup_path: Path, file_size: int) -> BackupOutcome:
    """Write the hash sidecar and prune old versions. Neither step can fail the backup."""
    try:
        save_hash_metadata(backup_path, calculate_sha256(backup_path), file_size)
    except SafeFsError as e:
        logger.warning("backup kept without hash metadata: %s", e)

    try:
        cleanup_old_backups(backup_dir, DEFAULT_MAX_VERSIONS)
    except SafeFsError as e:
        logger.warning("backup retention skipped: %s", e)

    return BackupOutcome(backup_path=backup_path)


# --- Retention ---


def cleanup_old_backups(backup_dir: Path, max_versions: int = DEFAULT_MAX_VERSIONS) -> list[Path]:
    """Delete the oldest ``*.bak`` files beyond ``max_versions``, with their sidecars.

    Returns the backup files that were removed. Individual deletions are
    best-effort.
    """
    if not backup_dir.exists():
        return []

    backups: list[tuple[int, Path]] = []
    try:
        entries = list(backup_dir.iterdir())
    except OSError as e:
        raise SafeFsError(f"failed to read backup directory {backup_dir}: {e}") from e

    for path in entries:
        if path.suffix != BACKUP_SUFFIX:
            continue
        try:
            backups.append((path.stat().st_mtime_ns, path))
        except OSError:
            continue

    if len(backups) <= max_versions:
        return []

    # Collision counters only lengthen a name, so equal mtimes order by creation
    backups.sort(key=lambda item: (item[0], len(item[1].name), item[1].name))
    removed = []
    for _, path in backups[: len(backups) - max_versions]:
        try:
            path.unlink()
        except OSError as e:
            logger.warning("failed to remove old backup %s: %s", path, e)
            continue
        removed.append(path)
        try:
            hash_sidecar_path(path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("failed to remove hash sidecar for %s: %s", path, e)
    logger.debug("pruned %d old backups from %s", len(removed), backup_dir)
    return removed
