"""JSON audit trail of replace operations.

When a backup directory is configured, every attempted replacement (successful
or not) is appended to ``.operations.log`` inside it. The file is a single
pretty-printed JSON array. Once it grows past ``LOG_SIZE_LIMIT`` it is rotated
to ``.operations.log.1`` and a fresh array is started.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

LOG_FILE_NAME = ".operations.log"
ROTATED_SUFFIX = ".1"
LOG_SIZE_LIMIT = 1024 * 1024  # 1 MiB


class Action(Enum):
    REPLACE = "replace"
    BACKUP = "backup"


@dataclass
class LogEntry:
    """A single operation log entry."""

    timestamp: str
    action: str
    source: str
    target: str
    status: str  # success | failed
    error: str | None = None
    hash_before: str | None = None
    backup_location: str | None = None

    @classmethod
    def create(
        cls,
        action: Action,
        source: Path,
        target: Path,
        status: str,
        error: str | None = None,
        hash_before: str | None = None,
        backup_location: Path | None = None,
    ) -> LogEntry:
        return cls(
            timestamp=datetime.now(timezone.utc).isoformat(),
            action=action.value,
            source=str(source),
            target=str(target),
            status=status,
            error=error,
            hash_before=hash_before,
            backup_location=str(backup_location) if backup_location else None,
        )


class OperationLog:
    """Read-modify-write JSON array log with size-based rotation.

    Not safe for concurrent writers: each append rewrites the whole array.
    """

    def __init__(self, backup_dir: Path) -> None:
        self.backup_dir = Path(backup_dir)
        self.log_path = self.backup_dir / LOG_FILE_NAME
        self.rotated_path = self.backup_dir / (LOG_FILE_NAME + ROTATED_SUFFIX)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _needs_rotation(self) -> bool:
        try:
            return self.log_path.stat().st_size > LOG_SIZE_LIMIT
        except OSError:
            return False

    def _rotate(self) -> None:
        if self.rotated_path.exists():
            self.rotated_path.unlink()
        if self.log_path.exists():
            self.log_path.rename(self.rotated_path)

    def _load(self) -> list[Any]:
        """Existing entries; a missing or corrupt log restarts as an empty array."""
        try:
            data = json.loads(self.log_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return []
        return data if isinstance(data, list) else []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def record(self, entry: LogEntry) -> None:
        """Append one entry. Raises ``OSError`` if the log cannot be written."""
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        if self._needs_rotation():
            self._rotate()

        entries = self._load()
        entries.append(asdict(entry))
        self.log_path.write_text(json.dumps(entries, indent=2), encoding="utf-8")

    def read_entries(self) -> list[LogEntry]:
        """Return the entries of the current (unrotated) log, oldest first."""
        return [LogEntry(**item) for item in self._load() if isinstance(item, dict)]
