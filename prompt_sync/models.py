"""Core data models for prompt-sync.

A run turns configuration into ``Mapping`` values, processes each one into a
``Record``, and tallies the records into a ``Summary`` wrapped by a ``Report``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class MappingKind(Enum):
    """Where a mapping came from."""

    CONFIG_FILE = "config_file"  # Declared in a [[links]] rule
    SKILL_FILE = "skill_file"  # Discovered under a [[skills_sets]] source root


class Status(Enum):
    """Outcome of classifying or acting on one mapping."""

    OK = "OK"
    MISSING = "MISSING"
    BROKEN = "BROKEN"
    CONFLICT = "CONFLICT"
    CREATED = "CREATED"
    REPLACED = "REPLACED"
    WOULD_CREATE = "WOULD_CREATE"
    WOULD_REPLACE = "WOULD_REPLACE"
    SKIPPED = "SKIPPED"
    ERROR = "ERROR"

    def is_classification(self) -> bool:
        """True for values the classifier may return."""
        return self in CLASSIFICATION_STATUSES


CLASSIFICATION_STATUSES = frozenset(
    {Status.OK, Status.MISSING, Status.BROKEN, Status.CONFLICT, Status.ERROR}
)

INCONSISTENT_STATUSES = frozenset({Status.MISSING, Status.BROKEN, Status.CONFLICT})


@dataclass(frozen=True)
class Mapping:
    """One source file that must be hardlinked at one target path."""

    kind: MappingKind
    source: Path
    target: Path


@dataclass(frozen=True)
class Record:
    """Result of processing one mapping."""

    kind: MappingKind
    source: Path
    target: Path
    status: Status
    message: str | None = None

    @classmethod
    def for_mapping(
        cls, mapping: Mapping, status: Status, message: str | None = None
    ) -> Record:
        return cls(
            kind=mapping.kind,
            source=mapping.source,
            target=mapping.target,
            status=status,
            message=message,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "source": str(self.source),
            "target": str(self.target),
            "status": self.status.value,
        }
        if self.message is not None:
            data["message"] = self.message
        return data


@dataclass
class Summary:
    """Per-status counts for one run."""

    total: int = 0
    ok: int = 0
    missing: int = 0
    broken: int = 0
    conflict: int = 0
    created: int = 0
    replaced: int = 0
    would_create: int = 0
    would_replace: int = 0
    skipped: int = 0
    errors: int = 0

    @classmethod
    def from_records(cls, records: list[Record]) -> Summary:
        summary = cls(total=len(records))
        for record in records:
            name = _SUMMARY_FIELDS[record.status]
            setattr(summary, name, getattr(summary, name) + 1)
        return summary

    def has_inconsistency(self) -> bool:
        return self.missing > 0 or self.broken > 0 or self.conflict > 0

    def has_error(self) -> bool:
        return self.errors > 0

    def exit_code(self, include_inconsistency: bool) -> int:
        """Process exit code: 2 on any error, 1 on inconsistency (if counted), else 0."""
        if self.has_error():
            return 2
        if include_inconsistency and self.has_inconsistency():
            return 1
        return 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "ok": self.ok,
            "missing": self.missing,
            "broken": self.broken,
            "conflict": self.conflict,
            "created": self.created,
            "replaced": self.replaced,
            "would_create": self.would_create,
            "would_replace": self.would_replace,
            "skipped": self.skipped,
            "errors": self.errors,
        }


_SUMMARY_FIELDS = {
    Status.OK: "ok",
    Status.MISSING: "missing",
    Status.BROKEN: "broken",
    Status.CONFLICT: "conflict",
    Status.CREATED: "created",
    Status.REPLACED: "replaced",
    Status.WOULD_CREATE: "would_create",
    Status.WOULD_REPLACE: "would_replace",
    Status.SKIPPED: "skipped",
    Status.ERROR: "errors",
}


@dataclass
class Report:
    """Everything a caller needs to render the result of one command."""

    command: str
    records: list[Record] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)

    @classmethod
    def build(cls, command: str, records: list[Record]) -> Report:
        return cls(command=command, records=records, summary=Summary.from_records(records))

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "summary": self.summary.to_dict(),
            "records": [r.to_dict() for r in self.records],
        }


@dataclass(frozen=True)
class ResolveContext:
    """Values substituted into path templates."""

    config_dir: Path
    repo_root: Path
    home_dir: Path | None = None
