"""Exception types raised by prompt-sync.

Configuration errors abort a run before any mapping is processed. Filesystem
refusals (``SafeFsError``) are raised by the safety layer and converted into
ERROR records by the engine, so they never abort a run on their own.
"""

from __future__ import annotations


class PromptSyncError(Exception):
    """Base class for all prompt-sync errors."""


class ConfigError(PromptSyncError, ValueError):
    """The configuration (or a path it declares) cannot be used."""


class SafeFsError(PromptSyncError):
    """A safety-checked filesystem operation refused to proceed."""


class NotRegularFileError(SafeFsError):
    """The path exists but is not a regular file."""


class DirectoryTargetError(SafeFsError):
    """The target is a directory and will not be replaced."""


class CrossDeviceLinkError(SafeFsError):
    """Source and target live on different filesystems."""


class InsufficientSpaceError(SafeFsError):
    """The backup filesystem cannot hold a copy of the target."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"insufficient disk space: required={required} bytes, "
            f"available={available} bytes"
        )
