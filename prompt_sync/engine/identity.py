"""Decide whether two paths are the same file on disk.

POSIX exposes device and inode numbers, which make the answer exact. Where
those are not meaningful a content comparison is the best available stand-in.
The rest of the engine only talks to ``FileIdentity``.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path

from prompt_sync.errors import SafeFsError
from prompt_sync.safety.safe_fs import calculate_sha256


class FileIdentity(ABC):
    """Compares the on-disk identity of two already-inspected paths."""

    @abstractmethod
    def same_file(
        self,
        source: Path,
        source_stat: os.stat_result,
        target: Path,
        target_stat: os.stat_result,
    ) -> bool:
        ...

    @abstractmethod
    def link_count(self, st: os.stat_result) -> int:
        ...


class InodeIdentity(FileIdentity):
    """Same device and inode means same file."""

    def same_file(self, source, source_stat, target, target_stat) -> bool:
        return (
            source_stat.st_ino == target_stat.st_ino
            and source_stat.st_dev == target_stat.st_dev
        )

    def link_count(self, st: os.stat_result) -> int:
        return st.st_nlink


class ContentIdentity(FileIdentity):
    """Equal size and equal SHA-256 digest means same file.

    Link counts are not trusted here, so every file reports a count of one.
    """

    def same_file(self, source, source_stat, target, target_stat) -> bool:
        if source_stat.st_size != target_stat.st_size:
            return False
        try:
            return calculate_sha256(source) == calculate_sha256(target)
        except SafeFsError:
            return False

    def link_count(self, st: os.stat_result) -> int:
        return 1


def default_identity() -> FileIdentity:
    return InodeIdentity() if os.name == "posix" else ContentIdentity()


DEFAULT_IDENTITY = default_identity()
