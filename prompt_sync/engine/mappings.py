"""Turn config rules into concrete (source, target) pairs."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from prompt_sync.config import ConfigFile
from prompt_sync.errors import ConfigError
from prompt_sync.models import Mapping, MappingKind, ResolveContext
from prompt_sync.pathing import resolve_path

logger = logging.getLogger(__name__)


def build_mappings(config: ConfigFile, ctx: ResolveContext) -> list[Mapping]:
    """Expand every rule into mappings, in config order, without duplicates.

    Explicit ``[[links]]`` come first, then each ``[[skills_sets]]`` tree is
    walked and every regular file is mirrored into each target root under
    the same relative path. A source root that does not exist is skipped.
    """
    mappings: list[Mapping] = []
    seen: set[tuple[Path, Path]] = set()

    def add(kind: MappingKind, source: Path, target: Path) -> None:
        key = (source, target)
        if key in seen:
            return
        seen.add(key)
        mappings.append(Mapping(kind=kind, source=source, target=target))

    for rule in config.links:
        source = resolve_path(rule.source, ctx)
        for raw_target in rule.targets:
            add(MappingKind.CONFIG_FILE, source, resolve_path(raw_target, ctx))

    for skills_set in config.skills_sets:
        source_root = resolve_path(skills_set.source_root, ctx)
        if not source_root.exists():
            logger.warning("source_root does not exist, skipped: %s", source_root)
            continue
        if not source_root.is_dir():
            raise ConfigError(f"source_root is not a directory: {source_root}")

        target_roots = [resolve_path(raw, ctx) for raw in skills_set.target_roots]
        for source_file in scan_source_tree(source_root):
            rel = source_file.relative_to(source_root)
            for target_root in target_roots:
                add(MappingKind.SKILL_FILE, source_file, target_root / rel)

    logger.debug("built %d mappings", len(mappings))
    return mappings


def scan_source_tree(root: Path) -> list[Path]:
    """Recursively list regular files under ``root`` in a stable order.

    Symlinks are neither followed nor returned.
    """
    files = []

    def on_error(err: OSError) -> None:
        raise ConfigError(f"failed to walk source_root: {root}: {err}") from err

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            try:
                mode = os.lstat(path).st_mode
            except OSError as e:
                raise ConfigError(f"failed to inspect {path}: {e}") from e
            if stat.S_ISREG(mode):
                files.append(path)
    return files
