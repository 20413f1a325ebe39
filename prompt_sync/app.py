"""Command runners: load config, process every mapping, return a Report.

The CLI is a thin layer over these functions; tests call them directly.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from prompt_sync.config import (
    PROFILES,
    ConfigFile,
    build_bootstrap_config,
    build_default_config,
    build_resolve_context,
    dump_config,
    load_config,
)
from prompt_sync.engine.classifier import classify
from prompt_sync.engine.decisions import Command
from prompt_sync.engine.mappings import build_mappings
from prompt_sync.engine.reconcile import ApplyOptions, apply
from prompt_sync.errors import ConfigError
from prompt_sync.models import Mapping, Report, ResolveContext
from prompt_sync.pathing import absolute_path, resolve_path
from prompt_sync.vcs import install_commit_guard

logger = logging.getLogger(__name__)

MASTER_PLACEHOLDER = (
    "# master instructions\n\nUpdate this file to sync all linked instruction files.\n"
)

# Commands whose exit code also reflects MISSING/BROKEN/CONFLICT
_REPORTS_INCONSISTENCY = {
    "verify": True,
    "status": True,
    "repair": True,
    "link": False,
    "bootstrap": False,
}


def exit_code(report: Report) -> int:
    return report.summary.exit_code(_REPORTS_INCONSISTENCY.get(report.command, False))


# --- Reconciliation commands ---


def run_link(
    config_path: Path,
    force: bool = False,
    only_missing: bool = False,
    dry_run: bool = False,
    backup_dir: Path | None = None,
) -> Report:
    mappings = _load_mappings(config_path)
    options = ApplyOptions(
        force=force,
        only_missing=only_missing,
        dry_run=dry_run,
        backup_dir=_resolve_backup_dir(backup_dir),
    )
    return _reconcile("link", mappings, Command.LINK, options)


def run_repair(
    config_path: Path,
    force: bool = False,
    dry_run: bool = False,
    backup_dir: Path | None = None,
) -> Report:
    mappings = _load_mappings(config_path)
    options = ApplyOptions(force=force, dry_run=dry_run, backup_dir=_resolve_backup_dir(backup_dir))
    return _reconcile("repair", mappings, Command.REPAIR, options)


def run_verify(config_path: Path) -> Report:
    return _inspect("verify", _load_mappings(config_path))


def run_status(config_path: Path) -> Report:
    return _inspect("status", _load_mappings(config_path))


def run_bootstrap(
    config_path: Path,
    force: bool = False,
    dry_run: bool = False,
    write_config: bool = False,
    backup_dir: Path | None = None,
) -> Report:
    """Link every well-known vendor location to the shared master files.

    Missing master files and skill roots are created first (unless dry-run).
    With ``write_config`` the bootstrap config is also saved to ``config_path``.
    """
    config_path = absolute_path(config_path)
    config = build_bootstrap_config()
    ctx = build_resolve_context(config_path)

    if write_config:
        if config_path.exists() and not force:
            raise ConfigError(f"config already exists: {config_path} (use --force to overwrite)")
        if not dry_run:
            _write_config(config_path, config)
        logger.info("bootstrap config prepared at: %s", config_path)

    prepare_bootstrap_sources(config, ctx, dry_run)
    options = ApplyOptions(force=force, dry_run=dry_run, backup_dir=_resolve_backup_dir(backup_dir))
    return _reconcile("bootstrap", build_mappings(config, ctx), Command.LINK, options)


# --- Setup commands ---


def run_init(config_path: Path, force: bool = False, profiles: list[str] | None = None) -> Path:
    """Write a starter config for the selected profiles (all of them by default)."""
    config_path = absolute_path(config_path)
    if config_path.exists() and not force:
        raise ConfigError(f"config already exists: {config_path} (use --force to overwrite)")

    _write_config(config_path, build_default_config(profiles or list(PROFILES)))
    return config_path


def run_install_commit_guard(repo: Path, force: bool = False, dry_run: bool = False) -> Path:
    return install_commit_guard(absolute_path(repo), force=force, dry_run=dry_run)


def prepare_bootstrap_sources(config: ConfigFile, ctx: ResolveContext, dry_run: bool) -> None:
    for rule in config.links:
        source = resolve_path(rule.source, ctx)
        if os.path.lexists(source):
            if not stat.S_ISREG(source.lstat().st_mode):
                raise ConfigError(f"bootstrap source must be a regular file: {source}")
            continue
        if dry_run:
            logger.info("bootstrap dry-run: would create source file %s", source)
            continue
        try:
            source.parent.mkdir(parents=True, exist_ok=True)
            source.write_text(MASTER_PLACEHOLDER, encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"failed to create source file: {source}: {e}") from e
        logger.info("bootstrap: created source file %s", source)

    for skills_set in config.skills_sets:
        source_root = resolve_path(skills_set.source_root, ctx)
        if source_root.exists():
            if not source_root.is_dir():
                raise ConfigError(
                    f"bootstrap skills source root must be a directory: {source_root}"
                )
            continue
        if dry_run:
            logger.info("bootstrap dry-run: would create skills source root %s", source_root)
            continue
        try:
            source_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(
                f"failed to create skills source root directory: {source_root}: {e}"
            ) from e
        logger.info("bootstrap: created skills source root %s", source_root)


# --- Helpers ---


def _load_mappings(config_path: Path) -> list[Mapping]:
    config, ctx = load_config(absolute_path(config_path))
    return build_mappings(config, ctx)


def _resolve_backup_dir(backup_dir: Path | None) -> Path | None:
    return absolute_path(backup_dir) if backup_dir is not None else None


def _reconcile(
    name: str, mappings: list[Mapping], command: Command, options: ApplyOptions
) -> Report:
    records = [apply(mapping, command, options) for mapping in mappings]
    return Report.build(name, records)


def _inspect(name: str, mappings: list[Mapping]) -> Report:
    return Report.build(name, [classify(mapping) for mapping in mappings])


def _write_config(config_path: Path, config: ConfigFile) -> None:
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(dump_config(config), encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"failed to write config file: {config_path}: {e}") from e
