"""prompt-sync CLI — the main entry point."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from prompt_sync import __version__
from prompt_sync.config import DEFAULT_CONFIG_NAME, PROFILES
from prompt_sync.errors import PromptSyncError
from prompt_sync.logs import configure_logging
from prompt_sync.models import Report
from prompt_sync.report import render_json, render_text

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_NAME,
    show_default=True,
    type=click.Path(path_type=Path),
    help="Path to config TOML",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx: click.Context, config_path: Path, verbose: bool):
    """prompt-sync — hardlink manager for AI instruction and skills files.

    Keep one master instructions file (and a skills tree) linked into every
    vendor-specific location, so editing any copy edits all of them.
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _fail(error: Exception) -> None:
    err_console.print(f"[red]error:[/] {escape(str(error))}")
    sys.exit(2)


def _emit(report: Report, as_json: bool, show_records: bool) -> None:
    from prompt_sync.app import exit_code

    if as_json:
        click.echo(render_json(report))
    else:
        render_text(report, console, show_records)
    sys.exit(exit_code(report))


backup_dir_option = click.option(
    "--backup-dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Backup directory for files replaced by --force",
)
dry_run_option = click.option(
    "--dry-run", is_flag=True, help="Show planned changes without touching files"
)
json_option = click.option("--json", "as_json", is_flag=True, help="Emit JSON output")


# ── Init ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--force", is_flag=True, help="Overwrite existing config")
@click.option(
    "--profile",
    "profiles",
    multiple=True,
    type=click.Choice(PROFILES),
    help="Include vendor profile(s) in the generated template",
)
@click.pass_context
def init(ctx: click.Context, force: bool, profiles: tuple):
    """Generate an initial config file."""
    from prompt_sync.app import run_init

    try:
        path = run_init(ctx.obj["config_path"], force=force, profiles=list(profiles))
    except PromptSyncError as e:
        _fail(e)
    console.print(f"created config: {escape(str(path))}")


# ── Link ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--only-missing", is_flag=True, help="Only create links that do not exist yet")
@click.option("--force", is_flag=True, help="Replace existing conflicting targets")
@dry_run_option
@json_option
@backup_dir_option
@click.pass_context
def link(
    ctx: click.Context,
    only_missing: bool,
    force: bool,
    dry_run: bool,
    as_json: bool,
    backup_dir: Path | None,
):
    """Create or update hardlinks based on the config."""
    from prompt_sync.app import run_link

    try:
        report = run_link(
            ctx.obj["config_path"],
            force=force,
            only_missing=only_missing,
            dry_run=dry_run,
            backup_dir=backup_dir,
        )
    except PromptSyncError as e:
        _fail(e)
    _emit(report, as_json, ctx.obj["verbose"])


# ── Verify ───────────────────────────────────────────────────────────


@main.command()
@json_option
@click.pass_context
def verify(ctx: click.Context, as_json: bool):
    """Verify link integrity.

    Exits 1 if anything is missing, broken or conflicting, 2 on errors.
    """
    from prompt_sync.app import run_verify

    try:
        report = run_verify(ctx.obj["config_path"])
    except PromptSyncError as e:
        _fail(e)
    _emit(report, as_json, True)


# ── Repair ───────────────────────────────────────────────────────────


@main.command()
@click.option("--force", is_flag=True, help="Also overwrite CONFLICT targets")
@dry_run_option
@json_option
@backup_dir_option
@click.pass_context
def repair(ctx: click.Context, force: bool, dry_run: bool, as_json: bool, backup_dir: Path | None):
    """Repair missing and broken links.

    BROKEN targets (hardlinked somewhere else) are always replaced.
    CONFLICT targets (independent files) are only replaced with --force.
    """
    from prompt_sync.app import run_repair

    try:
        report = run_repair(
            ctx.obj["config_path"], force=force, dry_run=dry_run, backup_dir=backup_dir
        )
    except PromptSyncError as e:
        _fail(e)
    _emit(report, as_json, ctx.obj["verbose"])


# ── Status ───────────────────────────────────────────────────────────


@main.command()
@json_option
@click.pass_context
def status(ctx: click.Context, as_json: bool):
    """Print a short status summary."""
    from prompt_sync.app import run_status

    try:
        report = run_status(ctx.obj["config_path"])
    except PromptSyncError as e:
        _fail(e)
    _emit(report, as_json, ctx.obj["verbose"])


# ── Bootstrap ────────────────────────────────────────────────────────


@main.command()
@click.option("--force", is_flag=True, help="Replace existing conflicting targets")
@dry_run_option
@json_option
@click.option(
    "--write-config", is_flag=True, help="Persist the bootstrap config into --config path"
)
@backup_dir_option
@click.pass_context
def bootstrap(
    ctx: click.Context,
    force: bool,
    dry_run: bool,
    as_json: bool,
    write_config: bool,
    backup_dir: Path | None,
):
    """One-tap setup for common vendor paths (alias: magic)."""
    from prompt_sync.app import run_bootstrap

    try:
        report = run_bootstrap(
            ctx.obj["config_path"],
            force=force,
            dry_run=dry_run,
            write_config=write_config,
            backup_dir=backup_dir,
        )
    except PromptSyncError as e:
        _fail(e)
    _emit(report, as_json, ctx.obj["verbose"])


main.add_command(bootstrap, name="magic")


# ── Commit guard ─────────────────────────────────────────────────────


@main.command(name="install-commit-guard")
@click.option(
    "--repo",
    default=".",
    show_default=True,
    type=click.Path(path_type=Path),
    help="Repository root path",
)
@click.option("--force", is_flag=True, help="Overwrite existing hook file")
@dry_run_option
def install_commit_guard_cmd(repo: Path, force: bool, dry_run: bool):
    """Install a commit-msg hook that strips AI co-author trailers."""
    from prompt_sync.app import run_install_commit_guard

    try:
        hook_path = run_install_commit_guard(repo, force=force, dry_run=dry_run)
    except PromptSyncError as e:
        _fail(e)

    if dry_run:
        console.print(f"would install commit guard hook: {escape(str(hook_path))}")
    else:
        console.print(f"[green]installed commit guard hook:[/] {escape(str(hook_path))}")


if __name__ == "__main__":
    main()
