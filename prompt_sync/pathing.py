"""Expand ``<repo>``, ``<home>`` and ``~`` in configured paths."""

from __future__ import annotations

from pathlib import Path

from prompt_sync.models import ResolveContext

REPO_TOKEN = "<repo>"
HOME_TOKEN = "<home>"


def resolve_path(raw: str, ctx: ResolveContext) -> Path:
    """Resolve a configured path template into an absolute path.

    Tokens are substituted first. A leading ``~`` then expands to the home
    directory, and anything still relative is joined to the config directory.
    """
    text = raw.replace(REPO_TOKEN, str(ctx.repo_root))
    if ctx.home_dir is not None:
        text = text.replace(HOME_TOKEN, str(ctx.home_dir))

    if ctx.home_dir is not None and (text == "~" or text.startswith("~/")):
        suffix = text[1:].lstrip("/")
        return ctx.home_dir / suffix if suffix else ctx.home_dir

    path = Path(text)
    if path.is_absolute():
        return path
    return ctx.config_dir / path


def absolute_path(path: str | Path) -> Path:
    """Join a relative path to the current directory without resolving symlinks."""
    path = Path(path)
    if path.is_absolute():
        return path
    return Path.cwd() / path
