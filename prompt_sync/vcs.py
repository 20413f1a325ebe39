"""Git integration: install a commit-msg hook that strips AI attribution trailers."""

from __future__ import annotations

import os
from pathlib import Path

from prompt_sync.errors import PromptSyncError

HOOK_NAME = "commit-msg"

COMMIT_GUARD_HOOK = """\
#!/bin/sh
set -eu

msg_file="$1"
if [ ! -f "$msg_file" ]; then
  exit 0
fi

# Remove AI attribution lines automatically.
tmp_file="$(mktemp)"
grep -Eiv '^Co-authored-by:.*(chatgpt|claude|codex|gemini|copilot|openai|anthropic)' "$msg_file" \\
  | grep -Eiv 'generated with.*(chatgpt|claude|codex|gemini|copilot|openai|anthropic)' \\
  > "$tmp_file" || true
cat "$tmp_file" > "$msg_file"
rm -f "$tmp_file"

exit 0
"""


def resolve_git_dir(repo_root: Path) -> Path:
    """Return the repository's git directory (``.git`` files of worktrees included).

    Raises:
        PromptSyncError: If ``repo_root`` is not a Git repository.
    """
    from git import InvalidGitRepositoryError, NoSuchPathError, Repo

    try:
        repo = Repo(repo_root)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        raise PromptSyncError(f"not a Git repository: {repo_root}") from e
    return Path(repo.git_dir)


def install_commit_guard(repo_root: Path, force: bool = False, dry_run: bool = False) -> Path:
    """Write the commit-msg hook and return its path.

    An existing hook is only overwritten with ``force``. With ``dry_run`` the
    path is returned without writing anything.
    """
    hook_path = resolve_git_dir(repo_root) / "hooks" / HOOK_NAME

    if hook_path.exists() and not force:
        raise PromptSyncError(f"hook already exists: {hook_path} (use --force to overwrite)")

    if dry_run:
        return hook_path

    try:
        hook_path.parent.mkdir(parents=True, exist_ok=True)
        hook_path.write_text(COMMIT_GUARD_HOOK, encoding="utf-8")
        os.chmod(hook_path, 0o755)
    except OSError as e:
        raise PromptSyncError(f"failed to write hook: {hook_path}: {e}") from e

    return hook_path
