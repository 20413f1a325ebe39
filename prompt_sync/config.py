"""Load, validate and generate ``prompt-sync.toml`` files."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

from prompt_sync.errors import ConfigError
from prompt_sync.models import ResolveContext

DEFAULT_CONFIG_NAME = "prompt-sync.toml"

PROFILES = ("codex", "claude", "gemini", "copilot")


@dataclass
class MasterConfig:
    root: str | None = None


@dataclass
class LinkRule:
    """One source file linked into every listed target."""

    source: str
    targets: list[str] = field(default_factory=list)


@dataclass
class SkillsSet:
    """A source tree mirrored file-by-file into every target root."""

    source_root: str
    target_roots: list[str] = field(default_factory=list)


@dataclass
class ConfigFile:
    master: MasterConfig | None = None
    links: list[LinkRule] = field(default_factory=list)
    skills_sets: list[SkillsSet] = field(default_factory=list)


# --- Loading ---


def load_config(config_path: Path) -> tuple[ConfigFile, ResolveContext]:
    """Read and validate a config file, returning it with its resolve context."""
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"failed to read config: {config_path}: {e}") from e

    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid TOML config: {config_path}: {e}") from e

    return parse_config(data), build_resolve_context(config_path)


def parse_config(data: dict[str, Any]) -> ConfigFile:
    """Build a ``ConfigFile`` from decoded TOML, rejecting malformed entries."""
    master = None
    if "master" in data:
        raw_master = _expect_table(data["master"], "master")
        root = raw_master.get("root")
        if root is not None and not isinstance(root, str):
            raise ConfigError("master.root must be a string")
        master = MasterConfig(root=root)

    links = []
    for i, raw in enumerate(_expect_array(data.get("links", []), "links")):
        where = f"links[{i}]"
        rule = _expect_table(raw, where)
        links.append(
            LinkRule(
                source=_expect_str(rule.get("source"), f"{where}.source"),
                targets=_expect_str_list(rule.get("targets", []), f"{where}.targets"),
            )
        )

    skills_sets = []
    for i, raw in enumerate(_expect_array(data.get("skills_sets", []), "skills_sets")):
        where = f"skills_sets[{i}]"
        entry = _expect_table(raw, where)
        skills_sets.append(
            SkillsSet(
                source_root=_expect_str(entry.get("source_root"), f"{where}.source_root"),
                target_roots=_expect_str_list(
                    entry.get("target_roots", []), f"{where}.target_roots"
                ),
            )
        )

    return ConfigFile(master=master, links=links, skills_sets=skills_sets)


def build_resolve_context(config_path: Path) -> ResolveContext:
    """Config-relative paths resolve against the config file's directory."""
    try:
        home_dir: Path | None = Path.home()
    except RuntimeError:
        home_dir = None
    return ResolveContext(
        config_dir=config_path.parent,
        repo_root=Path.cwd(),
        home_dir=home_dir,
    )


def _expect_table(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(f"{where} must be a table")
    return value


def _expect_array(value: Any, where: str) -> list[Any]:
    if not isinstance(value, list):
        raise ConfigError(f"{where} must be an array of tables")
    return value


def _expect_str(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{where} is required and must be a string")
    return value


def _expect_str_list(value: Any, where: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where} must be a list of strings")
    return list(value)


# --- Writing ---


def dump_config(config: ConfigFile) -> str:
    """Serialise a config to TOML text."""
    data: dict[str, Any] = {}
    if config.master is not None and config.master.root is not None:
        data["master"] = {"root": config.master.root}
    data["links"] = [{"source": r.source, "targets": r.targets} for r in config.links]
    data["skills_sets"] = [
        {"source_root": s.source_root, "target_roots": s.target_roots}
        for s in config.skills_sets
    ]
    return tomli_w.dumps(data)


# --- Templates ---


def build_default_config(profiles: list[str] | tuple[str, ...]) -> ConfigFile:
    """Template written by ``prompt-sync init`` for the selected vendor profiles."""
    selected = set(profiles)

    link_targets = []
    if "codex" in selected:
        link_targets.append("~/.codex/AGENTS.md")
    if "claude" in selected:
        link_targets.append("~/.claude/CLAUDE.md")
    if "gemini" in selected:
        link_targets.append("~/.gemini/GEMINI.md")
    if "copilot" in selected:
        link_targets.append("<repo>/.github/copilot-instructions.md")

    target_roots = []
    if "claude" in selected:
        target_roots.append("~/.claude/skills")
    if "gemini" in selected:
        target_roots.append("~/.gemini/skills")
    if "copilot" in selected:
        target_roots.append("~/.copilot/skills")
        target_roots.append("<repo>/.github/skills")

    skills_sets = []
    if target_roots:
        skills_sets.append(SkillsSet(source_root="~/.agents/skills", target_roots=target_roots))

    # Older installs kept skills under ~/.codex/skills
    legacy_roots = [r for r in ("~/.claude/skills", "~/.gemini/skills") if r in target_roots]
    if legacy_roots:
        skills_sets.append(SkillsSet(source_root="~/.codex/skills", target_roots=legacy_roots))

    return ConfigFile(
        master=MasterConfig(root="~/.ai_settings"),
        links=[LinkRule(source="~/.ai_settings/master.md", targets=link_targets)],
        skills_sets=skills_sets,
    )


def build_bootstrap_config() -> ConfigFile:
    """Config used by ``prompt-sync bootstrap``: every known vendor location."""
    return ConfigFile(
        master=MasterConfig(root="~/.ai_settings"),
        links=[
            LinkRule(
                source="~/.ai_settings/master.md",
                targets=[
                    "~/.codex/AGENTS.md",
                    "~/.claude/CLAUDE.md",
                    "~/.gemini/GEMINI.md",
                    "<repo>/AGENTS.md",
                    "<repo>/CLAUDE.md",
                    "<repo>/GEMINI.md",
                    "<repo>/.github/copilot-instructions.md",
                ],
            )
        ],
        skills_sets=[
            SkillsSet(
                source_root="~/.agents/skills",
                target_roots=[
                    "~/.claude/skills",
                    "~/.gemini/skills",
                    "~/.copilot/skills",
                    "<repo>/.github/skills",
                    "<repo>/.claude/skills",
                    "<repo>/.gemini/skills",
                ],
            ),
            SkillsSet(
                source_root="~/.codex/skills",
                target_roots=[
                    "~/.claude/skills",
                    "~/.gemini/skills",
                    "~/.copilot/skills",
                    "<repo>/.github/skills",
                ],
            ),
        ],
    )
