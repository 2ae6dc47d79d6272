"""Brain config store - read-only view of ~/.config/brain/config.json.

A missing file is an empty project set. A file that exists but does not
parse raises ConfigError; that is the only hard failure in resolution.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from brain_resolve.config import config_home
from brain_resolve.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_VERSION = "2.0.0"
DEFAULT_MEMORIES_LOCATION = "~/memories"


@dataclass(frozen=True)
class ProjectConfig:
    """One configured project."""

    name: str
    code_path: str = ""
    memories_path: str | None = None
    memories_mode: str | None = None
    disable_worktree_detection: bool = False


@dataclass(frozen=True)
class MemoryDefaults:
    memories_location: str = DEFAULT_MEMORIES_LOCATION
    memories_mode: str = "DEFAULT"


@dataclass(frozen=True)
class BrainConfig:
    """Parsed Brain configuration."""

    version: str = CONFIG_VERSION
    projects: dict[str, ProjectConfig] = field(default_factory=dict)
    defaults: MemoryDefaults = field(default_factory=MemoryDefaults)
    log_level: str | None = None


def get_brain_config_path() -> Path:
    """Location of the Brain config.

    ``$BRAIN_CONFIG_PATH`` wins; otherwise ``<XDG config home>/brain/config.json``.
    """
    override = os.getenv("BRAIN_CONFIG_PATH")
    if override:
        return Path(override).expanduser()
    return config_home() / "brain" / "config.json"


def _parse_project(name: str, data: dict) -> ProjectConfig:
    if not isinstance(data, dict):
        raise ValueError(f"project '{name}' must be an object")
    return ProjectConfig(
        name=name,
        code_path=str(data.get("code_path") or ""),
        memories_path=data.get("memories_path"),
        memories_mode=data.get("memories_mode"),
        disable_worktree_detection=data.get("disableWorktreeDetection") is True,
    )


def parse_brain_config(data: object) -> BrainConfig:
    """Build a BrainConfig from decoded JSON. Raises ValueError on bad shape."""
    if not isinstance(data, dict):
        raise ValueError("top-level value must be an object")

    raw_projects = data.get("projects") or {}
    if not isinstance(raw_projects, dict):
        raise ValueError("'projects' must be an object")
    projects = {name: _parse_project(name, entry) for name, entry in raw_projects.items() if name}

    raw_defaults = data.get("defaults") or {}
    defaults = MemoryDefaults(
        memories_location=raw_defaults.get("memories_location") or DEFAULT_MEMORIES_LOCATION,
        memories_mode=raw_defaults.get("memories_mode") or "DEFAULT",
    )
    logging_section = data.get("logging") or {}

    return BrainConfig(
        version=str(data.get("version", CONFIG_VERSION)),
        projects=projects,
        defaults=defaults,
        log_level=logging_section.get("level") if isinstance(logging_section, dict) else None,
    )


def load_brain_config(path: Path | None = None) -> BrainConfig:
    """Load Brain configuration from disk.

    Returns an empty config when the file does not exist.
    Raises ConfigError when the file exists but is not valid config JSON.
    """
    config_path = path or get_brain_config_path()
    try:
        text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("No Brain config at %s", config_path)
        return BrainConfig()
    except OSError as e:
        raise ConfigError(str(config_path), str(e)) from e

    try:
        return parse_brain_config(json.loads(text))
    except (json.JSONDecodeError, ValueError, AttributeError) as e:
        raise ConfigError(str(config_path), str(e)) from e


def get_project_code_paths(config: BrainConfig) -> dict[str, str]:
    """All configured projects that have a non-empty code path."""
    return {name: p.code_path for name, p in config.projects.items() if p.code_path}
