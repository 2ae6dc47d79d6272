"""Settings loading from environment variables and brain-resolve.toml.

These are the resolver's own knobs (timeouts, log level, where the derived
basic-memory config lives). The Brain project config itself is read by
`brain_resolve.project.store`.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_SETTINGS_FILENAME = "brain-resolve.toml"
_DEFAULT_ACTIVE_PROJECT_COMMAND = ["brain", "config", "get", "active-project"]


def config_home() -> Path:
    """XDG config directory (``$XDG_CONFIG_HOME`` or ``~/.config``)."""
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".config"


@dataclass
class ResolverSettings:
    """Top-level resolver settings."""

    log_level: str = "WARNING"
    git_timeout: float = 3.0
    active_project_timeout: float = 5.0
    active_project_command: list[str] = field(
        default_factory=lambda: list(_DEFAULT_ACTIVE_PROJECT_COMMAND)
    )
    basic_memory_config: Path = Path.home() / ".basic-memory" / "config.json"


def load_settings(config_path: Path | None = None) -> ResolverSettings:
    """Load settings from environment variables and optional brain-resolve.toml.

    Priority: environment variables > brain-resolve.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        for candidate in [
            Path.cwd() / _SETTINGS_FILENAME,
            config_home() / "brain" / "resolve.toml",
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    command = file_data.get("active_project_command", _DEFAULT_ACTIVE_PROJECT_COMMAND)
    basic_memory = os.getenv(
        "BASIC_MEMORY_CONFIG",
        file_data.get("basic_memory_config", str(Path.home() / ".basic-memory" / "config.json")),
    )

    return ResolverSettings(
        log_level=os.getenv("BRAIN_RESOLVE_LOG_LEVEL", file_data.get("log_level", "WARNING")),
        git_timeout=float(os.getenv("BRAIN_GIT_TIMEOUT", file_data.get("git_timeout", 3.0))),
        active_project_timeout=float(
            os.getenv(
                "BRAIN_ACTIVE_PROJECT_TIMEOUT", file_data.get("active_project_timeout", 5.0)
            )
        ),
        active_project_command=[str(part) for part in command],
        basic_memory_config=Path(basic_memory).expanduser(),
    )
