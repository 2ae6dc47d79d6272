"""Translate Brain config into basic-memory's config format.

Brain is the source of truth; basic-memory only sees resolved paths.

Mode resolution:
    DEFAULT  ${memories_location}/${project_name}
    CODE     ${code_path}/docs
    CUSTOM   explicit memories_path

Field mapping:
    projects.<name>.*   -> projects.<name> (resolved path)
    logging.level       -> log_level
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from brain_resolve.errors import TranslationError
from brain_resolve.project.pathguard import expand_tilde, validate_path
from brain_resolve.project.store import BrainConfig, ProjectConfig

logger = logging.getLogger(__name__)

FILE_MODE = 0o600


class MemoriesMode(str, Enum):
    DEFAULT = "DEFAULT"
    CODE = "CODE"
    CUSTOM = "CUSTOM"


@dataclass(frozen=True)
class ResolvedMemoriesPath:
    path: str
    mode: str
    error: str | None = None


def effective_mode(project: ProjectConfig, config: BrainConfig) -> str:
    return project.memories_mode or config.defaults.memories_mode or MemoriesMode.DEFAULT.value


def resolve_memories_path(
    name: str,
    project: ProjectConfig,
    default_location: str,
    mode: str | None = None,
) -> ResolvedMemoriesPath:
    """Resolve where a project's memories live, validated as a write target."""
    mode = mode or project.memories_mode or MemoriesMode.DEFAULT.value
    try:
        parsed = MemoriesMode(mode)
    except ValueError:
        return ResolvedMemoriesPath(path="", mode=mode, error=f"Unknown memories mode: {mode}")

    if parsed is MemoriesMode.DEFAULT:
        candidate = os.path.join(expand_tilde(default_location), name)
    elif parsed is MemoriesMode.CODE:
        if not project.code_path:
            return ResolvedMemoriesPath(path="", mode=mode, error="CODE mode requires code_path")
        candidate = os.path.join(expand_tilde(project.code_path), "docs")
    else:
        if not project.memories_path:
            return ResolvedMemoriesPath(
                path="", mode=mode, error="CUSTOM mode requires memories_path to be set"
            )
        candidate = project.memories_path

    validation = validate_path(candidate)
    if not validation.valid:
        return ResolvedMemoriesPath(path=candidate, mode=mode, error=validation.error)
    return ResolvedMemoriesPath(path=validation.normalized_path, mode=mode)


def resolve_all(config: BrainConfig) -> dict[str, ResolvedMemoriesPath]:
    return {
        name: resolve_memories_path(
            name,
            project,
            config.defaults.memories_location,
            mode=effective_mode(project, config),
        )
        for name, project in config.projects.items()
    }


def translate_to_basic_memory(config: BrainConfig, existing: dict | None = None) -> dict:
    """Build basic-memory config, preserving unknown fields from ``existing``."""
    result = dict(existing or {})
    projects: dict[str, str] = {}
    for name, resolved in resolve_all(config).items():
        if resolved.error:
            logger.warning("Skipping project %s: %s", name, resolved.error)
            continue
        projects[name] = resolved.path
    result["projects"] = projects
    if config.log_level:
        result["log_level"] = config.log_level
    return result


def validate_translation(config: BrainConfig) -> list[str]:
    """Errors that would cause projects to be dropped from the translation."""
    return [
        f"Project '{name}': {resolved.error}"
        for name, resolved in resolve_all(config).items()
        if resolved.error
    ]


def preview_translation(config: BrainConfig) -> dict:
    """Translation result plus errors, without touching disk."""
    return {
        "config": translate_to_basic_memory(config),
        "errors": validate_translation(config),
    }


def load_json_config(path: Path) -> dict:
    """Read an existing basic-memory config; missing or unreadable means empty."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable basic-memory config %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def write_json_atomic(path: Path, data: dict) -> None:
    """Write JSON via a temp file and rename. Raises TranslationError."""
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        json.loads(tmp_path.read_text(encoding="utf-8"))
        os.chmod(tmp_path, FILE_MODE)
        os.replace(tmp_path, path)
    except (OSError, ValueError) as e:
        tmp_path.unlink(missing_ok=True)
        raise TranslationError(f"Failed to write basic-memory config: {e}") from e


def sync_basic_memory_config(
    config: BrainConfig,
    target: Path,
    *,
    raise_on_error: bool = False,
) -> bool:
    """Write the translated config to ``target``.

    Failures are logged and reported as False unless ``raise_on_error``.
    """
    errors = validate_translation(config)
    if errors and raise_on_error:
        raise TranslationError("; ".join(errors), code="VALIDATION_ERROR")

    translated = translate_to_basic_memory(config, load_json_config(target))
    try:
        write_json_atomic(target, translated)
    except TranslationError:
        if raise_on_error:
            raise
        logger.exception("basic-memory sync failed")
        return False

    logger.info("Synced %d projects to %s", len(translated["projects"]), target)
    return True
