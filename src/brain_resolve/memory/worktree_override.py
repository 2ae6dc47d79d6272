"""Worktree memories-path override.

When a project resolves through a linked worktree AND uses CODE memories
mode, its notes belong in the worktree's own ``docs/``, not the main
checkout's:

    effective_cwd = main checkout (project identification only)
    actual_cwd    = the worktree the user is working in
    memories path = actual_cwd/docs

Overrides are kept per project name in an `OverrideRegistry` and can be
registered into basic-memory's derived config with `ensure_worktree_project`.
That file is regenerated from Brain's config on every sync, so registrations
are transient.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from brain_resolve.errors import PathSafetyError, TranslationError
from brain_resolve.memory.translation import (
    MemoriesMode,
    effective_mode,
    load_json_config,
    write_json_atomic,
)
from brain_resolve.project.pathguard import validate_path, validate_path_or_raise
from brain_resolve.project.resolver import ResolutionContext
from brain_resolve.project.store import BrainConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorktreeOverride:
    project_name: str
    actual_cwd: str
    effective_cwd: str
    memories_path: str


def compute_worktree_override(
    context: ResolutionContext | None,
    actual_cwd: str,
    config: BrainConfig,
) -> WorktreeOverride | None:
    """Return the override to apply, or None if the memories path stays as is."""
    if context is None or not context.is_worktree_resolved:
        return None

    project = config.projects.get(context.project_name)
    if project is None:
        logger.debug("Worktree override: %s not in Brain config", context.project_name)
        return None

    mode = effective_mode(project, config)
    if mode != MemoriesMode.CODE.value:
        logger.debug("Worktree override: %s uses %s mode, skipping", context.project_name, mode)
        return None

    validation = validate_path(os.path.join(actual_cwd, "docs"))
    if not validation.valid:
        logger.warning(
            "Worktree override rejected for %s: %s", context.project_name, validation.error
        )
        return None

    override = WorktreeOverride(
        project_name=context.project_name,
        actual_cwd=actual_cwd,
        effective_cwd=context.effective_cwd,
        memories_path=validation.normalized_path,
    )
    logger.debug("Worktree CODE mode override computed: %s", override)
    return override


class OverrideRegistry:
    """Active overrides keyed by project name, one per project."""

    def __init__(self) -> None:
        self._overrides: dict[str, WorktreeOverride] = {}
        self._lock = threading.Lock()

    def set(self, override: WorktreeOverride) -> None:
        with self._lock:
            self._overrides[override.project_name] = override
        logger.info(
            "Worktree CODE mode override active: %s -> %s",
            override.project_name,
            override.memories_path,
        )

    def get(self, project_name: str) -> WorktreeOverride | None:
        with self._lock:
            return self._overrides.get(project_name)

    def clear(self, project_name: str) -> None:
        with self._lock:
            removed = self._overrides.pop(project_name, None)
        if removed:
            logger.debug("Worktree override cleared: %s", project_name)

    def clear_all(self) -> None:
        with self._lock:
            self._overrides.clear()

    def all(self) -> Mapping[str, WorktreeOverride]:
        with self._lock:
            return dict(self._overrides)


registry = OverrideRegistry()

_registered: set[tuple[str, str]] = set()
_registered_lock = threading.Lock()


def clear_registration_cache() -> None:
    with _registered_lock:
        _registered.clear()


def ensure_worktree_project(override: WorktreeOverride, target: Path) -> bool:
    """Point ``override.project_name`` at the worktree docs/ in basic-memory's config.

    Idempotent per (project, path) within the process. The memories path is
    re-validated right before use. Returns False on any failure.
    """
    key = (override.project_name, override.memories_path)
    with _registered_lock:
        if key in _registered:
            return True

    try:
        memories_path = validate_path_or_raise(override.memories_path)
    except PathSafetyError as e:
        logger.warning(
            "Refusing to register %s at %s: %s", override.project_name, override.memories_path, e
        )
        return False

    data = load_json_config(target)
    projects = data.get("projects")
    if not isinstance(projects, dict):
        projects = {}
        data["projects"] = projects

    previous = projects.get(override.project_name)
    if previous != memories_path:
        projects[override.project_name] = memories_path
        try:
            Path(memories_path).mkdir(parents=True, exist_ok=True)
            write_json_atomic(target, data)
        except (OSError, TranslationError) as e:
            logger.error("Failed to register worktree project %s: %s", override.project_name, e)
            return False
        logger.info(
            "Worktree project %s registered (%s -> %s)",
            override.project_name,
            previous,
            memories_path,
        )

    with _registered_lock:
        _registered.add(key)
    return True


def apply_worktree_override(
    context: ResolutionContext | None,
    actual_cwd: str,
    config: BrainConfig,
    target: Path,
    *,
    overrides: OverrideRegistry | None = None,
) -> WorktreeOverride | None:
    """Compute, register and record the override for a resolved session.

    A project that no longer needs an override has any stale one cleared.
    Returns the active override, or None.
    """
    overrides = registry if overrides is None else overrides
    override = compute_worktree_override(context, actual_cwd, config)
    if override is None:
        if context is not None:
            overrides.clear(context.project_name)
        return None
    if not ensure_worktree_project(override, target):
        return None
    overrides.set(override)
    return override
