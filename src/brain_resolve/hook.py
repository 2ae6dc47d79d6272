"""Hook entry point - resolve the project for an agent hook event.

Usage (session-start / user-prompt hook):
    python -m brain_resolve.hook

Reads a JSON event from stdin (``{"cwd": ..., "project": ...}``, both
optional) and prints the resolution context as one JSON line. Prints
``{"project": null}`` when nothing resolves. Must stay fast: at most one
active-project call and one git call.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping

from brain_resolve.config import ResolverSettings, load_settings
from brain_resolve.errors import ConfigError
from brain_resolve.memory.worktree_override import apply_worktree_override
from brain_resolve.project.resolver import ResolutionContext, resolve_project_with_context
from brain_resolve.project.store import BrainConfig, load_brain_config

logger = logging.getLogger(__name__)


def parse_event(raw: str) -> dict:
    if not raw.strip():
        return {}
    try:
        event = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Hook input is not JSON, ignoring it")
        return {}
    return event if isinstance(event, dict) else {}


def describe_context(
    context: ResolutionContext | None,
    cwd: str | None,
    *,
    settings: ResolverSettings,
    config: BrainConfig | None = None,
    register_worktree: bool = True,
) -> dict:
    """JSON payload for a resolution, shared with ``brain-resolve resolve --json``.

    For a worktree-resolved CODE-mode project the worktree's docs/ is
    registered with basic-memory and reported as ``memories_path``.
    """
    if context is None:
        return {"project": None}
    result = context.as_dict()
    if register_worktree and context.is_worktree_resolved:
        actual_cwd = os.path.abspath(cwd or os.getcwd())
        override = apply_worktree_override(
            context,
            actual_cwd,
            config if config is not None else load_brain_config(),
            settings.basic_memory_config,
        )
        if override is not None:
            result["memories_path"] = override.memories_path
    return result


def handle_event(
    event: dict,
    *,
    settings: ResolverSettings | None = None,
    environ: Mapping[str, str] | None = None,
    config: BrainConfig | None = None,
) -> dict:
    """Resolve for one hook event."""
    settings = settings or load_settings()
    explicit = event.get("project") or None
    cwd = event.get("cwd") or None
    context = resolve_project_with_context(
        explicit, cwd, settings=settings, environ=environ, config=config
    )
    return describe_context(context, cwd, settings=settings, config=config)


def main() -> None:
    event = parse_event(sys.stdin.read())
    try:
        result = handle_event(event)
    except ConfigError as e:
        print(json.dumps({"project": None, "error": str(e)}))
        sys.exit(2)
    print(json.dumps(result))


if __name__ == "__main__":
    main()
