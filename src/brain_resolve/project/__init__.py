"""Project resolution: config store, path matching, worktree fallback.

Layout:
    store.py      Brain config (~/.config/brain/config.json) reader
    matcher.py    deepest-prefix match of a directory against code paths
    worktree.py   linked git worktree detection (single git rev-parse call)
    pathguard.py  validation of derived / write-target paths
    resolver.py   the 6-level resolution hierarchy
"""

from brain_resolve.project.resolver import (
    DetectionPolicy,
    ResolutionContext,
    ResolveInputs,
    match_cwd_with_context,
    resolve,
    resolve_project,
    resolve_project_from_cwd,
    resolve_project_with_context,
)
from brain_resolve.project.store import BrainConfig, ProjectConfig, load_brain_config
from brain_resolve.project.worktree import WorktreeDetectionResult, detect_worktree_main_path

__all__ = [
    "BrainConfig",
    "DetectionPolicy",
    "ProjectConfig",
    "ResolutionContext",
    "ResolveInputs",
    "WorktreeDetectionResult",
    "detect_worktree_main_path",
    "load_brain_config",
    "match_cwd_with_context",
    "resolve",
    "resolve_project",
    "resolve_project_from_cwd",
    "resolve_project_with_context",
]
