"""Direct path matching of a directory against configured code paths."""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from brain_resolve.project.store import ProjectConfig


@dataclass(frozen=True)
class PathMatch:
    name: str
    matched_path: str


def clean_path(path: str) -> str:
    """Lexically clean a path: no trailing separator, no ``.``/``..`` segments.

    ``os.path.normpath`` keeps a leading ``//`` on POSIX; collapse it so that
    ``//repo`` and ``/repo`` compare equal.
    """
    cleaned = os.path.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def is_within(directory: str, root: str) -> bool:
    """True if ``directory`` is ``root`` or below it. Both must be cleaned."""
    if directory == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return directory.startswith(prefix)


def direct_path_match(
    directory: str,
    projects: Mapping[str, ProjectConfig],
    *,
    allow: Callable[[str], bool] | None = None,
) -> PathMatch | None:
    """Find the project whose code path contains ``directory``.

    Nested code paths resolve to the deepest (longest) one, so a sub-project
    inside a parent project's tree wins over the parent. Projects rejected by
    ``allow`` and projects with an empty code path are skipped.
    """
    if not directory:
        return None
    directory = clean_path(directory)

    best: PathMatch | None = None
    for name, project in projects.items():
        if not project.code_path:
            continue
        if allow is not None and not allow(name):
            continue

        project_path = clean_path(project.code_path)
        if not is_within(directory, project_path):
            continue
        if best is None or len(project_path) > len(best.matched_path):
            best = PathMatch(name=name, matched_path=project_path)

    return best
