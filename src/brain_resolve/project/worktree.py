"""Linked git worktree detection.

Given a directory that did not match any configured code path, find out
whether it sits inside a linked worktree and, if so, where the main
checkout lives. Every failure degrades to ``None``:

- no ``.git`` marker above the directory (no subprocess is spawned)
- git missing, too old for ``--path-format`` (< 2.31), non-zero exit
- git taking longer than the timeout
- unexpected output shape
- bare repository
- the directory is the main checkout itself
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass

from brain_resolve.project.matcher import clean_path

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 3.0
GIT_MARKER = ".git"

REV_PARSE_ARGS = [
    "rev-parse",
    "--path-format=absolute",
    "--git-common-dir",
    "--git-dir",
    "--is-bare-repository",
]


@dataclass(frozen=True)
class WorktreeDetectionResult:
    main_worktree_path: str
    is_linked_worktree: bool


def has_git_marker(directory: str) -> bool:
    """Walk up from ``directory`` looking for a ``.git`` file or directory."""
    current = clean_path(os.path.abspath(directory))
    while True:
        if os.path.lexists(os.path.join(current, GIT_MARKER)):
            return True
        parent = os.path.dirname(current)
        if parent == current:
            return False
        current = parent


def resolve_real_path(path: str) -> str:
    """Resolve symlinks; fall back to the cleaned path if that fails."""
    cleaned = clean_path(path)
    try:
        return os.path.realpath(cleaned, strict=True)
    except OSError:
        return cleaned


def _run_rev_parse(directory: str, timeout: float, git: str) -> list[str] | None:
    try:
        result = subprocess.run(
            [git, *REV_PARSE_ARGS],
            capture_output=True,
            text=True,
            cwd=directory,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning("git rev-parse timed out after %.1fs in %s", timeout, directory)
        return None
    except OSError as e:
        # git not installed, or directory vanished
        logger.debug("git rev-parse could not start in %s: %s", directory, e)
        return None

    if result.returncode != 0:
        logger.debug(
            "git rev-parse failed (rc=%d) in %s: %s",
            result.returncode,
            directory,
            result.stderr.strip()[:200],
        )
        return None

    return result.stdout.strip().splitlines()


def detect_worktree_main_path(
    directory: str,
    *,
    timeout: float = GIT_TIMEOUT,
    git: str = "git",
) -> WorktreeDetectionResult | None:
    """Return the main worktree path if ``directory`` is in a linked worktree."""
    if not directory or not has_git_marker(directory):
        return None

    lines = _run_rev_parse(directory, timeout, git)
    if lines is None:
        return None

    lines = [line.strip() for line in lines]
    if len(lines) != 3 or not all(lines):
        logger.debug("Unexpected git rev-parse output: %r", lines)
        return None

    common_dir, git_dir, is_bare = lines
    if is_bare == "true":
        return None

    real_common = resolve_real_path(common_dir)
    real_git = resolve_real_path(git_dir)
    if real_common == real_git:
        # Main checkout: direct matching already covered it
        return None

    main_path = os.path.dirname(real_common)
    logger.debug("Linked worktree %s -> main checkout %s", directory, main_path)
    return WorktreeDetectionResult(main_worktree_path=main_path, is_linked_worktree=True)
