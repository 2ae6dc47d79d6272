"""Path safety checks for paths that end up as write targets.

Two entry points:

- ``validate_effective_cwd`` re-checks the main-worktree path derived from
  git output before it is matched against config. Rejections are soft
  (``None``) and logged.
- ``validate_path`` checks memories paths and deletion targets. It uses a
  wider deny-list since these are written to.

Both resolve symlinks before comparing against the deny-lists, so a link
into ``/etc`` is caught the same way as ``/etc`` itself.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from brain_resolve.errors import PathSafetyError
from brain_resolve.project.matcher import clean_path, is_within

logger = logging.getLogger(__name__)

SYSTEM_PATHS: tuple[str, ...] = (
    "/etc",
    "/usr",
    "/bin",
    "/sbin",
    "/lib",
    "/lib64",
    "/boot",
    "/dev",
    "/proc",
    "/sys",
    "/run",
)

WRITE_PROTECTED_PATHS: tuple[str, ...] = SYSTEM_PATHS + ("/var", "/tmp", "/root")

# Relative to the user's home directory
HOME_PROTECTED_DIRS: tuple[str, ...] = (".ssh", ".gnupg")

_ENCODED_TRAVERSAL = ("%2e%2e", "%2E%2E")


@dataclass(frozen=True)
class PathValidation:
    valid: bool
    normalized_path: str = ""
    error: str = ""


def expand_tilde(path: str) -> str:
    if path == "~" or path.startswith("~/") or path.startswith("~\\"):
        return os.path.expanduser("~") + path[1:]
    return path


def normalize_path(path: str) -> str:
    """Expand ``~``, make absolute, and clean."""
    return clean_path(os.path.abspath(expand_tilde(path)))


def _has_traversal(path: str) -> bool:
    if any(token in path for token in _ENCODED_TRAVERSAL):
        return True
    parts = path.replace("\\", "/").split("/")
    return ".." in parts


def _blocked_root(path: str, blocked: tuple[str, ...]) -> str | None:
    """Return the deny-list entry covering ``path`` (checked lexically and resolved)."""
    home = clean_path(os.path.expanduser("~"))
    roots = list(blocked) + [os.path.join(home, d) for d in HOME_PROTECTED_DIRS]
    candidates = {path.lower(), os.path.realpath(path).lower()}
    for root in roots:
        for form in {clean_path(root), os.path.realpath(root)}:
            lowered = form.lower()
            if any(is_within(candidate, lowered) for candidate in candidates):
                return root
    return None


def _basic_rejection(path: str) -> str | None:
    if not path or not path.strip():
        return "Path cannot be empty"
    if "\0" in path:
        return "Invalid path characters: null byte detected"
    if _has_traversal(path):
        return "Path traversal not allowed"
    return None


def validate_effective_cwd(path: str) -> str | None:
    """Validate a worktree-derived effective cwd.

    Returns the cleaned, symlink-resolved path, or ``None`` if rejected.
    ``..`` segments that cleaning removes are fine; the cleaned path is what
    gets checked against the deny-list.
    """
    reason = None
    if not path or not path.strip():
        reason = "Path cannot be empty"
    elif "\0" in path:
        reason = "Invalid path characters: null byte detected"
    elif not os.path.isabs(path):
        reason = "Path must be absolute"
    elif ".." in clean_path(path).split(os.sep):
        reason = "Path traversal not allowed"
    if reason is not None:
        logger.warning("Rejected effective cwd %r: %s", path, reason)
        return None

    resolved = clean_path(os.path.realpath(clean_path(path)))
    blocked = _blocked_root(resolved, SYSTEM_PATHS)
    if blocked is not None:
        logger.warning("Rejected effective cwd %r: blocked system path %s", path, blocked)
        return None
    return resolved


def validate_path(path: str) -> PathValidation:
    """Validate a write-target path (memories location, deletion target)."""
    reason = _basic_rejection(path)
    if reason is not None:
        return PathValidation(valid=False, error=reason)

    normalized = normalize_path(path)
    blocked = _blocked_root(normalized, WRITE_PROTECTED_PATHS)
    if blocked is not None:
        return PathValidation(valid=False, error=f"System path not allowed: {blocked}")
    return PathValidation(valid=True, normalized_path=normalized)


def validate_path_or_raise(path: str) -> str:
    result = validate_path(path)
    if not result.valid:
        raise PathSafetyError(result.error)
    return result.normalized_path


def explain_path_validation(path: str) -> str:
    """Human-readable reason why a write-target path is (in)valid."""
    result = validate_path(path)
    if result.valid:
        return "Path is valid"
    if result.error.startswith("Path traversal"):
        return "Path contains '..' sequences which could be used to escape directory boundaries"
    if result.error.startswith("Invalid path characters"):
        return "Path contains null bytes which could be used for path truncation attacks"
    if result.error.startswith("System path"):
        return "Path resolves to a system directory which is blocked for security reasons"
    return "Path is empty or contains only whitespace"
