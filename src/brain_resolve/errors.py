"""Exceptions raised across the brain_resolve package.

Only configuration errors escape project resolution. Everything else
(subprocess failures, path-safety rejections) degrades to "no match".
"""

from __future__ import annotations


class BrainResolveError(Exception):
    """Base exception for brain_resolve."""


class ConfigError(BrainResolveError):
    """Raised when the Brain config file exists but cannot be parsed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Invalid Brain config at {path}: {reason}")
        self.path = path
        self.reason = reason


class PathSafetyError(BrainResolveError):
    """Raised when a write-target path fails validation."""


class TranslationError(BrainResolveError):
    """Raised when syncing the basic-memory config fails."""

    def __init__(self, message: str, code: str = "IO_ERROR") -> None:
        super().__init__(message)
        self.code = code
