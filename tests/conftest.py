"""Shared fixtures: isolated Brain config, env, and real git worktrees."""

from __future__ import annotations

import json
import re
import shutil
import subprocess
from pathlib import Path

import pytest

from brain_resolve.config import ResolverSettings

RESOLVER_ENV = [
    "BRAIN_PROJECT",
    "BM_PROJECT",
    "BRAIN_DISABLE_WORKTREE_DETECTION",
    "BRAIN_RESOLVE_LOG_LEVEL",
    "BRAIN_GIT_TIMEOUT",
    "BRAIN_ACTIVE_PROJECT_TIMEOUT",
    "BASIC_MEMORY_CONFIG",
]


def _git_supports_path_format() -> bool:
    if shutil.which("git") is None:
        return False
    out = subprocess.run(["git", "--version"], capture_output=True, text=True).stdout
    m = re.search(r"(\d+)\.(\d+)", out)
    return bool(m) and (int(m.group(1)), int(m.group(2))) >= (2, 31)


requires_git = pytest.mark.skipif(
    not _git_supports_path_format(), reason="git >= 2.31 required"
)


def git(*args: str, cwd: Path) -> None:
    subprocess.run(
        ["git", "-c", "user.name=test", "-c", "user.email=test@example.com", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
    )


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path, monkeypatch):
    """Keep the real user's config and env vars out of every test."""
    for key in RESOLVER_ENV:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("BRAIN_CONFIG_PATH", str(tmp_path / "brain" / "config.json"))


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "brain" / "config.json"


@pytest.fixture
def write_config(config_path: Path):
    def _write(projects: dict, **extra) -> Path:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(
            json.dumps({"version": "2.0.0", "projects": projects, **extra}),
            encoding="utf-8",
        )
        return config_path

    return _write


@pytest.fixture
def settings(tmp_path: Path) -> ResolverSettings:
    """Settings whose active-project command never exists."""
    return ResolverSettings(
        active_project_command=["brain-resolve-test-no-such-binary"],
        basic_memory_config=tmp_path / "basic-memory" / "config.json",
    )


@pytest.fixture
def linked_worktree(tmp_path: Path) -> tuple[Path, Path]:
    """A main repository and a linked worktree of it: (main, worktree)."""
    main = tmp_path / "repos" / "main"
    main.mkdir(parents=True)
    git("init", "-q", cwd=main)
    git("commit", "-q", "--allow-empty", "-m", "init", cwd=main)
    worktree = tmp_path / "repos" / "feature-wt"
    git("worktree", "add", "-q", str(worktree), cwd=main)
    return main.resolve(), worktree.resolve()


@pytest.fixture
def allow_tmp_writes(monkeypatch):
    """Let write-target validation accept paths under the pytest tmp dir."""
    from brain_resolve.project import pathguard

    monkeypatch.setattr(pathguard, "WRITE_PROTECTED_PATHS", pathguard.SYSTEM_PATHS)
