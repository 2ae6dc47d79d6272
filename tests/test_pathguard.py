"""Tests for path safety validation."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from brain_resolve.errors import PathSafetyError
from brain_resolve.project import pathguard
from brain_resolve.project.pathguard import (
    expand_tilde,
    explain_path_validation,
    normalize_path,
    validate_effective_cwd,
    validate_path,
    validate_path_or_raise,
)


class TestValidateEffectiveCwd:
    def test_accepts_absolute_clean_path(self, tmp_path: Path):
        assert validate_effective_cwd(str(tmp_path)) == os.path.realpath(tmp_path)

    def test_cleans_trailing_separator(self, tmp_path: Path):
        assert validate_effective_cwd(str(tmp_path) + "/") == os.path.realpath(tmp_path)

    def test_resolves_symlinks(self, tmp_path: Path):
        (tmp_path / "real").mkdir()
        (tmp_path / "link").symlink_to(tmp_path / "real")
        assert validate_effective_cwd(str(tmp_path / "link")) == os.path.realpath(tmp_path / "real")

    @pytest.mark.parametrize("path", ["", "   "])
    def test_rejects_empty(self, path):
        assert validate_effective_cwd(path) is None

    def test_rejects_relative(self):
        assert validate_effective_cwd("dev/brain") is None

    def test_accepts_dot_dot_removed_by_cleaning(self, tmp_path: Path):
        path = str(tmp_path / "wt" / ".." / "main")
        assert validate_effective_cwd(path) == os.path.join(os.path.realpath(tmp_path), "main")

    def test_cleaned_path_is_checked_against_deny_list(self):
        assert validate_effective_cwd("/Users/dev/../../etc/passwd") is None

    def test_rejects_relative_dot_dot(self):
        assert validate_effective_cwd("..") is None
        assert validate_effective_cwd("../etc") is None

    def test_dotted_names_are_not_traversal(self, tmp_path: Path):
        target = tmp_path / "..hidden"
        assert validate_effective_cwd(str(target)) == os.path.join(os.path.realpath(tmp_path), "..hidden")

    def test_rejects_null_byte(self):
        assert validate_effective_cwd("/Users/dev/brain\0/x") is None

    @pytest.mark.parametrize("path", ["/etc", "/etc/brain", "/usr/local/src", "/proc/1"])
    def test_rejects_system_paths(self, path):
        assert validate_effective_cwd(path) is None

    def test_rejects_symlink_into_system_path(self, tmp_path: Path):
        (tmp_path / "sneaky").symlink_to("/etc")
        assert validate_effective_cwd(str(tmp_path / "sneaky")) is None

    def test_rejects_home_protected(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert validate_effective_cwd(str(tmp_path / ".ssh")) is None
        assert validate_effective_cwd(str(tmp_path / "code")) is not None

    def test_logs_rejection(self, caplog):
        with caplog.at_level("WARNING", logger="brain_resolve.project.pathguard"):
            validate_effective_cwd("/Users/dev/../../etc/passwd")
        assert "blocked system path /etc" in caplog.text


class TestValidatePath:
    def test_valid(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(pathguard, "WRITE_PROTECTED_PATHS", pathguard.SYSTEM_PATHS)
        result = validate_path(str(tmp_path / "notes"))
        assert result.valid
        assert result.normalized_path == str(tmp_path / "notes")

    def test_expands_tilde(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        monkeypatch.setattr(pathguard, "WRITE_PROTECTED_PATHS", pathguard.SYSTEM_PATHS)
        result = validate_path("~/memories")
        assert result.normalized_path == str(tmp_path / "home" / "memories")

    @pytest.mark.parametrize("path", ["/tmp/notes", "/var/lib/x", "/root/notes", "/etc/passwd"])
    def test_write_protected(self, path):
        result = validate_path(path)
        assert not result.valid
        assert result.error.startswith("System path not allowed")

    def test_traversal(self):
        result = validate_path("~/memories/../etc")
        assert not result.valid
        assert result.error == "Path traversal not allowed"

    def test_null_byte(self):
        assert not validate_path("/home/x\0").valid

    def test_empty(self):
        assert validate_path("").error == "Path cannot be empty"

    def test_or_raise(self):
        with pytest.raises(PathSafetyError):
            validate_path_or_raise("/etc/brain")


class TestHelpers:
    def test_expand_tilde(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/dev")
        assert expand_tilde("~") == "/home/dev"
        assert expand_tilde("~/memories") == "/home/dev/memories"
        assert expand_tilde("/abs/~/x") == "/abs/~/x"

    def test_normalize_relative(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert normalize_path("./a/../b") == os.path.join(os.getcwd(), "b")

    def test_explain(self):
        assert "'..'" in explain_path_validation("/a/../b")
        assert "null bytes" in explain_path_validation("/a\0")
        assert "system directory" in explain_path_validation("/etc")
        assert "empty" in explain_path_validation("")
