"""Tests for filemon.config module"""
import os
import sys

import pytest

from filemon.config import MAX_COMMAND_LEN, PATH_MAX, MonitorConfig, resolve_path
from filemon.errors import ConfigError


class TestMonitorConfig:
    """Test suite for MonitorConfig validation"""

    def test_default_max_command_len(self):
        """Test that the default bound is twice the platform path limit"""
        config = MonitorConfig(paths=("/tmp",), command="ls -l")
        assert config.max_command_len == MAX_COMMAND_LEN == 2 * PATH_MAX

    def test_rejects_empty_paths(self):
        """Test that a config without watched paths is a setup error"""
        with pytest.raises(ConfigError, match="No files or directories"):
            MonitorConfig(paths=(), command="ls")

    @pytest.mark.parametrize("command", ["", "   ", None])
    def test_rejects_missing_command(self, command):
        """Test that a missing or blank command is a setup error"""
        with pytest.raises(ConfigError, match="No command"):
            MonitorConfig(paths=("/tmp",), command=command)

    def test_rejects_oversized_command(self):
        """Test that a command longer than the bound is a setup error"""
        with pytest.raises(ConfigError, match="command length"):
            MonitorConfig(paths=("/tmp",), command="x" * 11, max_command_len=10)

    def test_command_at_bound_is_accepted(self):
        """Test that a command exactly at the bound is accepted"""
        config = MonitorConfig(paths=("/tmp",), command="x" * 10, max_command_len=10)
        assert config.command == "x" * 10

    @pytest.mark.skipif(sys.getfilesystemencoding().lower() != "utf-8", reason="needs a UTF-8 filesystem encoding")
    def test_command_bound_counts_encoded_bytes(self):
        """Test that a non-ASCII command is measured in bytes against the bound"""
        with pytest.raises(ConfigError, match="command length"):
            MonitorConfig(paths=("/tmp",), command="é" * 6, max_command_len=10)

    def test_rejects_relative_paths(self):
        """Test that watched paths must already be absolute"""
        with pytest.raises(ConfigError, match="absolute"):
            MonitorConfig(paths=("relative/dir",), command="ls")

    def test_config_is_immutable(self):
        """Test that the config cannot be changed once built"""
        config = MonitorConfig(paths=("/tmp",), command="ls")
        with pytest.raises(AttributeError):
            config.command = "rm"


class TestFromArgs:
    """Test suite for MonitorConfig.from_args"""

    def test_resolves_relative_paths(self, tmp_path, monkeypatch):
        """Test that relative paths are made absolute"""
        (tmp_path / "inbox").mkdir()
        monkeypatch.chdir(tmp_path)

        config = MonitorConfig.from_args(["inbox"], "ls")

        assert config.paths == (os.path.realpath(tmp_path / "inbox"),)

    def test_keeps_order_and_duplicates(self, tmp_path):
        """Test that path order is preserved and duplicates are kept"""
        first = tmp_path / "a"
        second = tmp_path / "b"
        first.mkdir()
        second.mkdir()

        config = MonitorConfig.from_args([str(second), str(first), str(second)], "ls")

        assert [os.path.basename(p) for p in config.paths] == ["b", "a", "b"]

    def test_missing_path_is_config_error(self, tmp_path):
        """Test that a path which does not exist is a setup error"""
        with pytest.raises(ConfigError, match="absolute path"):
            MonitorConfig.from_args([str(tmp_path / "missing")], "ls")

    def test_no_paths(self):
        """Test that None paths are rejected like an empty list"""
        with pytest.raises(ConfigError):
            MonitorConfig.from_args(None, "ls")

    def test_resolve_path_strips_trailing_separator(self, tmp_path):
        """Test that canonical paths carry no trailing separator"""
        assert resolve_path(str(tmp_path) + os.sep) == os.path.realpath(tmp_path)
