"""Startup configuration for filemon.

The watcher builds one MonitorConfig from its command line and hands it to the
monitor; nothing mutates it afterwards.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable, Optional

from .errors import ConfigError

PATH_MAX = 4096

# Room for a full path plus the command template itself.
MAX_COMMAND_LEN = PATH_MAX * 2


@dataclass(frozen=True)
class MonitorConfig:
    """Paths to watch and the command template to run for each arrived file."""

    paths: tuple[str, ...]
    command: str
    max_command_len: int = MAX_COMMAND_LEN

    def __post_init__(self) -> None:
        if not self.paths:
            raise ConfigError("No files or directories to watch")
        if not self.command or not self.command.strip():
            raise ConfigError("No command given")
        if self.max_command_len <= 0:
            raise ConfigError(f"Invalid maximum command length: {self.max_command_len}")
        if len(os.fsencode(self.command)) > self.max_command_len:
            raise ConfigError("Invalid command length")
        for path in self.paths:
            if not os.path.isabs(path):
                raise ConfigError(f"Watched path must be absolute: {path}")

    @classmethod
    def from_args(
        cls,
        raw_paths: Optional[Iterable[str]],
        command: Optional[str],
        max_command_len: int = MAX_COMMAND_LEN,
    ) -> "MonitorConfig":
        """Canonicalize `raw_paths` and validate everything else.

        - Order of `raw_paths` is kept; duplicates are not removed.
        - A path that does not exist is a ConfigError.
        """
        resolved = tuple(resolve_path(path) for path in raw_paths or ())
        return cls(paths=resolved, command=command or "", max_command_len=max_command_len)


def resolve_path(path: str) -> str:
    try:
        return os.path.realpath(path, strict=True)
    except OSError as exc:
        raise ConfigError(f"Error calculating absolute path for {path}: {exc.strerror}") from exc
