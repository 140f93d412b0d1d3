"""Mapping from watch handles back to the paths they were registered for."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .channel import NotificationChannel
from .errors import RegistryDesync


@dataclass(frozen=True)
class WatchEntry:
    handle: int
    path: str


class PathRegistry:
    """Registers paths on a channel and resolves event handles to those paths.

    All registration happens before the monitor starts reading; `seal()` marks
    the end of setup and any later `register()` is a programming error.
    """

    def __init__(self, channel: NotificationChannel, logger: Optional[logging.Logger] = None) -> None:
        self._channel = channel
        self._logger = logger or logging.getLogger("filemon")
        self._entries: dict[int, WatchEntry] = {}
        self._sealed = False

    def register(self, path: str) -> int:
        if self._sealed:
            raise RuntimeError("Registry is sealed; paths cannot be added while monitoring")
        self._logger.info("watching %s", path)
        handle = self._channel.register_watch(path)
        # Registering a path twice is allowed; the later handle wins.
        self._entries[handle] = WatchEntry(handle, path)
        return handle

    def lookup(self, handle: int) -> str:
        try:
            return self._entries[handle].path
        except KeyError:
            raise RegistryDesync(handle) from None

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def entries(self) -> tuple[WatchEntry, ...]:
        return tuple(self._entries.values())
