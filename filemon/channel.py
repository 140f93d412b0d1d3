"""Filesystem notification channel for filemon.

`InotifyChannel` subscribes paths on a single Linux inotify descriptor using the
bindings shipped with watchdog, and hands back raw event records in the batches
the kernel delivers them. `NotificationChannel` is the interface the monitor
depends on, so tests and other platforms can supply their own channel.
"""
from __future__ import annotations

import ctypes
import errno
import logging
import os
import select
from dataclasses import dataclass
from enum import IntFlag
from typing import Optional, Protocol, Sequence

from watchdog.observers.inotify_c import (
    Inotify,
    InotifyConstants,
    inotify_add_watch,
    inotify_init,
)

from .errors import (
    ChannelClosedError,
    ChannelInitError,
    ChannelReadError,
    WatchRegistrationError,
)

NAME_MAX = 255
EVENT_HEADER_SIZE = 16

# Ten maximum-length records per read.
READ_BUFFER_SIZE = 10 * (EVENT_HEADER_SIZE + NAME_MAX + 1)

# Handle the kernel puts on records that belong to no watch (queue overflow).
NO_WATCH = -1


class EventKind(IntFlag):
    ACCESSED = InotifyConstants.IN_ACCESS
    MODIFIED = InotifyConstants.IN_MODIFY
    ATTRIBUTE_CHANGED = InotifyConstants.IN_ATTRIB
    CLOSED_AFTER_WRITE = InotifyConstants.IN_CLOSE_WRITE
    CLOSED_NO_WRITE = InotifyConstants.IN_CLOSE_NOWRITE
    OPENED = InotifyConstants.IN_OPEN
    MOVED_FROM = InotifyConstants.IN_MOVED_FROM
    MOVED_INTO = InotifyConstants.IN_MOVED_TO
    CREATED = InotifyConstants.IN_CREATE
    DELETED = InotifyConstants.IN_DELETE
    DELETED_SELF = InotifyConstants.IN_DELETE_SELF
    SELF_MOVED = InotifyConstants.IN_MOVE_SELF
    UNMOUNTED = InotifyConstants.IN_UNMOUNT
    QUEUE_OVERFLOW = InotifyConstants.IN_Q_OVERFLOW
    WATCH_REMOVED = InotifyConstants.IN_IGNORED
    IS_DIRECTORY = InotifyConstants.IN_ISDIR


# Kinds a watch is subscribed for; the kernel adds the rest on its own.
WATCH_ALL = EventKind(InotifyConstants.IN_ALL_EVENTS)


@dataclass(frozen=True)
class RawEvent:
    """One notification record as read from the channel."""

    handle: int
    mask: EventKind
    cookie: int = 0
    name: Optional[str] = None


class NotificationChannel(Protocol):
    def register_watch(self, path: str) -> int: ...

    def read_batch(self) -> Sequence[RawEvent]: ...

    def wake(self) -> None: ...

    def close(self) -> None: ...


class InotifyChannel:
    """One inotify instance shared by every watched path.

    Use `InotifyChannel.open()` to acquire it and `close()` once the monitor has
    stopped. `read_batch()` blocks until the kernel has events or `wake()` is
    called, typically from a signal handler.
    """

    def __init__(self, fd: int, logger: Optional[logging.Logger] = None, buffer_size: int = READ_BUFFER_SIZE) -> None:
        self._fd = fd
        self._buffer_size = buffer_size
        self._logger = logger or logging.getLogger("filemon")
        self._closed = False

        # Same kill-pipe arrangement watchdog's Inotify uses to stop a blocked reader.
        self._kill_r, self._kill_w = os.pipe()
        os.set_blocking(self._kill_w, False)
        self._poller = select.poll()
        self._poller.register(self._fd, select.POLLIN)
        self._poller.register(self._kill_r, select.POLLIN)

    @classmethod
    def open(cls, logger: Optional[logging.Logger] = None) -> "InotifyChannel":
        fd = inotify_init()
        if fd == -1:
            err = ctypes.get_errno()
            raise ChannelInitError(f"inotify_init failed: {os.strerror(err)}")
        return cls(fd, logger=logger)

    @property
    def fd(self) -> int:
        return self._fd

    def register_watch(self, path: str) -> int:
        """Subscribe `path` for every event kind and return its watch handle."""
        handle = inotify_add_watch(self._fd, os.fsencode(path), int(WATCH_ALL))
        if handle == -1:
            err = ctypes.get_errno()
            if err == errno.ENOSPC:
                reason = "inotify watch limit reached"
            else:
                reason = os.strerror(err)
            raise WatchRegistrationError(path, reason)
        return handle

    def read_batch(self) -> list[RawEvent]:
        """Block until the kernel delivers events and return them in order.

        Returns an empty list only when woken through `wake()`.
        """
        while True:
            try:
                if not self._wait_readable():
                    return []
                data = os.read(self._fd, self._buffer_size)
            except InterruptedError:
                self._logger.debug("read() from inotify fd interrupted by signal, retrying")
                continue
            except OSError as exc:
                raise ChannelReadError(f"read() from inotify fd failed: {exc}") from exc
            break

        if not data:
            raise ChannelClosedError("read() from inotify fd returned 0 bytes")

        self._logger.debug("read %d bytes from inotify fd", len(data))
        return [self._to_event(*record) for record in Inotify._parse_event_buffer(data)]

    def wake(self) -> None:
        """Make a blocked or upcoming `read_batch()` return an empty batch."""
        if self._closed:
            return
        try:
            os.write(self._kill_w, b"!")
        except BlockingIOError:
            # Pipe already full; the reader is woken either way.
            pass

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        os.close(self._fd)
        os.close(self._kill_r)
        os.close(self._kill_w)

    def _wait_readable(self) -> bool:
        ready = [fd for fd, _ in self._poller.poll()]
        if self._kill_r in ready:
            self._drain_kill_pipe()
            return False
        return self._fd in ready

    def _drain_kill_pipe(self) -> None:
        os.set_blocking(self._kill_r, False)
        try:
            while os.read(self._kill_r, 64):
                pass
        except BlockingIOError:
            pass
        finally:
            os.set_blocking(self._kill_r, True)

    @staticmethod
    def _to_event(handle: int, mask: int, cookie: int, name: bytes) -> RawEvent:
        return RawEvent(
            handle=handle,
            mask=EventKind(mask),
            cookie=cookie,
            name=os.fsdecode(name) if name else None,
        )
