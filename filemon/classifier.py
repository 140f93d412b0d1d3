"""Decide which notification events mean "a file has fully arrived".

A file counts as arrived once it is closed after being written or moved into a
watched directory. Names starting with a dot are temporary files written before
an atomic rename and are never acted on.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from .channel import EventKind, RawEvent

ARRIVAL_KINDS = EventKind.CLOSED_AFTER_WRITE | EventKind.MOVED_INTO

TEMP_FILE_PREFIX = "."

# Order used when describing a mask in the logs.
_MASK_NAMES = (
    (EventKind.ACCESSED, "IN_ACCESS"),
    (EventKind.ATTRIBUTE_CHANGED, "IN_ATTRIB"),
    (EventKind.CLOSED_NO_WRITE, "IN_CLOSE_NOWRITE"),
    (EventKind.CLOSED_AFTER_WRITE, "IN_CLOSE_WRITE"),
    (EventKind.CREATED, "IN_CREATE"),
    (EventKind.DELETED, "IN_DELETE"),
    (EventKind.DELETED_SELF, "IN_DELETE_SELF"),
    (EventKind.WATCH_REMOVED, "IN_IGNORED"),
    (EventKind.IS_DIRECTORY, "IN_ISDIR"),
    (EventKind.MODIFIED, "IN_MODIFY"),
    (EventKind.SELF_MOVED, "IN_MOVE_SELF"),
    (EventKind.MOVED_FROM, "IN_MOVED_FROM"),
    (EventKind.MOVED_INTO, "IN_MOVED_TO"),
    (EventKind.OPENED, "IN_OPEN"),
    (EventKind.QUEUE_OVERFLOW, "IN_Q_OVERFLOW"),
    (EventKind.UNMOUNTED, "IN_UNMOUNT"),
)


def describe_mask(mask: int) -> str:
    """Return the inotify flag names set in `mask`, space separated."""
    return " ".join(name for kind, name in _MASK_NAMES if mask & kind)


def join_path(directory: str, name: str) -> str:
    """Join with exactly one separator, keeping a trailing one on `directory`."""
    if directory.endswith(os.sep):
        return directory + name
    return directory + os.sep + name


def log_event(event: RawEvent, path: str, logger: logging.Logger) -> None:
    logger.info("event [dir_name='%s' wd=%d]", path, event.handle)
    if event.cookie:
        logger.debug("cookie=%d", event.cookie)
    if event.name:
        logger.info("file name = %s", event.name)
    else:
        logger.info("*no file name*")
    logger.info("mask = %s", describe_mask(event.mask))


def classify_event(event: RawEvent, path: str, logger: Optional[logging.Logger] = None) -> Optional[str]:
    """Return the full path to act on, or None when the event is ignored.

    `path` is the watched path the event's handle resolved to.
    """
    logger = logger or logging.getLogger("filemon")
    log_event(event, path, logger)

    if not event.name:
        logger.debug("Ignoring event for %s: no file name", path)
        return None
    if not event.mask & ARRIVAL_KINDS:
        logger.debug("Ignoring event for %s: file has not arrived", join_path(path, event.name))
        return None
    if event.name.startswith(TEMP_FILE_PREFIX):
        logger.debug("Ignoring temporary file: %s", event.name)
        return None
    return join_path(path, event.name)
