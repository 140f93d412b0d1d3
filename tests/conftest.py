"""Shared fixtures for filemon tests"""
import logging
import signal
from collections import deque

import pytest

from filemon.channel import RawEvent


class FakeChannel:
    """In-memory notification channel.

    Hands out handles starting at 1 and returns the queued batches in order.
    Once the queue is empty it calls `on_exhausted` (if set) and returns an
    empty batch.
    """

    def __init__(self, batches=None, on_exhausted=None):
        self.batches = deque(batches or [])
        self.on_exhausted = on_exhausted
        self.registered = []
        self.reads = 0
        self.woken = 0
        self.closed = False
        self._next_handle = 1

    def register_watch(self, path):
        handle = self._next_handle
        self._next_handle += 1
        self.registered.append((handle, path))
        return handle

    def read_batch(self):
        self.reads += 1
        if self.batches:
            return list(self.batches.popleft())
        if self.on_exhausted is not None:
            self.on_exhausted()
        return []

    def wake(self):
        self.woken += 1

    def close(self):
        self.closed = True


def make_event(handle, mask, name=None, cookie=0):
    return RawEvent(handle=handle, mask=mask, cookie=cookie, name=name)


@pytest.fixture
def fake_channel_cls():
    return FakeChannel


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def filemon_logger():
    """The 'filemon' logger, with handlers added during the test removed afterwards"""
    logger = logging.getLogger("filemon")
    before = list(logger.handlers)
    level = logger.level
    yield logger
    for handler in logger.handlers[:]:
        if handler not in before:
            handler.close()
            logger.removeHandler(handler)
    logger.setLevel(level)


@pytest.fixture
def restore_signal_handlers():
    saved = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
    yield
    for sig, handler in saved.items():
        signal.signal(sig, handler)
