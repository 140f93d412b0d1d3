from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from logging.handlers import RotatingFileHandler, SysLogHandler
from typing import Optional, Sequence

from filemon.config import MAX_COMMAND_LEN, MonitorConfig
from filemon.dispatcher import CommandDispatcher
from filemon.errors import CommandTooLong, FatalError

try:
    from filemon.channel import NO_WATCH, EventKind, InotifyChannel, NotificationChannel, RawEvent
except ImportError:  # watchdog not available
    print("Required package 'watchdog' is not installed. Install with: python -m pip install watchdog")
    sys.exit(1)

# Both import filemon.channel, so they must come after the check above.
from filemon.classifier import classify_event
from filemon.registry import PathRegistry


class FileMonitor:
    """Reads event batches from a channel and runs the command for each arrived file.

    Commands run one at a time, in event order; no further events are read
    while a command is running. The loop stops at the top of its next
    iteration once `cancel` is set.
    """

    def __init__(
        self,
        config: MonitorConfig,
        channel: NotificationChannel,
        logger: logging.Logger,
        dispatcher: Optional[CommandDispatcher] = None,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        self.config = config
        self.channel = channel
        self.logger = logger
        self.dispatcher = dispatcher or CommandDispatcher(logger, max_command_len=config.max_command_len)
        self.cancel = cancel or threading.Event()
        self.registry = PathRegistry(channel, logger)

    def setup(self) -> None:
        for path in self.config.paths:
            self.registry.register(path)
        self.registry.seal()
        for entry in self.registry.entries:
            self.logger.debug("wd=%d -> %s", entry.handle, entry.path)
        self.logger.info("ready!")

    def run(self) -> None:
        if not self.registry.sealed:
            self.setup()
        while not self.cancel.is_set():
            for event in self.channel.read_batch():
                self.handle_event(event)
        self.logger.info("Shutdown requested, stopping monitor")

    def handle_event(self, event: RawEvent) -> None:
        if event.handle == NO_WATCH:
            if event.mask & EventKind.QUEUE_OVERFLOW:
                self.logger.warning("inotify event queue overflowed; events were dropped")
            return

        path = self.registry.lookup(event.handle)
        full_path = classify_event(event, path, self.logger)
        if full_path is None:
            return

        try:
            self.dispatcher.run(self.config.command, full_path)
        except CommandTooLong as exc:
            self.logger.error("Command buffer overflow, skipping %s: %s", full_path, exc)


def setup_logger(logdir: str | None = None, verbose: bool = False, use_syslog: bool = False) -> logging.Logger:
    logger = logging.getLogger("filemon")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")

    if logdir:
        os.makedirs(logdir, exist_ok=True)
        logfile = os.path.join(logdir, "filemon.log")
        # Rotating file handler to avoid unbounded log growth
        handler = RotatingFileHandler(logfile, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if use_syslog:
        syslog = SysLogHandler(address="/dev/log")
        syslog.setFormatter(logging.Formatter("filemon[%(process)d]: %(message)s"))
        logger.addHandler(syslog)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    return logger


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Monitors one or more files or directories; when a file is closed after writing "
            "or moved into a watched directory, runs a command on it."
        ),
        epilog='Example: filemon -d /tmp/ -d /srv/incoming -c "ls -l"',
    )
    parser.add_argument(
        "--dir", "-d",
        dest="paths",
        action="append",
        default=[],
        help="File or directory to watch (repeatable)",
    )
    parser.add_argument("--command", "-c", help="Command to run; the file path is appended as its last argument")
    parser.add_argument("--logdir", "-l", help="Directory to write a rotating log file to")
    parser.add_argument("--syslog", action="store_true", help="Also log to the local syslog daemon")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug details")
    parser.add_argument(
        "--max-command-length",
        type=int,
        default=MAX_COMMAND_LEN,
        help=f"Longest command line to run (default {MAX_COMMAND_LEN})",
    )
    return parser.parse_args(argv)


def install_signal_handlers(cancel: threading.Event, channel: NotificationChannel) -> None:
    def request_stop(signum, frame):
        cancel.set()
        channel.wake()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logger = setup_logger(args.logdir, verbose=args.verbose, use_syslog=args.syslog)

    logger.info("command: %s", args.command)
    logger.info("number of specified files/directories: %d", len(args.paths))
    for i, path in enumerate(args.paths):
        logger.info("directory[%d]: %s", i, path)

    channel = None
    try:
        config = MonitorConfig.from_args(args.paths, args.command, args.max_command_length)
        channel = InotifyChannel.open(logger)
        cancel = threading.Event()
        install_signal_handlers(cancel, channel)
        monitor = FileMonitor(config, channel, logger, cancel=cancel)
        monitor.setup()
        monitor.run()
    except FatalError as exc:
        logger.error("%s", exc)
        return exc.exit_code
    finally:
        if channel is not None:
            channel.close()
    logger.info("Stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
