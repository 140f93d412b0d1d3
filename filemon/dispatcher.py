"""Command construction and synchronous execution for filemon.

This module builds the command line for an arrived file and runs it through
`/bin/sh -c`, blocking until the child terminates. `run_shell_command` is the
default runner; `CommandDispatcher` accepts any callable with the same shape.
"""
from __future__ import annotations

import errno
import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .config import MAX_COMMAND_LEN
from .errors import CommandTooLong, SpawnError

# errno values from fork() itself; anything else happened while exec'ing the shell.
FORK_ERRNOS = frozenset({errno.EAGAIN, errno.ENOMEM})

# Status a shell reports when it cannot execute a command.
EXEC_FAILED_STATUS = 127


@dataclass(frozen=True)
class DispatchCommand:
    executable_line: str


@dataclass(frozen=True)
class Exited:
    code: int

    def __str__(self) -> str:
        return f"Exited({self.code})"


@dataclass(frozen=True)
class Signaled:
    signal: int

    def __str__(self) -> str:
        return f"Signaled({self.signal})"


ProcessOutcome = Union[Exited, Signaled]

CommandRunner = Callable[[DispatchCommand, logging.Logger], ProcessOutcome]


def build_command(template: str, full_path: str, max_len: int = MAX_COMMAND_LEN) -> DispatchCommand:
    """Append `full_path` to `template`, separated by one space.

    Raises CommandTooLong when the result would exceed `max_len` bytes in the
    filesystem encoding.
    """
    length = len(os.fsencode(template)) + 1 + len(os.fsencode(full_path))
    if length > max_len:
        raise CommandTooLong(length, max_len)
    return DispatchCommand(f"{template} {full_path}")


def run_shell_command(command: DispatchCommand, logger: logging.Logger) -> ProcessOutcome:
    try:
        child = subprocess.Popen(command.executable_line, shell=True)
    except OSError as exc:
        if exc.errno in FORK_ERRNOS:
            raise SpawnError(f"cannot fork: {exc.strerror}") from exc
        logger.error("[child process] exec failed: %s", exc)
        return Exited(EXEC_FAILED_STATUS)

    logger.debug("[child process] pid=%d", child.pid)
    # Popen.wait() retries the underlying waitpid() on EINTR.
    returncode = child.wait()
    if returncode < 0:
        return Signaled(-returncode)
    return Exited(returncode)


class CommandDispatcher:
    """Runs the configured command for each arrived file, one at a time."""

    def __init__(
        self,
        logger: logging.Logger,
        max_command_len: int = MAX_COMMAND_LEN,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        self.logger = logger
        self.max_command_len = max_command_len
        self.runner = runner or run_shell_command

    def run(self, command_template: str, full_path: str) -> ProcessOutcome:
        """Build and run the command line for `full_path` and wait for it.

        Raises CommandTooLong before anything is spawned, and SpawnError when
        no child process could be created.
        """
        command = build_command(command_template, full_path, self.max_command_len)
        self.logger.info("cmd: %s", command.executable_line)

        outcome = self.runner(command, self.logger)
        if isinstance(outcome, Signaled):
            self.logger.info("[parent] child process killed by signal %d", outcome.signal)
        else:
            self.logger.info("[parent] child process terminated, exit status: %d", outcome.code)
        return outcome
