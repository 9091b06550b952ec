"""Subprocess-backed implementation of the process supervision port."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import shutil
import subprocess  # noqa: S404
from typing import IO, NoReturn

from galera_entrypoint.ports.process_ports import (
    CommandResult,
    IProcessHandle,
    IProcessRunner,
)

logger = logging.getLogger(__name__)

COMMAND_NOT_FOUND = 127


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


class PopenHandle(IProcessHandle):
    """Process handle wrapping ``subprocess.Popen``."""

    def __init__(self, process: subprocess.Popen[bytes]) -> None:
        self._process = process

    @property
    def pid(self) -> int:
        return self._process.pid

    def is_alive(self) -> bool:
        return self._process.poll() is None

    def terminate(self) -> None:
        if self.is_alive():
            logger.debug("Sending SIGTERM to pid %d", self.pid)
            self._process.terminate()

    def wait(self, timeout: float | None = None) -> int | None:
        try:
            return self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None


class SubprocessRunner(IProcessRunner):
    """Runs real programs through the ``subprocess`` module."""

    def run(
        self,
        command: list[str],
        *,
        input_data: bytes | None = None,
        stdin: IO[bytes] | None = None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        logger.debug("Running: %s", " ".join(command))
        try:
            completed = subprocess.run(  # noqa: S603
                command,
                input=input_data,
                stdin=stdin,
                capture_output=True,
                env=env,
                check=False,
            )
        except FileNotFoundError as e:
            return CommandResult(
                command=command,
                returncode=COMMAND_NOT_FOUND,
                stderr=f"{command[0]}: {e.strerror or 'command not found'}",
            )
        return CommandResult(
            command=command,
            returncode=completed.returncode,
            stdout=_decode(completed.stdout),
            stderr=_decode(completed.stderr),
        )

    def spawn(self, command: list[str]) -> PopenHandle:
        logger.debug("Spawning: %s", " ".join(command))
        process = subprocess.Popen(command)  # noqa: S603
        return PopenHandle(process)

    def exec(self, command: list[str]) -> NoReturn:
        logger.debug("Exec: %s", " ".join(command))
        os.execvp(command[0], command)  # noqa: S606

    def which(self, program: str) -> Path | None:
        found = shutil.which(program)
        return Path(found) if found else None
