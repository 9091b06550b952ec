"""Process supervision port interfaces.

Defines the contract the startup pipeline uses to run, spawn and replace
processes. Components depend on this abstraction so tests can substitute a
fake runner for the real server and client binaries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import IO, NoReturn


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a run-to-completion command."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


class IProcessHandle(ABC):
    """Handle to a spawned child process.

    Owned exclusively by the component that spawned it.
    """

    @property
    @abstractmethod
    def pid(self) -> int:
        """Operating system process id."""

    @abstractmethod
    def is_alive(self) -> bool:
        """Return True while the child has not exited."""

    @abstractmethod
    def terminate(self) -> None:
        """Ask the child to stop gracefully (SIGTERM)."""

    @abstractmethod
    def wait(self, timeout: float | None = None) -> int | None:
        """Wait for the child to exit.

        Args:
            timeout: Seconds to wait, or None to wait forever

        Returns:
            Exit status, or None if the child is still running at timeout
        """


class IProcessRunner(ABC):
    """Interface for running external programs."""

    @abstractmethod
    def run(
        self,
        command: list[str],
        *,
        input_data: bytes | None = None,
        stdin: IO[bytes] | None = None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """Run a command to completion, capturing stdout and stderr.

        Args:
            command: Program and arguments
            input_data: Bytes fed to the child's stdin
            stdin: Open file streamed to the child's stdin
            env: Full replacement environment, or None to inherit

        Returns:
            The command result; a missing program yields returncode 127
        """

    @abstractmethod
    def spawn(self, command: list[str]) -> IProcessHandle:
        """Start a command in the background and return its handle."""

    @abstractmethod
    def exec(self, command: list[str]) -> NoReturn:
        """Replace the current process image with ``command``.

        Never returns on success. Raises OSError if the program cannot be
        executed.
        """

    @abstractmethod
    def which(self, program: str) -> Path | None:
        """Locate ``program`` on PATH."""
