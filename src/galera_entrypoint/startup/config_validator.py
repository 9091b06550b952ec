"""Server configuration validation and introspection.

The server binary is the only authority on its effective configuration: it
merges option files, includes and command-line overrides that the entrypoint
never sees. Both validation and value lookup therefore ask the binary itself,
through its ``--verbose --help`` self-check mode.
"""

from __future__ import annotations

import logging
from pathlib import Path
import tempfile
import uuid

from galera_entrypoint.core.exceptions import InvalidConfiguration
from galera_entrypoint.ports.process_ports import IProcessRunner

logger = logging.getLogger(__name__)

INTROSPECTION_FLAGS = ["--verbose", "--help"]


def throwaway_log_index() -> str:
    """Path of a log index file that does not exist, so no real state is touched."""
    return str(Path(tempfile.gettempdir()) / f"tmp.{uuid.uuid4().hex}")


def parse_effective_config(output: str) -> dict[str, str]:
    """Parse ``key value`` lines from the server's help output.

    Only the first two whitespace separated tokens are kept; lines with a
    single token are ignored.
    """
    values: dict[str, str] = {}
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[0] not in values:  # noqa: PLR2004
            values[parts[0]] = parts[1]
    return values


class ConfigValidator:
    """Validates server arguments and extracts effective values."""

    def __init__(self, runner: IProcessRunner) -> None:
        self.runner = runner

    def _introspection_command(self, command: list[str]) -> list[str]:
        return [
            *command,
            *INTROSPECTION_FLAGS,
            f"--log-bin-index={throwaway_log_index()}",
        ]

    def validate(self, command: list[str]) -> None:
        """Confirm the server accepts its merged configuration.

        Raises:
            InvalidConfiguration: The server wrote errors or exited non-zero
        """
        check_command = self._introspection_command(command)
        result = self.runner.run(check_command)

        output = result.stderr.strip()
        if not result.succeeded:
            output = f"{output}\n{result.returncode}".strip()

        if output:
            logger.error("Config validation error, please check your configuration!")
            logger.error("Command failed: %s", " ".join(check_command))
            logger.error("Error output: %s", output)
            msg = "Config validation error, please check your configuration!"
            raise InvalidConfiguration(msg, command=check_command, output=output)

        logger.debug("Server configuration accepted")

    def effective_config(self, command: list[str]) -> dict[str, str]:
        """Return every ``key value`` pair the server reports."""
        result = self.runner.run(self._introspection_command(command))
        return parse_effective_config(result.stdout)

    def get_value(self, key: str, command: list[str]) -> str | None:
        """Extract the effective value of ``key``, or None if the server omits it."""
        return self.effective_config(command).get(key)
