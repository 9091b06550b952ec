"""Client access to the setup instance over its local socket."""

from __future__ import annotations

import gzip
import logging
from pathlib import Path

from galera_entrypoint.core.exceptions import ProvisioningFailed
from galera_entrypoint.ports.process_ports import CommandResult, IProcessRunner

logger = logging.getLogger(__name__)

READINESS_QUERY = "SELECT @@wsrep_on;"


def quote_string(value: str) -> str:
    """Quote ``value`` as a single-quoted SQL string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def quote_identifier(name: str) -> str:
    """Quote ``name`` as a backtick-quoted SQL identifier."""
    return "`" + name.replace("`", "``") + "`"


def account(user: str, host: str) -> str:
    return f"{quote_string(user)}@{quote_string(host)}"


class SqlClient:
    """Runs statements through the command-line client as root over a socket."""

    def __init__(
        self, runner: IProcessRunner, socket: str, client_binary: str = "mysql"
    ) -> None:
        self.runner = runner
        self.socket = socket
        self.client_binary = client_binary

    def command(self, database: str | None = None) -> list[str]:
        command = [
            self.client_binary,
            "--protocol=socket",
            "-uroot",
            "-hlocalhost",
            f"--socket={self.socket}",
        ]
        if database:
            command.append(database)
        return command

    def _check(self, result: CommandResult, what: str) -> CommandResult:
        if not result.succeeded:
            msg = f"{what} failed with status {result.returncode}"
            raise ProvisioningFailed(
                msg,
                details={"step": what, "output": result.stderr.strip()},
            )
        return result

    def ping(self) -> bool:
        """Issue the trivial readiness query; True if the server answered."""
        result = self.runner.run(
            self.command(), input_data=READINESS_QUERY.encode()
        )
        return result.succeeded

    def execute(self, sql: str, *, database: str | None = None, what: str = "") -> None:
        """Execute ``sql`` in a single client session.

        Raises:
            ProvisioningFailed: The client exited non-zero
        """
        result = self.runner.run(self.command(database), input_data=sql.encode())
        self._check(result, what or "SQL statement")

    def execute_bytes(
        self, data: bytes, *, database: str | None = None, what: str = ""
    ) -> None:
        result = self.runner.run(self.command(database), input_data=data)
        self._check(result, what or "SQL stream")

    def source_file(self, path: Path) -> None:
        """Stream a plain SQL file into the client."""
        with path.open("rb") as stream:
            result = self.runner.run(self.command(), stdin=stream)
        self._check(result, f"SQL file {path.name}")

    def source_gzip_file(self, path: Path) -> None:
        """Decompress a gzipped SQL file and stream it into the client."""
        try:
            with gzip.open(path, "rb") as stream:
                data = stream.read()
        except (OSError, EOFError) as e:
            msg = f"Cannot decompress {path.name}: {e}"
            raise ProvisioningFailed(msg, details={"file": str(path)}) from e
        self.execute_bytes(data, what=f"Compressed SQL file {path.name}")
