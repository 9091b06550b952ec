"""Fatal-error evidence bundle.

Every fatal path of the entrypoint ends here: the originating error and its
catalog help are written to stderr together with the process identity, the
data directory listing, the tail of the server error log and the system
journal. Each collection step tolerates its own failure so that one missing
tool never hides the rest of the evidence.
"""

from __future__ import annotations

from collections import deque
import logging
import os
from pathlib import Path
import pwd
import sys
from typing import NoReturn, TextIO

from galera_entrypoint.core.exceptions import EntrypointError
from galera_entrypoint.ports.process_ports import IProcessRunner
from galera_entrypoint.startup.classifier import ERROR_LOG
from galera_entrypoint.startup.error_catalog import StartupErrorCatalog, error_catalog

logger = logging.getLogger(__name__)

ERROR_LOG_TAIL_LINES = 1024
JOURNAL_COMMAND = ["journalctl", "-xe", "--no-pager"]


def tail_lines(path: Path, count: int = ERROR_LOG_TAIL_LINES) -> list[str]:
    """Return the last ``count`` lines of a text file."""
    with path.open(encoding="utf-8", errors="replace") as f:
        return [line.rstrip("\n") for line in deque(f, maxlen=count)]


class DiagnosticsReporter:
    """Writes the diagnostic dump for a fatal entrypoint error."""

    def __init__(
        self,
        runner: IProcessRunner,
        output: TextIO | None = None,
        catalog: StartupErrorCatalog | None = None,
    ) -> None:
        self.runner = runner
        self.output = output or sys.stderr
        self.catalog = catalog or error_catalog

    def _print(self, message: str = "") -> None:
        print(message, file=self.output)  # noqa: T201

    def _section(self, title: str) -> None:
        self._print()
        self._print(f">>> {title}")

    def report(self, error: EntrypointError, datadir: Path | None = None) -> None:
        """Write the full evidence bundle for ``error``."""
        self._print(f"ERROR: {error}")
        self._print(f"Phase: {error.phase}")
        for key, value in error.details.items():
            self._print(f"  {key}: {value}")
        self._print()
        self._print(self.catalog.format_error_help(error.error_code))

        self._report_identity()
        if datadir is not None:
            self._report_listing(datadir)
            self._report_error_log(datadir / ERROR_LOG)
        self._report_journal()
        self.output.flush()

    def fail(self, error: EntrypointError, datadir: Path | None = None) -> NoReturn:
        """Report ``error`` and terminate with its exit code."""
        logger.error("Fatal: %s", error)
        self.report(error, datadir)
        sys.exit(error.exit_code)

    def _report_identity(self) -> None:
        self._section("Process identity")
        uid, gid = os.getuid(), os.getgid()
        try:
            user = pwd.getpwuid(uid).pw_name
        except KeyError:
            user = "(unknown)"
        self._print(f"uid={uid}({user}) gid={gid}")

    def _report_listing(self, datadir: Path) -> None:
        self._section(f"Contents of {datadir}")
        result = self.runner.run(["ls", "-l", str(datadir)])
        if result.stdout:
            self._print(result.stdout.rstrip("\n"))
        if not result.succeeded:
            self._print(result.stderr.strip() or f"ls exited with {result.returncode}")

    def _report_error_log(self, path: Path) -> None:
        self._section(f"Last {ERROR_LOG_TAIL_LINES} lines of {path}")
        try:
            lines = tail_lines(path)
        except OSError as e:
            self._print(f"Could not read {path}: {e.strerror or e}")
            return
        for line in lines:
            self._print(line)

    def _report_journal(self) -> None:
        self._section("System journal")
        if self.runner.which(JOURNAL_COMMAND[0]) is None:
            self._print("journalctl not available")
            return
        result = self.runner.run(JOURNAL_COMMAND)
        self._print(result.stdout.rstrip("\n"))
        if not result.succeeded and result.stderr:
            self._print(result.stderr.strip())
