"""One-time data directory initialization.

Initialization is strictly at-most-once per data directory: once the system
database exists it is never recreated, whatever the bootstrap mode.
"""

from __future__ import annotations

import logging
from pathlib import Path
import shutil

from galera_entrypoint.core.exceptions import InitializationFailed
from galera_entrypoint.ports.process_ports import IProcessRunner
from galera_entrypoint.startup.classifier import DataDirectory

logger = logging.getLogger(__name__)

INITIALIZE_FLAGS = ["--initialize-insecure", "--tls-version="]


def clear_directory(path: Path) -> None:
    """Remove everything inside ``path`` and make sure the directory exists."""
    if path.is_dir():
        for entry in path.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
    path.mkdir(parents=True, exist_ok=True)


class Initializer:
    """Creates the on-disk data store for a fresh node."""

    def __init__(self, runner: IProcessRunner) -> None:
        self.runner = runner

    def needs_initialization(self, datadir: DataDirectory) -> bool:
        return not datadir.has_data_store()

    def initialize(self, datadir: DataDirectory, command: list[str]) -> bool:
        """Initialize ``datadir`` unless it already holds a data store.

        Args:
            datadir: Data directory layout
            command: Server command (binary and forwarded arguments)

        Returns:
            True if initialization ran, False if it was skipped

        Raises:
            InitializationFailed: The directory could not be prepared or the
                server's initialization mode exited non-zero
        """
        if not self.needs_initialization(datadir):
            logger.info("Data directory %s already initialized", datadir.path)
            return False

        try:
            clear_directory(datadir.path)
        except OSError as e:
            msg = f"Cannot recreate data directory {datadir.path}: {e.strerror or e}"
            raise InitializationFailed(
                msg, details={"datadir": str(datadir.path)}
            ) from e

        logger.info("Initializing data directory...")
        init_command = [*command, *INITIALIZE_FLAGS]
        result = self.runner.run(init_command)
        if not result.succeeded:
            msg = f"Data directory initialization exited with status {result.returncode}"
            raise InitializationFailed(
                msg,
                details={
                    "command": " ".join(init_command),
                    "returncode": result.returncode,
                    "output": (result.stderr or result.stdout).strip(),
                },
            )

        logger.info("Data directory initialized")
        return True
