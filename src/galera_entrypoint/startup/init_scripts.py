"""Custom init directory processing.

Files in the init directory run once per initialization, in sorted order,
dispatched by extension:

- ``*.sh``: run as an external ``bash`` program (see below)
- ``*.sql``: streamed to the client
- ``*.sql.gz``: decompressed, then streamed to the client
- anything else: skipped with a notice

Shell scripts are not sourced into the entrypoint. They see the resolved
configuration in their environment, plus ``INITDB_SOCKET`` (the setup
instance's socket) and ``INITDB_OVERRIDES`` (path of an empty file). A
script may write ``KEY=VALUE`` lines to that file to change the root-account
settings used by later steps; keys outside ``OVERRIDABLE_VARIABLES`` are
ignored.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
import tempfile

from galera_entrypoint.core.exceptions import ProvisioningFailed
from galera_entrypoint.ports.process_ports import IProcessRunner
from galera_entrypoint.startup.config_schema import (
    OVERRIDABLE_VARIABLES,
    EntrypointConfig,
)
from galera_entrypoint.startup.sql_client import SqlClient

logger = logging.getLogger(__name__)

SOCKET_VARIABLE = "INITDB_SOCKET"
OVERRIDES_VARIABLE = "INITDB_OVERRIDES"


def parse_overrides(text: str, source: str = "") -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines, keeping only overridable keys."""
    overrides: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            logger.warning("Ignoring malformed override line from %s: %r", source, line)
            continue
        if key not in OVERRIDABLE_VARIABLES:
            logger.warning("Ignoring override of %s from %s (not overridable)", key, source)
            continue
        overrides[key] = value
    return overrides


class InitScriptRunner:
    """Runs the files of the custom init directory."""

    def __init__(self, runner: IProcessRunner, client: SqlClient) -> None:
        self.runner = runner
        self.client = client

    def run_directory(
        self, directory: Path, config: EntrypointConfig
    ) -> EntrypointConfig:
        """Run every file in ``directory``.

        Returns:
            The configuration with any script overrides applied

        Raises:
            ProvisioningFailed: A script or SQL file failed
        """
        if not directory.is_dir():
            logger.debug("No custom init directory at %s", directory)
            return config

        for path in sorted(directory.iterdir()):
            config = self.run_file(path, config)
        return config

    def run_file(self, path: Path, config: EntrypointConfig) -> EntrypointConfig:
        name = path.name
        if name.endswith(".sh"):
            logger.info("Running shell script %s", path)
            return self.run_script(path, config)
        if name.endswith(".sql"):
            logger.info("Running SQL file %s", path)
            self.client.source_file(path)
        elif name.endswith(".sql.gz"):
            logger.info("Running compressed SQL file %s", path)
            self.client.source_gzip_file(path)
        else:
            logger.info("Ignoring %s", path)
        return config

    def run_script(self, path: Path, config: EntrypointConfig) -> EntrypointConfig:
        """Run a shell script and apply the overrides it emits."""
        fd, overrides_path = tempfile.mkstemp(prefix="initdb-", suffix=".env")
        os.close(fd)
        try:
            env = {
                **os.environ,
                **config.child_environment(),
                SOCKET_VARIABLE: self.client.socket,
                OVERRIDES_VARIABLE: overrides_path,
            }
            result = self.runner.run(["bash", str(path)], env=env)
            for line in result.stdout.splitlines():
                logger.info("%s: %s", path.name, line)

            if not result.succeeded:
                msg = f"Init script {path.name} exited with status {result.returncode}"
                raise ProvisioningFailed(
                    msg,
                    details={"script": str(path), "output": result.stderr.strip()},
                )

            overrides = parse_overrides(
                Path(overrides_path).read_text(encoding="utf-8"), source=path.name
            )
        finally:
            Path(overrides_path).unlink(missing_ok=True)

        if not overrides:
            return config
        logger.info("%s overrides %s", path.name, ", ".join(sorted(overrides)))
        return config.with_overrides(overrides)
