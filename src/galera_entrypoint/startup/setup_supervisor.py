"""Setup instance supervision.

Starts the server isolated from the network and the cluster, waits until it
answers on its local socket, provisions it idempotently, then stops it. The
temporary instance never outlives this component: whatever happens, it is
stopped before ``run`` returns or raises.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
import threading

from galera_entrypoint.core.exceptions import (
    EntrypointError,
    ProvisioningFailed,
    ShutdownFailed,
    StartupFailed,
)
from galera_entrypoint.ports.process_ports import IProcessHandle, IProcessRunner
from galera_entrypoint.startup.config_schema import EntrypointConfig
from galera_entrypoint.startup.init_scripts import InitScriptRunner
from galera_entrypoint.startup.progress_reporter import (
    ProgressPhase,
    StartupProgressReporter,
)
from galera_entrypoint.startup.readiness import (
    Clock,
    ReadinessStatus,
    wait_for_condition,
)
from galera_entrypoint.startup.root_setup import (
    build_root_setup,
    resolve_root_password,
)
from galera_entrypoint.startup.sql_client import (
    SqlClient,
    account,
    quote_identifier,
    quote_string,
)

logger = logging.getLogger(__name__)

# Emitted by mysql_tzinfo_to_sql for zones without a name (bugs.mysql.com/20545)
BENIGN_TZINFO_WARNING = "Local time zone must be set--see zic manual page"
TZINFO_REPLACEMENT = "FCTY"

StepAction = Callable[[SqlClient], tuple[bool, str]]


def normalize_tzinfo_sql(sql: str) -> str:
    return sql.replace(BENIGN_TZINFO_WARNING, TZINFO_REPLACEMENT)


def setup_command(command: list[str], socket: str) -> list[str]:
    """Server command for the network- and cluster-isolated setup instance."""
    return [
        *command,
        "--skip-networking",
        f"--socket={socket}",
        "--wsrep-provider=none",
    ]


class SetupSupervisor:
    """Runs the temporary setup instance through provisioning."""

    def __init__(
        self,
        runner: IProcessRunner,
        config: EntrypointConfig,
        *,
        reporter: StartupProgressReporter | None = None,
        clock: Clock | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self.runner = runner
        self.config = config
        self.reporter = reporter or StartupProgressReporter()
        self.clock = clock
        self.cancel = cancel

    def run(self, command: list[str], socket: str) -> EntrypointConfig:
        """Start, provision and stop the setup instance.

        Args:
            command: Server command (binary, forwarded and derived arguments)
            socket: Effective socket path of the server

        Returns:
            The configuration as left by the init scripts

        Raises:
            StartupFailed: The instance could not start or died before ready
            ProvisioningFailed: A provisioning step failed
            ShutdownFailed: The instance did not stop cleanly
        """
        self.reporter.start_phase(ProgressPhase.PROVISIONING, "Starting setup instance")
        client = SqlClient(self.runner, socket, self.config.client_binary)

        handle = self._spawn(setup_command(command, socket))
        try:
            self._wait_until_ready(handle, client)
            self._provision(client)
        except BaseException:
            self._abort(handle)
            raise

        self._stop(handle)
        return self.config

    def _spawn(self, command: list[str]) -> IProcessHandle:
        step = self.reporter.start_step("Starting setup instance")
        try:
            handle = self.runner.spawn(command)
        except OSError as e:
            self.reporter.fail_step(step, "Could not start setup instance", e)
            msg = f"{self.config.product} failed to start: {e.strerror or e}"
            raise StartupFailed(msg, details={"command": " ".join(command)}) from e
        self.reporter.complete_step(step, f"pid {handle.pid}")
        return handle

    def _wait_until_ready(self, handle: IProcessHandle, client: SqlClient) -> None:
        step = self.reporter.start_step("Waiting for setup instance")

        def on_wait(attempt: int) -> None:
            logger.info(
                "%s initialization startup in progress... (attempt %d)",
                self.config.product,
                attempt,
            )

        result = wait_for_condition(
            client.ping,
            alive=handle.is_alive,
            interval=self.config.setup_poll_interval,
            clock=self.clock,
            cancel=self.cancel,
            on_wait=on_wait,
        )
        if result.is_ready():
            self.reporter.complete_step(
                step, f"Ready after {result.attempts} attempt(s)"
            )
            return

        if result.status == ReadinessStatus.CANCELLED:
            msg = "Readiness wait cancelled"
        else:
            msg = f"{self.config.product} failed to start!"
        self.reporter.fail_step(step, msg)
        raise StartupFailed(
            msg,
            details={"attempts": result.attempts, "status": result.status.value},
        )

    def _provision(self, client: SqlClient) -> None:
        steps: list[tuple[str, StepAction]] = [
            ("Loading timezone data", self.load_timezones),
            ("Creating database", self.create_database),
            ("Creating user", self.create_user),
            ("Running init scripts", self.run_init_scripts),
            ("Configuring root account", self.configure_root),
        ]
        for name, action in steps:
            step = self.reporter.start_step(name)
            try:
                done, message = action(client)
            except EntrypointError as e:
                self.reporter.fail_step(step, e.message, e)
                raise
            if done:
                self.reporter.complete_step(step, message)
            else:
                self.reporter.skip_step(step, message)

    def load_timezones(self, client: SqlClient) -> tuple[bool, str]:
        if not self.config.timezone_load_enabled():
            return False, "Timezone loading disabled"

        logger.info("Loading TZINFO...")
        command = [self.config.tzinfo_binary, str(self.config.zoneinfo_dir)]
        result = self.runner.run(command)
        if not result.succeeded:
            msg = f"{self.config.tzinfo_binary} exited with status {result.returncode}"
            raise ProvisioningFailed(
                msg, details={"command": " ".join(command), "output": result.stderr}
            )
        if result.stderr:
            logger.debug("%s: %s", self.config.tzinfo_binary, result.stderr.strip())

        client.execute(
            normalize_tzinfo_sql(result.stdout),
            database=self.config.system_database,
            what="Timezone data load",
        )
        return True, "Timezone tables loaded"

    def create_database(self, client: SqlClient) -> tuple[bool, str]:
        database = self.config.mysql_database
        if not database:
            return False, "No database configured"

        logger.info("Creating database %s", database)
        client.execute(
            f"CREATE DATABASE IF NOT EXISTS {quote_identifier(database)};",
            what="Database creation",
        )
        return True, database

    def create_user(self, client: SqlClient) -> tuple[bool, str]:
        user = self.config.mysql_user
        password = self.config.mysql_password
        if not (user and password):
            if user or password:
                logger.warning(
                    "Skipping MYSQL user creation, both MYSQL_USER and "
                    "MYSQL_PASSWORD must be set"
                )
            return False, "Both MYSQL_USER and MYSQL_PASSWORD must be set"

        logger.info("Creating user %s with password set", user)
        user_account = account(user, "%")
        statements = [
            f"CREATE USER IF NOT EXISTS {user_account} "
            f"IDENTIFIED BY {quote_string(password)};"
        ]
        database = self.config.mysql_database
        if database:
            logger.info("Giving all privileges on %s to %s...", database, user)
            statements.append(
                f"GRANT ALL ON {quote_identifier(database)}.* TO {user_account};"
            )
        statements.append("FLUSH PRIVILEGES;")
        client.execute("\n".join(statements), what="User creation")
        return True, user

    def run_init_scripts(self, client: SqlClient) -> tuple[bool, str]:
        directory = self.config.initdb_dir
        if not directory.is_dir():
            return False, f"No init directory at {directory}"

        logger.info("Running custom init files in %s", directory)
        scripts = InitScriptRunner(self.runner, client)
        self.config = scripts.run_directory(directory, self.config)
        return True, str(directory)

    def configure_root(self, client: SqlClient) -> tuple[bool, str]:
        password = resolve_root_password(self.config)
        if not password.is_empty:
            logger.info("ROOT password has been specified for image, updating account...")

        statements = build_root_setup(
            password,
            root_host=self.config.mysql_root_host,
            onetime_password=self.config.mysql_onetime_password,
        )
        client.execute("\n".join(statements), what="Root account setup")
        return True, f"Root password: {password.kind.value}"

    def _stop(self, handle: IProcessHandle) -> None:
        step = self.reporter.start_step("Stopping setup instance")
        handle.terminate()
        status = handle.wait(timeout=self.config.setup_shutdown_timeout)
        if status is None:
            msg = (
                f"{self.config.product} init process did not stop within "
                f"{self.config.setup_shutdown_timeout:.0f}s"
            )
        elif status != 0:
            msg = f"{self.config.product} init process failed! (exit status {status})"
        else:
            self.reporter.complete_step(step, "Setup instance stopped")
            return

        self.reporter.fail_step(step, msg)
        raise ShutdownFailed(msg, details={"pid": handle.pid, "exit_status": status})

    def _abort(self, handle: IProcessHandle) -> None:
        """Stop the instance after a failure, without masking the original error."""
        if not handle.is_alive():
            return
        logger.warning("Stopping setup instance (pid %d) after failure", handle.pid)
        handle.terminate()
        if handle.wait(timeout=self.config.setup_shutdown_timeout) is None:
            logger.error("Setup instance (pid %d) did not stop", handle.pid)
