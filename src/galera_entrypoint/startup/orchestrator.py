"""Galera Entrypoint Startup Orchestrator.

Drives a container start from configuration to handoff:

    validate -> classify -> {join | initialize -> provision} -> exec

The orchestrator itself holds no cluster logic; it sequences the startup
components, reports progress, and routes every fatal error to the
diagnostics reporter, which dumps evidence and exits 1.
"""

from __future__ import annotations

import logging
from pathlib import Path
import sys
import threading
from typing import NoReturn

from galera_entrypoint.core.exceptions import EntrypointError, InvalidConfiguration
from galera_entrypoint.core.logging_config import setup_logging
from galera_entrypoint.core.process import SubprocessRunner
from galera_entrypoint.ports.process_ports import IProcessRunner
from galera_entrypoint.startup.classifier import (
    BootstrapPlan,
    DataDirectory,
    classify,
)
from galera_entrypoint.startup.config_schema import EntrypointConfig, load_config
from galera_entrypoint.startup.config_validator import ConfigValidator
from galera_entrypoint.startup.diagnostics import DiagnosticsReporter
from galera_entrypoint.startup.handoff import HandoffRunner
from galera_entrypoint.startup.initializer import Initializer
from galera_entrypoint.startup.progress_reporter import (
    ProgressPhase,
    StartupProgressReporter,
)
from galera_entrypoint.startup.readiness import Clock
from galera_entrypoint.startup.setup_supervisor import SetupSupervisor

logger = logging.getLogger(__name__)


class EntrypointOrchestrator:
    """Sequences one container start of a cluster node."""

    def __init__(
        self,
        config: EntrypointConfig,
        *,
        runner: IProcessRunner | None = None,
        reporter: StartupProgressReporter | None = None,
        diagnostics: DiagnosticsReporter | None = None,
        clock: Clock | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        """Initialize startup orchestrator.

        Args:
            config: Resolved entrypoint configuration
            runner: Process runner (real subprocesses if not provided)
            reporter: Progress reporter (creates default if not provided)
            diagnostics: Fatal-error reporter (writes to stderr if not provided)
            clock: Clock for the setup readiness wait
            cancel: Event that aborts the setup readiness wait
        """
        self.config = config
        self.runner = runner or SubprocessRunner()
        self.reporter = reporter or StartupProgressReporter()
        self.diagnostics = diagnostics or DiagnosticsReporter(self.runner)
        self.clock = clock
        self.cancel = cancel

        self.validator = ConfigValidator(self.runner)
        self.initializer = Initializer(self.runner)
        self.handoff_runner = HandoffRunner(self.runner)
        self.datadir: DataDirectory | None = None

    def server_command(self, argv: list[str]) -> list[str]:
        """Build the base server command from the container arguments.

        A first argument that is not an option names an alternate server
        binary; otherwise the configured default binary is prepended.
        """
        if argv and not argv[0].startswith("-"):
            return list(argv)
        return [self.config.server_binary, *argv]

    def run(self, argv: list[str]) -> int:
        """Run the entrypoint pipeline.

        Only returns for a dry run. A real start ends in the exec'd server, a
        failure ends in the diagnostics dump and exit status 1.
        """
        self.reporter.start_startup(self.config.product)
        try:
            command, plan, datadir = self.plan(argv)
            if self.config.dry_run:
                return self._dry_run(command, plan, datadir)

            final_command = self.prepare(command, plan, datadir)
            self.reporter.start_phase(ProgressPhase.HANDING_OFF)
            logger.info("%s is starting!", self.config.product)
            self.reporter.report_startup_complete(
                success=True, message=f"{plan.mode.value}, handing off to server"
            )
            self.handoff_runner.handoff(final_command)
        except EntrypointError as e:
            self._fail(e)
        except Exception as e:
            logger.exception("Unexpected entrypoint error")
            wrapped = EntrypointError(
                f"Unexpected error: {e!s}", details={"type": type(e).__name__}
            )
            self._fail(wrapped, cause=e)

    def plan(
        self, argv: list[str]
    ) -> tuple[list[str], BootstrapPlan, DataDirectory]:
        """Validate the server configuration and classify the node.

        Returns:
            Tuple of (server command with the persistent error log, plan,
            data directory)
        """
        command = self.server_command(argv)

        self.reporter.start_phase(ProgressPhase.VALIDATING_CONFIG)
        step = self.reporter.start_step("Validating server configuration")
        try:
            self.validator.validate(command)
        except EntrypointError as e:
            self.reporter.fail_step(step, "Server rejected its configuration", e)
            raise
        self.reporter.complete_step(step, "Configuration accepted")

        step = self.reporter.start_step("Locating data directory")
        datadir = self.datadir = self._resolve_datadir(command)
        self.reporter.complete_step(step, str(datadir.path))

        # Keep the error log on the persistent volume
        command = [*command, f"--log-error={datadir.error_log}"]

        self.reporter.start_phase(ProgressPhase.CLASSIFYING)
        step = self.reporter.start_step("Classifying node")
        plan = classify(
            node_marker_present=datadir.has_node_marker(),
            join_address=self.config.join_address,
            data_store_present=datadir.has_data_store(),
            # Position recovery reads the data directory; a dry run must not
            runner=None if self.config.dry_run else self.runner,
            recovery_helper=self.config.recovery_helper,
        )
        self.reporter.complete_step(step, plan.mode.value)
        logger.info("Bootstrap mode: %s", plan.mode.value)
        return command, plan, datadir

    def prepare(
        self, command: list[str], plan: BootstrapPlan, datadir: DataDirectory
    ) -> list[str]:
        """Run the one-time work the plan calls for.

        The setup instance only provisions a data directory initialized by
        this start; an existing data store is never provisioned again.

        Returns:
            The final server command to hand off to
        """
        if not plan.checks_initialization:
            logger.info("Joining cluster, state will arrive through state transfer")
            return plan.server_command(command)

        initialized = self._check_initialization(command, plan, datadir)
        if plan.runs_setup and initialized:
            socket = self.validator.get_value("socket", command)
            if not socket:
                msg = "Server configuration does not define a socket"
                raise InvalidConfiguration(msg, command=command)
            supervisor = SetupSupervisor(
                self.runner,
                self.config,
                reporter=self.reporter,
                clock=self.clock,
                cancel=self.cancel,
            )
            self.config = supervisor.run(command, socket)

        return plan.server_command(command)

    def _check_initialization(
        self, command: list[str], plan: BootstrapPlan, datadir: DataDirectory
    ) -> bool:
        """Initialize the data directory if allowed and needed.

        Returns:
            True if the data directory was initialized by this call
        """
        self.reporter.start_phase(ProgressPhase.INITIALIZING)
        step = self.reporter.start_step("Checking data directory")
        if plan.may_initialize:
            try:
                initialized = self.initializer.initialize(datadir, command)
            except EntrypointError as e:
                self.reporter.fail_step(step, "Initialization failed", e)
                raise
            if initialized:
                self.reporter.complete_step(step, "Data directory initialized")
            else:
                self.reporter.skip_step(step, "Already initialized")
            return initialized

        if datadir.has_data_store():
            self.reporter.complete_step(step, "Data store present")
        else:
            logger.warning(
                "%s has a node marker but no %s directory, starting anyway",
                datadir.path,
                datadir.system_database,
            )
            self.reporter.skip_step(step, "Data store missing")
        return False

    def _resolve_datadir(self, command: list[str]) -> DataDirectory:
        value = self.validator.get_value("datadir", command)
        if not value:
            msg = "Server configuration does not define a data directory"
            raise InvalidConfiguration(msg, command=command)
        # Strip the trailing '/' so derived paths stay canonical
        path = Path(value.rstrip("/") or "/")
        return DataDirectory(path, system_database=self.config.system_database)

    def _dry_run(
        self, command: list[str], plan: BootstrapPlan, datadir: DataDirectory
    ) -> int:
        report = self.reporter.create_dry_run_report(
            self.config,
            plan,
            plan.server_command(command),
            node_marker=datadir.has_node_marker(),
            data_store=datadir.has_data_store(),
        )
        print(f"\n{report}")  # noqa: T201
        self.reporter.report_startup_complete(
            success=True, message="Dry-run completed successfully"
        )
        return 0

    def _fail(
        self, error: EntrypointError, cause: BaseException | None = None
    ) -> NoReturn:
        self.reporter.report_startup_complete(success=False, message=error.message)
        if cause is not None:
            error.__cause__ = cause
        datadir = self.datadir.path if self.datadir is not None else None
        self.diagnostics.fail(error, datadir)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    All arguments are forwarded to the server unchanged, so they are not
    parsed here; the entrypoint is configured through its environment.
    """
    args = sys.argv[1:] if argv is None else argv

    # Until the configuration is known
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | [Init] %(message)s",
    )

    runner = SubprocessRunner()
    diagnostics = DiagnosticsReporter(runner)
    try:
        config = load_config()
    except EntrypointError as e:
        diagnostics.fail(e)

    setup_logging(config)
    orchestrator = EntrypointOrchestrator(
        config, runner=runner, diagnostics=diagnostics
    )
    try:
        return orchestrator.run(args)
    except KeyboardInterrupt:
        print("\n❌ Entrypoint cancelled", file=sys.stderr)  # noqa: T201
        return 130


if __name__ == "__main__":
    sys.exit(main())
