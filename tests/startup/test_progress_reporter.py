"""Tests for startup progress reporting."""

from __future__ import annotations

from collections.abc import Callable
import io

from galera_entrypoint.startup.classifier import BootstrapMode, BootstrapPlan
from galera_entrypoint.startup.config_schema import EntrypointConfig
from galera_entrypoint.startup.progress_reporter import (
    ProgressPhase,
    StartupProgressReporter,
)


class TestStartupProgressReporter:
    """Test phase and step reporting."""

    def setup_method(self) -> None:
        self.output = io.StringIO()
        self.reporter = StartupProgressReporter(self.output)

    def test_colors_disabled_for_non_tty(self) -> None:
        assert self.reporter.enable_colors is False

        self.reporter.start_startup("mysql-wsrep")

        assert "\033[" not in self.output.getvalue()
        assert "🚀 Preparing mysql-wsrep" in self.output.getvalue()

    def test_step_lifecycle(self) -> None:
        self.reporter.start_phase(ProgressPhase.PROVISIONING)
        done = self.reporter.start_step("Creating database")
        self.reporter.complete_step(done, "appdb")
        skipped = self.reporter.start_step("Creating user")
        self.reporter.skip_step(skipped, "No user configured")
        failed = self.reporter.start_step("Running init scripts")
        self.reporter.fail_step(failed, "Init script failed", RuntimeError("exit 3"))
        self.reporter.report_startup_complete(success=False, message="Provisioning")

        text = self.output.getvalue()
        assert "📍 Provisioning" in text
        assert "✅ Creating database: appdb" in text
        assert "⏭️ Creating user: No user configured" in text
        assert "❌ Running init scripts: Init script failed" in text
        assert "Error: exit 3" in text
        assert "Entrypoint Failed" in text

        summary = self.reporter.get_startup_summary()
        assert summary["total_steps"] == 3
        assert summary["completed_steps"] == 1
        assert summary["skipped_steps"] == 1
        assert summary["failed_steps"] == 1
        assert summary["final_phase"] == "failed"
        assert summary["success"] is False

    def test_successful_summary(self) -> None:
        step = self.reporter.start_step("Classifying node")
        self.reporter.complete_step(step)
        self.reporter.report_startup_complete(success=True)

        summary = self.reporter.get_startup_summary()
        assert summary["success"] is True
        assert summary["final_phase"] == "ready"
        assert summary["total_duration_ms"] >= 0

    def test_dry_run_report(
        self, make_config: Callable[..., EntrypointConfig]
    ) -> None:
        plan = BootstrapPlan(BootstrapMode.START_NORMALLY)

        report = self.reporter.create_dry_run_report(
            make_config(mysql_password="hidden-pass"),
            plan,
            ["mysqld", "--log-error=/var/lib/mysql/mysqld.err"],
            node_marker=True,
            data_store=True,
        )

        assert "mode: StartNormally" in report
        assert "node marker: present" in report
        assert "⏭️ Initialize data directory" in report
        assert "⏭️ Provision setup instance" in report
        assert "mysqld --log-error=/var/lib/mysql/mysqld.err" in report
        assert "hidden-pass" not in report
