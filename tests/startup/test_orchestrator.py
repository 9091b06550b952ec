"""Tests for the galera entrypoint startup orchestrator."""

from __future__ import annotations

from collections.abc import Callable
import io
import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from galera_entrypoint.startup.config_schema import EntrypointConfig
from galera_entrypoint.startup.diagnostics import DiagnosticsReporter
from galera_entrypoint.startup.orchestrator import EntrypointOrchestrator, main
from galera_entrypoint.startup.progress_reporter import StartupProgressReporter
from tests.conftest import SOCKET
from tests.fakes.process import (
    FakeClock,
    FakeProcessRunner,
    ProcessReplaced,
    RecordedCall,
)

WSREP_RECOVER = Path("/usr/bin/wsrep_recover")


class TestEntrypointOrchestrator:
    """Test the pipeline from container arguments to handoff."""

    @pytest.fixture(autouse=True)
    def _setup(
        self,
        server_runner: FakeProcessRunner,
        datadir: Path,
        tmp_path: Path,
        make_config: Callable[..., EntrypointConfig],
    ) -> None:
        self.runner = server_runner
        self.datadir = datadir
        self.initdb_dir = tmp_path / "initdb"
        self._make_config = make_config
        self.progress = io.StringIO()
        self.stderr = io.StringIO()

    def orchestrator(self, **overrides: Any) -> EntrypointOrchestrator:
        config = self._make_config(initdb_dir=self.initdb_dir, **overrides)
        return EntrypointOrchestrator(
            config,
            runner=self.runner,
            reporter=StartupProgressReporter(self.progress, enable_colors=False),
            diagnostics=DiagnosticsReporter(self.runner, output=self.stderr),
            clock=FakeClock(),
        )

    def handoff_command(self, argv: list[str], **overrides: Any) -> list[str]:
        with pytest.raises(ProcessReplaced) as exc_info:
            self.orchestrator(**overrides).run(argv)
        return exc_info.value.command

    def run_to_failure(self, argv: list[str], **overrides: Any) -> str:
        with pytest.raises(SystemExit) as exc_info:
            self.orchestrator(**overrides).run(argv)
        assert exc_info.value.code == 1
        assert self.runner.execs == [] or self.runner.exec_error is not None
        return self.stderr.getvalue()

    def initialize_calls(self) -> list[RecordedCall]:
        return [c for c in self.runner.calls if "--initialize-insecure" in c.command]

    def test_bootstrap_new_cluster(self) -> None:
        command = self.handoff_command(["--user=mysql"])

        log_error = f"--log-error={self.datadir}/mysqld.err"
        assert command == ["mysqld", "--user=mysql", log_error, "--wsrep-new-cluster"]
        assert len(self.initialize_calls()) == 1
        assert self.initialize_calls()[0].command[:3] == [
            "mysqld",
            "--user=mysql",
            log_error,
        ]
        assert (self.datadir / "mysql").is_dir()
        assert self.runner.spawned == [
            [
                "mysqld",
                "--user=mysql",
                log_error,
                "--skip-networking",
                f"--socket={SOCKET}",
                "--wsrep-provider=none",
            ]
        ]
        assert self.runner.handle.terminate_calls == 1
        assert "Entrypoint Complete" in self.progress.getvalue()

    def test_existing_data_store_without_node_marker_resumes(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        (self.datadir / "mysql").mkdir()
        (self.datadir / "ibdata1").write_text("keep")

        command = self.handoff_command([], mysql_root_password="RANDOM")

        assert command == ["mysqld", f"--log-error={self.datadir}/mysqld.err"]
        assert self.initialize_calls() == []
        assert self.runner.spawned == []
        assert self.runner.calls_to("mysql") == []
        assert (self.datadir / "ibdata1").exists()
        assert "GENERATED ROOT PASSWORD" not in capsys.readouterr().out

    def test_restart_after_bootstrap_skips_one_time_work(self) -> None:
        first = self.handoff_command([])
        second = self.handoff_command([])

        assert first[-1] == "--wsrep-new-cluster"
        assert "--wsrep-new-cluster" not in second
        assert len(self.initialize_calls()) == 1
        assert len(self.runner.spawned) == 1

    def test_allow_empty_password_with_default_root_password(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        self.handoff_command(
            [], mysql_root_password="RANDOM", mysql_allow_empty_password=True
        )

        root_batch = self.runner.calls_to("mysql")[-1].sent.decode()
        assert root_batch.startswith("SET @@SESSION.SQL_LOG_BIN=0;")
        assert "'root'@'localhost'" not in root_batch
        assert "GENERATED ROOT PASSWORD" not in capsys.readouterr().out

    def test_join_existing_cluster(self) -> None:
        command = self.handoff_command([], wsrep_join="node1,node2")

        assert command[-1] == "--wsrep-cluster-address=gcomm://node1,node2"
        assert self.initialize_calls() == []
        assert self.runner.spawned == []
        assert not (self.datadir / "mysql").exists()

    def test_recover_and_join(self) -> None:
        (self.datadir / "grastate.dat").write_text("seqno: 42\n")
        self.runner.programs["wsrep_recover"] = WSREP_RECOVER
        self.runner.on("wsrep_recover", stdout="--wsrep_start_position=uuid:42\n")

        command = self.handoff_command([], wsrep_join="node1")

        assert command[-2:] == [
            "--wsrep-cluster-address=gcomm://node1",
            "--wsrep_start_position=uuid:42",
        ]
        assert self.runner.spawned == []

    def test_recover_without_helper(self) -> None:
        (self.datadir / "grastate.dat").write_text("seqno: 42\n")

        command = self.handoff_command([], wsrep_join="node1")

        assert command[-1] == "--wsrep-cluster-address=gcomm://node1"

    def test_start_normally(self) -> None:
        (self.datadir / "grastate.dat").write_text("seqno: 42\n")
        (self.datadir / "mysql").mkdir()

        command = self.handoff_command(["--user=mysql"])

        assert command == [
            "mysqld",
            "--user=mysql",
            f"--log-error={self.datadir}/mysqld.err",
        ]
        assert self.initialize_calls() == []
        assert self.runner.spawned == []

    def test_start_normally_never_initializes(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        (self.datadir / "grastate.dat").write_text("seqno: -1\n")

        self.handoff_command([])

        assert self.initialize_calls() == []
        assert not (self.datadir / "mysql").exists()
        assert "starting anyway" in caplog.text

    def test_alternate_server_binary(self) -> None:
        command = self.handoff_command(["mariadbd", "--user=mysql"], wsrep_join="n1")

        assert command[:2] == ["mariadbd", "--user=mysql"]
        assert self.runner.calls[0].command[0] == "mariadbd"

    def test_configured_server_binary(self) -> None:
        command = self.handoff_command([], wsrep_join="n1", server_binary="mysqld-debug")

        assert command[0] == "mysqld-debug"

    def test_invalid_configuration(self) -> None:
        self.runner.on("--verbose", stderr="[ERROR] unknown option '--bogus'")

        text = self.run_to_failure(["--bogus"])

        assert "[CONF_002]" in text
        assert "unknown option '--bogus'" in text
        assert "Contents of" not in text
        assert self.runner.spawned == []
        assert "Entrypoint Failed" in self.progress.getvalue()

    def test_missing_datadir(self) -> None:
        self.runner.on("--verbose", stdout=f"socket {SOCKET}\n")

        text = self.run_to_failure([])

        assert "does not define a data directory" in text

    def test_initialization_failure(self) -> None:
        def write_error_log(call: RecordedCall) -> None:
            (self.datadir / "mysqld.err").write_text("[ERROR] InnoDB: disk full\n")

        self.runner.on(
            "--initialize-insecure",
            returncode=1,
            stderr="disk full",
            action=write_error_log,
        )

        text = self.run_to_failure([])

        assert "[INIT_001]" in text
        assert "[ERROR] InnoDB: disk full" in text
        assert self.runner.spawned == []

    def test_setup_instance_dies(self) -> None:
        self.runner.handle.dies_after = 0

        text = self.run_to_failure([])

        assert "[START_001] mysql-wsrep failed to start!" in text

    def test_exec_failure(self) -> None:
        self.runner.exec_error = PermissionError(13, "Permission denied")

        text = self.run_to_failure([], wsrep_join="n1")

        assert "[EXEC_001]" in text
        assert "Permission denied" in text

    def test_unexpected_error_is_wrapped(self) -> None:
        def explode(call: RecordedCall) -> None:
            msg = "kaboom"
            raise RuntimeError(msg)

        self.runner.on("--verbose", action=explode)

        text = self.run_to_failure([])

        assert "[GEN_001] Unexpected error: kaboom" in text
        assert "type: RuntimeError" in text

    def test_dry_run(self, capsys: pytest.CaptureFixture[str]) -> None:
        (self.datadir / "grastate.dat").write_text("seqno: 42\n")
        self.runner.programs["wsrep_recover"] = WSREP_RECOVER

        assert self.orchestrator(dry_run=True, wsrep_join="node1").run([]) == 0

        report = capsys.readouterr().out
        assert "Galera Entrypoint Dry-Run Report" in report
        assert "mode: RecoverAndJoin" in report
        assert "--wsrep-cluster-address=gcomm://node1" in report
        assert self.runner.calls_to("wsrep_recover") == []
        assert self.runner.execs == []

    def test_dry_run_bootstrap_touches_nothing(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert self.orchestrator(dry_run=True).run([]) == 0

        report = capsys.readouterr().out
        assert "✅ Initialize data directory" in report
        assert "✅ Provision setup instance" in report
        assert self.initialize_calls() == []
        assert self.runner.spawned == []
        assert not (self.datadir / "mysql").exists()


class TestMain:
    """Test the CLI entry point."""

    def test_dry_run_from_environment(
        self,
        server_runner: FakeProcessRunner,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        env_vars = {"ENTRYPOINT_DRY_RUN": "1", "MYSQL_ROOT_PASSWORD": "pw"}

        with (
            patch.dict(os.environ, env_vars, clear=True),
            patch(
                "galera_entrypoint.startup.orchestrator.SubprocessRunner",
                return_value=server_runner,
            ),
            patch("galera_entrypoint.startup.orchestrator.setup_logging"),
        ):
            assert main(["--user=mysql"]) == 0

        assert "Dry-Run Report" in capsys.readouterr().out

    def test_configuration_conflict_exits(
        self,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        secret = tmp_path / "pw"
        secret.write_text("x")
        env_vars = {
            "MYSQL_ROOT_PASSWORD": "pw",
            "MYSQL_ROOT_PASSWORD_FILE": str(secret),
        }

        with (
            patch.dict(os.environ, env_vars, clear=True),
            patch(
                "galera_entrypoint.startup.orchestrator.SubprocessRunner",
                return_value=FakeProcessRunner(),
            ),
            pytest.raises(SystemExit) as exc_info,
        ):
            main([])

        assert exc_info.value.code == 1
        assert "[CONF_001]" in capsys.readouterr().err
