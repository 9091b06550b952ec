"""Shared test fixtures for the galera entrypoint test suite.

Provides an environment free of entrypoint variables, a scratch data
directory and a fake process runner scripted like a real server.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from galera_entrypoint.ports.process_ports import CommandResult
from galera_entrypoint.startup.config_schema import EntrypointConfig
from galera_entrypoint.startup.secrets import file_variable
from tests.fakes.process import FakeProcessRunner, RecordedCall

SOCKET = "/run/mysqld/mysqld.sock"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove any entrypoint variable the host environment may carry."""
    for field in EntrypointConfig.model_fields.values():
        if field.alias:
            monkeypatch.delenv(field.alias, raising=False)
            monkeypatch.delenv(file_variable(field.alias), raising=False)


@pytest.fixture
def make_config() -> Callable[..., EntrypointConfig]:
    """Build a configuration from field names, with test-friendly defaults."""

    def _make(**overrides: Any) -> EntrypointConfig:
        values: dict[str, Any] = {
            "mysql_root_password": "s3cret",
            "mysql_initdb_tzinfo": False,
        }
        values.update(overrides)
        return EntrypointConfig(**values)

    return _make


@pytest.fixture
def datadir(tmp_path: Path) -> Path:
    path = tmp_path / "data"
    path.mkdir()
    return path


def introspection_output(datadir: Path, socket: str = SOCKET) -> str:
    """Help output of a server configured with ``datadir`` and ``socket``."""
    return (
        "mysqld  Ver 8.0.36 for Linux on x86_64\n"
        "Variables (--variable-name=value)\n"
        "and boolean options {FALSE|TRUE}  Value (after reading options)\n"
        "--------------------------------- ------------------------\n"
        f"datadir {datadir}/\n"
        f"socket {socket}\n"
        "wsrep-on TRUE\n"
    )


@pytest.fixture
def server_runner(datadir: Path) -> FakeProcessRunner:
    """Fake runner answering like a correctly configured server.

    Initialization creates the system database directory, as the real
    server does.
    """
    runner = FakeProcessRunner()
    runner.on("--verbose", stdout=introspection_output(datadir))

    def initialize(call: RecordedCall) -> CommandResult | None:
        (datadir / "mysql").mkdir(exist_ok=True)
        return None

    runner.on("--initialize-insecure", action=initialize)
    return runner
