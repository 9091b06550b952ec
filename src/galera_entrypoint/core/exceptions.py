"""Exception hierarchy for the Galera node entrypoint.

Every fatal condition the entrypoint can hit is represented by a subclass of
``EntrypointError``. Each carries a stable error code (resolved against the
startup error catalog by the diagnostics reporter), the pipeline phase that
raised it, and free-form details for the diagnostic dump.

None of these errors is retried. All of them terminate the container with
``exit_code`` after the diagnostics reporter has written its evidence bundle.
"""

from __future__ import annotations

from typing import Any

EXIT_FAILURE = 1


class EntrypointError(Exception):
    """Base exception for all entrypoint specific errors."""

    default_code = "GEN_001"
    default_phase = "startup"

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        phase: str | None = None,
        details: dict[str, Any] | None = None,
        exit_code: int = EXIT_FAILURE,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.phase = phase or self.default_phase
        self.details = details or {}
        self.exit_code = exit_code

    def __str__(self) -> str:
        return f"[{self.error_code}] {super().__str__()}"


# ==============================================================================
# Configuration Exceptions
# ==============================================================================


class ConfigurationConflict(EntrypointError):
    """Raised when a value and its ``_FILE`` indirection are both set."""

    default_code = "CONF_001"
    default_phase = "configuration"

    def __init__(self, name: str, file_name: str) -> None:
        message = f"Both {name} and {file_name} are set (but are exclusive)"
        super().__init__(
            message, details={"variable": name, "file_variable": file_name}
        )
        self.name = name
        self.file_name = file_name


class InvalidConfiguration(EntrypointError):
    """Raised when configuration cannot be parsed or the server rejects it."""

    default_code = "CONF_002"
    default_phase = "configuration"

    def __init__(
        self,
        message: str,
        *,
        command: list[str] | None = None,
        output: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        merged = dict(details or {})
        if command is not None:
            merged["command"] = " ".join(command)
        if output:
            merged["output"] = output
        super().__init__(message, details=merged)
        self.command = command
        self.output = output


# ==============================================================================
# Lifecycle Exceptions
# ==============================================================================


class InitializationFailed(EntrypointError):
    """Raised when the data directory cannot be created or initialized."""

    default_code = "INIT_001"
    default_phase = "initializing"


class StartupFailed(EntrypointError):
    """Raised when the setup instance exits before answering the readiness check."""

    default_code = "START_001"
    default_phase = "provisioning"


class ProvisioningFailed(EntrypointError):
    """Raised when a provisioning statement or init script fails."""

    default_code = "PROV_001"
    default_phase = "provisioning"


class ShutdownFailed(EntrypointError):
    """Raised when the setup instance does not stop cleanly."""

    default_code = "STOP_001"
    default_phase = "provisioning"


class HandoffFailed(EntrypointError):
    """Raised when the final server process cannot be exec'd."""

    default_code = "EXEC_001"
    default_phase = "handoff"

    def __init__(self, command: list[str], error: OSError) -> None:
        message = f"Failed to exec '{' '.join(command)}': {error.strerror or error}"
        super().__init__(
            message,
            details={"command": " ".join(command), "errno": error.errno},
            exit_code=EXIT_FAILURE,
        )
        self.command = command
