"""Galera Entrypoint Startup Error Catalog.

Catalog of entrypoint errors with clear messages and solutions. Codes match
the ``error_code`` of the exceptions in ``core.exceptions``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class ErrorCategory(StrEnum):
    """Error categories for organization."""

    CONFIGURATION = "configuration"
    INITIALIZATION = "initialization"
    PROVISIONING = "provisioning"
    PROCESS = "process"
    ENVIRONMENT = "environment"


class ErrorSeverity(StrEnum):
    """Error severity levels."""

    CRITICAL = "critical"  # Prevents startup


@dataclass
class ErrorSolution:
    """Suggested solution for an error."""

    description: str
    steps: list[str]


@dataclass
class StartupErrorInfo:
    """Comprehensive error information."""

    code: str
    title: str
    description: str
    category: ErrorCategory
    severity: ErrorSeverity
    solutions: list[ErrorSolution]
    common_causes: list[str]
    related_errors: list[str] = field(default_factory=list)


class StartupErrorCatalog:
    """Catalog of startup errors with solutions."""

    def __init__(self) -> None:
        self.errors: dict[str, StartupErrorInfo] = self._build_error_catalog()

    def _build_error_catalog(self) -> dict[str, StartupErrorInfo]:
        """Build the error catalog."""
        errors = {}

        # Configuration Errors
        errors["CONF_001"] = StartupErrorInfo(
            code="CONF_001",
            title="Conflicting Secret Inputs",
            description="A variable and its _FILE indirection are both set.",
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Secret mounted as a file while the plain variable is still set",
                "Orchestrator template sets both forms",
            ],
            solutions=[
                ErrorSolution(
                    description="Keep exactly one form of the variable",
                    steps=[
                        "Check the variable names in the error message",
                        "Remove either NAME or NAME_FILE from the container environment",
                        "Restart the container",
                    ],
                ),
            ],
        )

        errors["CONF_002"] = StartupErrorInfo(
            code="CONF_002",
            title="Invalid Configuration",
            description=(
                "The server rejected its merged configuration, or an "
                "entrypoint variable has an invalid value."
            ),
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Unknown or misspelled option in a .cnf file",
                "Invalid option passed on the command line",
                "Non-boolean value for a flag such as MYSQL_ALLOW_EMPTY_PASSWORD",
                "Unreadable _FILE secret",
            ],
            solutions=[
                ErrorSolution(
                    description="Fix the reported option",
                    steps=[
                        "Read the captured server output in the diagnostics",
                        "Run the reported command by hand to reproduce",
                        "Correct the option file or command-line argument",
                    ],
                ),
            ],
        )

        # Initialization Errors
        errors["INIT_001"] = StartupErrorInfo(
            code="INIT_001",
            title="Data Directory Initialization Failed",
            description="The server could not create the system database.",
            category=ErrorCategory.INITIALIZATION,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Data directory volume not writable by the server user",
                "Volume full",
                "Leftover files from an interrupted initialization",
            ],
            solutions=[
                ErrorSolution(
                    description="Inspect and reset the data directory",
                    steps=[
                        "Check the data directory listing and error log tail below",
                        "Fix volume ownership or free space",
                        "The directory is left as-is for inspection; clear it to retry",
                    ],
                ),
            ],
            related_errors=["START_001"],
        )

        # Process Errors
        errors["START_001"] = StartupErrorInfo(
            code="START_001",
            title="Setup Instance Failed To Start",
            description="The temporary setup instance exited before it became ready.",
            category=ErrorCategory.PROCESS,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Corrupt or incompatible data directory",
                "Socket path not writable",
                "Insufficient memory for the configured buffers",
            ],
            solutions=[
                ErrorSolution(
                    description="Read the server error log",
                    steps=[
                        "Check the error log tail in the diagnostics below",
                        "Fix the reported server error and restart the container",
                    ],
                ),
            ],
            related_errors=["INIT_001"],
        )

        errors["PROV_001"] = StartupErrorInfo(
            code="PROV_001",
            title="Provisioning Step Failed",
            description="A provisioning statement or custom init file failed.",
            category=ErrorCategory.PROVISIONING,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Syntax error in a custom .sql file",
                "Init script exited non-zero",
                "Corrupt .sql.gz archive",
            ],
            solutions=[
                ErrorSolution(
                    description="Fix the failing init file",
                    steps=[
                        "Identify the step in the diagnostics",
                        "Run the file against a scratch server to reproduce",
                        "Clear the data directory before retrying",
                    ],
                ),
            ],
        )

        errors["STOP_001"] = StartupErrorInfo(
            code="STOP_001",
            title="Setup Instance Did Not Stop",
            description="The temporary setup instance did not stop cleanly on SIGTERM.",
            category=ErrorCategory.PROCESS,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Long running statement from an init file",
                "Shutdown timeout too short for a large buffer pool",
            ],
            solutions=[
                ErrorSolution(
                    description="Give the instance more time to stop",
                    steps=[
                        "Raise SETUP_SHUTDOWN_TIMEOUT",
                        "Check the error log tail for shutdown errors",
                    ],
                ),
            ],
        )

        errors["EXEC_001"] = StartupErrorInfo(
            code="EXEC_001",
            title="Server Handoff Failed",
            description="The final server process could not be executed.",
            category=ErrorCategory.ENVIRONMENT,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Server binary not on PATH",
                "Alternate binary name given as first argument is wrong",
                "Binary not executable",
            ],
            solutions=[
                ErrorSolution(
                    description="Check the server binary",
                    steps=[
                        "Verify the command shown in the diagnostics",
                        "Set MYSQL_SERVER or pass the correct binary name",
                    ],
                ),
            ],
        )

        errors["GEN_001"] = StartupErrorInfo(
            code="GEN_001",
            title="Unexpected Entrypoint Error",
            description="The entrypoint hit an error outside its known failure modes.",
            category=ErrorCategory.ENVIRONMENT,
            severity=ErrorSeverity.CRITICAL,
            common_causes=["Unexpected filesystem or permission state"],
            solutions=[
                ErrorSolution(
                    description="Collect diagnostics",
                    steps=[
                        "Re-run with IMAGEDEBUG=1 for detailed logging",
                        "Report the traceback together with the diagnostics",
                    ],
                ),
            ],
        )

        return errors

    def get_error_info(self, error_code: str) -> StartupErrorInfo | None:
        """Get error information by code."""
        return self.errors.get(error_code)

    def format_error_help(self, error_code: str) -> str:
        """Render the catalog entry for ``error_code`` for the diagnostics dump."""
        info = self.get_error_info(error_code)
        if info is None:
            return f"Unknown error code: {error_code}"

        sections = [
            self._describe(info),
            self._bullets("🔍 Common Causes:", info.common_causes),
            self._solutions(info.solutions),
            self._bullets(
                "🔗 Related Errors:",
                [
                    f"{code}: {related.title}"
                    for code in info.related_errors
                    if (related := self.get_error_info(code)) is not None
                ],
            ),
        ]
        return "\n\n".join(section for section in sections if section)

    @staticmethod
    def _describe(info: StartupErrorInfo) -> str:
        return "\n".join(
            (
                f"🚨 {info.title} ({info.code})",
                "=" * 60,
                f"📝 {info.description}",
                f"📊 {info.severity.value.upper()} / {info.category.value}",
            )
        )

    @staticmethod
    def _bullets(heading: str, items: list[str]) -> str:
        if not items:
            return ""
        return "\n".join([heading, *(f"  • {item}" for item in items)])

    @staticmethod
    def _solutions(solutions: list[ErrorSolution]) -> str:
        if not solutions:
            return ""
        lines = ["💡 Solutions:"]
        for number, solution in enumerate(solutions, 1):
            lines.append(f"  {number}. {solution.description}")
            lines.extend(f"     - {step}" for step in solution.steps)
        return "\n".join(lines)


error_catalog = StartupErrorCatalog()
