"""Tests for startup error catalog - real functionality tests."""

from galera_entrypoint.core.exceptions import (
    ConfigurationConflict,
    EntrypointError,
    HandoffFailed,
    InitializationFailed,
    InvalidConfiguration,
    ProvisioningFailed,
    ShutdownFailed,
    StartupFailed,
)
from galera_entrypoint.startup.error_catalog import (
    ErrorCategory,
    ErrorSeverity,
    ErrorSolution,
    StartupErrorCatalog,
    StartupErrorInfo,
    error_catalog,
)


class TestStartupErrorCatalog:
    """Test startup error catalog real functionality."""

    def test_error_catalog_initialization(self):
        """Test that error catalog initializes with actual errors."""
        catalog = StartupErrorCatalog()

        assert len(catalog.errors) > 0

        error = catalog.errors["CONF_001"]
        assert error.code == "CONF_001"
        assert error.title == "Conflicting Secret Inputs"
        assert error.category == ErrorCategory.CONFIGURATION
        assert error.severity == ErrorSeverity.CRITICAL
        assert len(error.solutions) > 0
        assert len(error.common_causes) > 0

    def test_every_exception_code_is_cataloged(self):
        """Test each entrypoint exception resolves to catalog help."""
        error_types = [
            EntrypointError,
            ConfigurationConflict,
            InvalidConfiguration,
            InitializationFailed,
            StartupFailed,
            ProvisioningFailed,
            ShutdownFailed,
            HandoffFailed,
        ]

        for error_type in error_types:
            assert error_catalog.get_error_info(error_type.default_code) is not None

    def test_get_error_info_by_code(self):
        """Test retrieving specific error by code."""
        error = error_catalog.get_error_info("INIT_001")

        assert error is not None
        assert isinstance(error, StartupErrorInfo)
        assert error.category == ErrorCategory.INITIALIZATION

    def test_get_nonexistent_error_info(self):
        """Test retrieving non-existent error returns None."""
        assert error_catalog.get_error_info("FAKE_999") is None

    def test_error_solution_structure(self):
        """Test error solutions have proper structure."""
        error = error_catalog.get_error_info("START_001")

        assert error is not None
        solution = error.solutions[0]
        assert isinstance(solution, ErrorSolution)
        assert len(solution.description) > 0
        assert len(solution.steps) > 0

    def test_format_error_help(self):
        """Test formatting error help message."""
        help_text = error_catalog.format_error_help("EXEC_001")

        assert "Server Handoff Failed (EXEC_001)" in help_text
        assert "Common Causes:" in help_text
        assert "Solutions:" in help_text
        assert "Related Errors:" not in help_text

    def test_format_error_help_related_errors(self):
        """Test related errors are listed by title."""
        help_text = error_catalog.format_error_help("INIT_001")

        assert "Related Errors:" in help_text
        assert "START_001: Setup Instance Failed To Start" in help_text

    def test_format_unknown_error(self):
        """Test formatting unknown error code."""
        assert error_catalog.format_error_help("FAKE_999") == (
            "Unknown error code: FAKE_999"
        )
