"""Global pytest configuration for logging setup.

This file ensures consistent logging behavior across all tests
and prevents caplog issues caused by logger configuration conflicts.
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def setup_logging() -> None:
    """Global fixture to ensure consistent logging configuration across all tests.

    ``setup_logging`` in the package turns propagation off for the
    ``galera_entrypoint`` logger; tests that run it would otherwise hide all
    later records from caplog.
    """
    logger = logging.getLogger("galera_entrypoint")
    logger.setLevel(logging.DEBUG)
    # Ensure propagation is enabled so caplog can capture messages
    logger.propagate = True

    # Configure root logger to ensure caplog works
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)


@pytest.fixture(autouse=True)
def configure_caplog(caplog: pytest.LogCaptureFixture) -> None:
    """Global fixture to configure caplog for all tests."""
    caplog.set_level(logging.DEBUG)
    caplog.set_level(logging.DEBUG, logger="galera_entrypoint")
