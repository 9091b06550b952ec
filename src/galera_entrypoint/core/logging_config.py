"""Galera Entrypoint - Logging Configuration.

Console logging for the container entrypoint. Everything goes to stdout so
the container runtime collects it alongside the server's own output; the
diagnostics dump is the only thing written to stderr.
"""

from __future__ import annotations

import logging
import logging.config
import sys
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from galera_entrypoint.startup.config_schema import EntrypointConfig

# Configure logger
logger = logging.getLogger(__name__)


def setup_logging(config: EntrypointConfig) -> None:
    """Configure logging for the entrypoint based on the resolved configuration."""
    level = "DEBUG" if config.image_debug else config.log_level.value

    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": (
                    "%(asctime)s | %(name)s | %(levelname)s | "
                    "%(filename)s:%(lineno)d | %(funcName)s | %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "simple": {
                "format": "%(asctime)s | %(levelname)s | [Init] %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if config.image_debug else "simple",
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "galera_entrypoint": {
                "level": level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"],
        },
    }

    logging.config.dictConfig(logging_config)

    logger.debug("Logging configured for %s with level %s", config.product, level)
