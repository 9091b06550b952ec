"""Galera Entrypoint Configuration Schema.

Pydantic-based configuration for the container entrypoint. The whole
configuration is resolved once, before any pipeline component runs, into an
immutable ``EntrypointConfig``. Inputs that commonly carry credentials may be
supplied through ``NAME_FILE`` indirection (see ``startup.secrets``).
"""

from __future__ import annotations

from enum import StrEnum
import logging
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from galera_entrypoint.core.exceptions import InvalidConfiguration
from galera_entrypoint.startup.secrets import resolve_secrets

logger = logging.getLogger(__name__)

# Sentinel values accepted for MYSQL_ROOT_PASSWORD
RANDOM_PASSWORD = "RANDOM"  # noqa: S105
EMPTY_PASSWORD = "EMPTY"  # noqa: S105

DEFAULT_ROOT_HOST = "%"

# Inputs that may be supplied through NAME_FILE indirection
SECRET_VARIABLES = [
    "MYSQL_USER",
    "MYSQL_PASSWORD",
    "MYSQL_DATABASE",
    "MYSQL_ROOT_PASSWORD",
    "MYSQL_ALLOW_EMPTY_PASSWORD",
    "MYSQL_RANDOM_ROOT_PASSWORD",
    "MYSQL_ROOT_HOST",
    "MYSQL_ONETIME_PASSWORD",
    "MYSQL_INITDB_TZINFO",
    "MYSQL_INITDB_SKIP_TZINFO",
    "WSREP_JOIN",
]

# Keys an init script may override for the steps that follow it
OVERRIDABLE_VARIABLES = frozenset(
    {
        "MYSQL_ROOT_PASSWORD",
        "MYSQL_ROOT_HOST",
        "MYSQL_ONETIME_PASSWORD",
        "MYSQL_ALLOW_EMPTY_PASSWORD",
        "MYSQL_RANDOM_ROOT_PASSWORD",
    }
)


class LogLevel(StrEnum):
    """Valid log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EntrypointConfig(BaseSettings):
    """Resolved entrypoint configuration.

    Frozen after construction: components that need a changed view (init
    script overrides) get a new instance from ``with_overrides``.
    """

    product: str = Field(
        default="mysql-wsrep", description="Product name for messages", alias="PRODUCT"
    )

    # Application provisioning
    mysql_user: str = Field(
        default="", description="Application user to create", alias="MYSQL_USER"
    )
    mysql_password: str = Field(
        default="",
        description="Application user password",
        alias="MYSQL_PASSWORD",
        repr=False,
    )
    mysql_database: str = Field(
        default="", description="Application database to create", alias="MYSQL_DATABASE"
    )

    # Root account
    mysql_root_password: str = Field(
        default=RANDOM_PASSWORD,
        description="Root password, or RANDOM / EMPTY",
        alias="MYSQL_ROOT_PASSWORD",
        repr=False,
    )
    mysql_allow_empty_password: bool = Field(
        default=False,
        description="Allow an empty root password",
        alias="MYSQL_ALLOW_EMPTY_PASSWORD",
    )
    mysql_random_root_password: bool = Field(
        default=False,
        description="Generate a random root password",
        alias="MYSQL_RANDOM_ROOT_PASSWORD",
    )
    mysql_root_host: str = Field(
        default=DEFAULT_ROOT_HOST,
        description="Host pattern for the remote root account",
        alias="MYSQL_ROOT_HOST",
    )
    mysql_onetime_password: bool = Field(
        default=False,
        description="Expire the remote root password on first login",
        alias="MYSQL_ONETIME_PASSWORD",
    )

    # Timezone tables
    mysql_initdb_tzinfo: bool = Field(
        default=True, description="Load timezone tables", alias="MYSQL_INITDB_TZINFO"
    )
    mysql_initdb_skip_tzinfo: bool = Field(
        default=False,
        description="Skip loading timezone tables",
        alias="MYSQL_INITDB_SKIP_TZINFO",
    )

    # Cluster
    wsrep_join: str = Field(
        default="",
        description="Comma separated peer addresses to join",
        alias="WSREP_JOIN",
    )

    # Paths and binaries
    initdb_dir: Path = Field(
        default=Path("/codership-initdb.d"),
        description="Custom init directory",
        alias="INITDB_DIR",
    )
    server_binary: str = Field(
        default="mysqld", description="Default server binary", alias="MYSQL_SERVER"
    )
    client_binary: str = Field(
        default="mysql", description="Client binary", alias="MYSQL_CLIENT"
    )
    tzinfo_binary: str = Field(
        default="mysql_tzinfo_to_sql",
        description="Timezone converter binary",
        alias="MYSQL_TZINFOTOSQL",
    )
    zoneinfo_dir: Path = Field(
        default=Path("/usr/share/zoneinfo"),
        description="System zoneinfo directory",
        alias="ZONEINFO_DIR",
    )
    recovery_helper: str = Field(
        default="wsrep_recover",
        description="Position recovery helper",
        alias="WSREP_RECOVER",
    )
    system_database: str = Field(
        default="mysql", description="System database name", alias="MYSQL_DB"
    )

    # Setup instance timing
    setup_poll_interval: float = Field(
        default=1.0,
        description="Seconds between readiness checks",
        gt=0,
        alias="SETUP_POLL_INTERVAL",
    )
    setup_shutdown_timeout: float = Field(
        default=120.0,
        description="Seconds to wait for the setup instance to stop",
        gt=0,
        alias="SETUP_SHUTDOWN_TIMEOUT",
    )

    # Diagnostics
    log_level: LogLevel = Field(
        default=LogLevel.INFO, description="Logging level", alias="LOG_LEVEL"
    )
    image_debug: bool = Field(
        default=False, description="Verbose image debugging", alias="IMAGEDEBUG"
    )
    dry_run: bool = Field(
        default=False,
        description="Validate and classify only",
        alias="ENTRYPOINT_DRY_RUN",
    )

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("mysql_root_host")
    @classmethod
    def validate_root_host(cls, v: str) -> str:
        """Reject host patterns that would break out of a quoted account name."""
        if "'" in v or "\\" in v:
            msg = f"Invalid MYSQL_ROOT_HOST pattern: {v}"
            raise ValueError(msg)
        return v

    @property
    def join_address(self) -> str:
        """Peer list to join, empty when this node forms or resumes a cluster."""
        return self.wsrep_join.strip()

    def timezone_load_enabled(self) -> bool:
        """Check if timezone tables should be loaded."""
        return self.mysql_initdb_tzinfo and not self.mysql_initdb_skip_tzinfo

    def with_overrides(self, overrides: dict[str, str]) -> EntrypointConfig:
        """Return a validated copy with environment-style overrides applied.

        Args:
            overrides: Mapping of env variable name to raw string value

        Raises:
            InvalidConfiguration: An override does not validate
        """
        values = self.model_dump(by_alias=True)
        values.update(overrides)
        try:
            return type(self).model_validate(values)
        except ValidationError as e:
            errors = _format_errors(e)
            msg = f"Invalid configuration override: {'; '.join(errors)}"
            raise InvalidConfiguration(msg, details={"errors": errors}) from e

    def child_environment(self) -> dict[str, str]:
        """Resolved provisioning inputs, exported to init scripts."""
        return {
            "MYSQL_USER": self.mysql_user,
            "MYSQL_PASSWORD": self.mysql_password,
            "MYSQL_DATABASE": self.mysql_database,
            "MYSQL_ROOT_PASSWORD": self.mysql_root_password,
            "MYSQL_ROOT_HOST": self.mysql_root_host,
            "MYSQL_ALLOW_EMPTY_PASSWORD": "1" if self.mysql_allow_empty_password else "",
            "MYSQL_RANDOM_ROOT_PASSWORD": "1" if self.mysql_random_root_password else "",
            "MYSQL_ONETIME_PASSWORD": "1" if self.mysql_onetime_password else "",
            "WSREP_JOIN": self.wsrep_join,
        }

    def get_startup_summary(self) -> dict[str, Any]:
        """Get non-secret configuration summary."""
        return {
            "product": self.product,
            "server_binary": self.server_binary,
            "join_address": self.join_address or "(none)",
            "database": self.mysql_database or "(none)",
            "user": self.mysql_user or "(none)",
            "root_host": self.mysql_root_host,
            "timezone_load": self.timezone_load_enabled(),
            "initdb_dir": str(self.initdb_dir),
            "log_level": self.log_level.value,
        }

    @classmethod
    def from_env(cls) -> EntrypointConfig:
        """Resolve secrets and build the configuration from the environment.

        Raises:
            ConfigurationConflict: A value and its _FILE form are both set
            InvalidConfiguration: A value does not validate
        """
        resolved = {k: v for k, v in resolve_secrets(SECRET_VARIABLES).items() if v}
        try:
            return cls(**resolved)
        except ValidationError as e:
            errors = _format_errors(e)
            msg = f"Configuration validation failed: {'; '.join(errors)}"
            raise InvalidConfiguration(msg, details={"errors": errors}) from e


def _format_errors(error: ValidationError) -> list[str]:
    errors = []
    for item in error.errors():
        field_path = ".".join(str(loc) for loc in item["loc"])
        errors.append(f"{field_path}: {item['msg']}")
    return errors


def load_config() -> EntrypointConfig:
    """Load and validate configuration with clear error reporting."""
    config = EntrypointConfig.from_env()
    logger.debug("Configuration loaded: %s", config.get_startup_summary())
    return config
