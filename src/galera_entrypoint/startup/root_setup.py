"""Root account setup.

Resolves the effective root password and composes the batched statement set
that configures the root accounts. The batch runs in one client session with
binary logging disabled, so the administrative changes are not replicated as
data changes and no partial privilege state is visible from outside.
"""

from __future__ import annotations

import base64
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
import logging
import secrets

from galera_entrypoint.startup.config_schema import (
    EMPTY_PASSWORD,
    RANDOM_PASSWORD,
    EntrypointConfig,
)
from galera_entrypoint.startup.sql_client import account, quote_string

logger = logging.getLogger(__name__)

RANDOM_PASSWORD_BYTES = 24

DISABLE_BINLOG = "SET @@SESSION.SQL_LOG_BIN=0;"
FLUSH_PRIVILEGES = "FLUSH PRIVILEGES;"


class RootPasswordKind(StrEnum):
    """How the root password was chosen."""

    LITERAL = "literal"
    RANDOM = "random"
    EMPTY = "empty"


@dataclass(frozen=True)
class RootPassword:
    """Effective root password."""

    kind: RootPasswordKind
    value: str = ""

    def __repr__(self) -> str:
        return f"RootPassword(kind={self.kind.value!r})"

    @property
    def is_empty(self) -> bool:
        return self.kind == RootPasswordKind.EMPTY


def generate_password() -> str:
    """Random base64 password, equivalent to ``openssl rand -base64 24``."""
    return base64.b64encode(secrets.token_bytes(RANDOM_PASSWORD_BYTES)).decode()


def resolve_root_password(
    config: EntrypointConfig,
    generator: Callable[[], str] = generate_password,
) -> RootPassword:
    """Resolve the root password from the configuration.

    Precedence: the random-password flag, then an empty-password request
    (flag or ``EMPTY``), then the ``RANDOM`` sentinel that
    ``MYSQL_ROOT_PASSWORD`` defaults to, then a literal value.

    A random password is printed once and never persisted. An empty password
    is allowed but logged as a security warning.
    """
    if config.mysql_random_root_password:
        return _random_password(generator)

    if config.mysql_allow_empty_password or config.mysql_root_password == EMPTY_PASSWORD:
        logger.warning("=-> Warning! Warning! Warning!")
        logger.warning(
            "EMPTY password is specified for image, your container is insecure!!!"
        )
        return RootPassword(RootPasswordKind.EMPTY)

    if config.mysql_root_password == RANDOM_PASSWORD:
        return _random_password(generator)

    return RootPassword(RootPasswordKind.LITERAL, config.mysql_root_password)


def _random_password(generator: Callable[[], str]) -> RootPassword:
    password = RootPassword(RootPasswordKind.RANDOM, generator())
    print(f"GENERATED ROOT PASSWORD: {password.value}", flush=True)  # noqa: T201
    return password


def build_root_setup(
    password: RootPassword,
    *,
    root_host: str,
    onetime_password: bool = False,
) -> list[str]:
    """Compose the root setup statements.

    Args:
        password: Effective root password
        root_host: Host pattern for the remote root account; empty or
            ``localhost`` means no remote root account
        onetime_password: Expire the remote root password on first login

    Returns:
        Statements in execution order, always ending with a privilege flush
    """
    statements = [DISABLE_BINLOG]

    if root_host and root_host != "localhost":
        remote_root = account("root", root_host)
        statements.extend(
            (
                f"CREATE USER IF NOT EXISTS {remote_root} "
                f"IDENTIFIED BY {quote_string(password.value)};",
                f"GRANT ALL ON *.* TO {remote_root} WITH GRANT OPTION;",
            )
        )
        if onetime_password:
            statements.append(f"ALTER USER {remote_root} PASSWORD EXPIRE;")

    if not password.is_empty:
        local_root = account("root", "localhost")
        statements.extend(
            (
                f"GRANT ALL ON *.* TO {local_root} WITH GRANT OPTION;",
                f"ALTER USER {local_root} "
                f"IDENTIFIED BY {quote_string(password.value)};",
            )
        )

    statements.append(FLUSH_PRIVILEGES)
    return statements
