"""Secret resolution with ``_FILE`` indirection.

Any input ``NAME`` may instead be supplied as ``NAME_FILE`` pointing at a file
holding the value (Docker and Kubernetes secrets are mounted this way). The
two forms are mutually exclusive.
"""

from __future__ import annotations

from collections.abc import MutableMapping
import logging
import os
from pathlib import Path

from galera_entrypoint.core.exceptions import (
    ConfigurationConflict,
    InvalidConfiguration,
)

logger = logging.getLogger(__name__)

FILE_SUFFIX = "_FILE"


def file_variable(name: str) -> str:
    """Name of the file-indirection variable for ``name``."""
    return f"{name}{FILE_SUFFIX}"


def resolve_secret(
    name: str,
    default: str | None = None,
    environ: MutableMapping[str, str] | None = None,
) -> str | None:
    """Resolve ``name`` from its direct value, its ``_FILE`` form, or a default.

    The ``_FILE`` variable is removed from ``environ`` afterwards so it is not
    inherited by any child process.

    Args:
        name: Variable name, e.g. ``MYSQL_ROOT_PASSWORD``
        default: Value returned when neither form is set
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        The resolved value, or ``default``

    Raises:
        ConfigurationConflict: Both ``name`` and ``name_FILE`` are set
        InvalidConfiguration: The indirection file cannot be read
    """
    env = os.environ if environ is None else environ
    file_name = file_variable(name)
    direct = env.get(name, "")
    indirect = env.get(file_name, "")

    if direct and indirect:
        raise ConfigurationConflict(name, file_name)

    value = default
    if direct:
        value = direct
    elif indirect:
        try:
            value = Path(indirect).read_text(encoding="utf-8").strip()
        except OSError as e:
            msg = f"Cannot read {file_name}={indirect}: {e.strerror or e}"
            raise InvalidConfiguration(msg, details={"variable": file_name}) from e
        logger.debug("Resolved %s from %s", name, file_name)

    env.pop(file_name, None)
    return value


def resolve_secrets(
    names: list[str], environ: MutableMapping[str, str] | None = None
) -> dict[str, str]:
    """Resolve several variables, returning only those that are set."""
    resolved = {}
    for name in names:
        value = resolve_secret(name, environ=environ)
        if value is not None:
            resolved[name] = value
    return resolved
