"""Ports layer - interfaces the startup pipeline depends on.

Startup components depend on these abstractions rather than on subprocess
directly, so tests can substitute fakes for the server and client binaries.
"""

from galera_entrypoint.ports.process_ports import (
    CommandResult,
    IProcessHandle,
    IProcessRunner,
)

__all__ = [
    "CommandResult",
    "IProcessHandle",
    "IProcessRunner",
]
