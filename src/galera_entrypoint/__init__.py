"""Galera Entrypoint - container node lifecycle for MySQL/Galera.

Decides on each container start whether the node joins, recovers or
bootstraps a cluster, performs the one-time initialization and provisioning,
then execs the server as the container's foreground process.
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
