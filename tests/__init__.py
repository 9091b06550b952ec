"""🧪 Galera Entrypoint Test Suite.

This package contains all tests for the Galera node entrypoint:
- core/: Exceptions, logging and the subprocess adapter
- startup/: Classification, initialization, provisioning and handoff
- fakes/: In-memory process runner used in place of the server binaries
"""

from __future__ import annotations
