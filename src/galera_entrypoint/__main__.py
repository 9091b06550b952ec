"""Allow ``python -m galera_entrypoint``."""

import sys

from galera_entrypoint.startup.orchestrator import main

sys.exit(main())
