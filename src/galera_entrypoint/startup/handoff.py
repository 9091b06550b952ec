"""Terminal handoff to the long-lived server process."""

from __future__ import annotations

import logging
import sys
from typing import NoReturn

from galera_entrypoint.core.exceptions import HandoffFailed
from galera_entrypoint.ports.process_ports import IProcessRunner

logger = logging.getLogger(__name__)


class HandoffRunner:
    """Replaces the entrypoint with the final server process."""

    def __init__(self, runner: IProcessRunner) -> None:
        self.runner = runner

    def handoff(self, command: list[str]) -> NoReturn:
        """Exec ``command`` in place of this process.

        Raises:
            HandoffFailed: The program could not be executed
        """
        logger.info("Handing off to: %s", " ".join(command))
        # Buffered output would be lost with the old process image
        sys.stdout.flush()
        sys.stderr.flush()
        try:
            self.runner.exec(command)
        except OSError as e:
            raise HandoffFailed(command, e) from e
