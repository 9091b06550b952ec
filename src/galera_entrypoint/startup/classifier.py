"""Bootstrap classification.

Decides, from on-disk markers and the join address alone, how this node
enters the cluster:

=========  ==========  ==========  ===============  ===========================
join addr  NodeMarker  data store  mode             extra server arguments
=========  ==========  ==========  ===============  ===========================
set        present     any         RecoverAndJoin   cluster address + position
set        absent      any         JoinExisting     cluster address
unset      absent      absent      BootstrapNew     ``--wsrep-new-cluster``
unset      present     any         StartNormally    none
unset      absent      present     StartNormally    none
=========  ==========  ==========  ===============  ===========================

A data store without a node marker belongs to a node that was initialized
but never joined a cluster; it resumes as is rather than originating a new
cluster over existing data.

Joining nodes receive their data through state transfer, so they skip local
provisioning and go straight to handoff.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import logging
from pathlib import Path

from galera_entrypoint.ports.process_ports import IProcessRunner

logger = logging.getLogger(__name__)

NODE_MARKER = "grastate.dat"
ERROR_LOG = "mysqld.err"
NEW_CLUSTER_FLAG = "--wsrep-new-cluster"
CLUSTER_ADDRESS_SCHEME = "gcomm://"


class BootstrapMode(StrEnum):
    """How the local node enters the cluster."""

    JOIN_EXISTING = "JoinExisting"
    RECOVER_AND_JOIN = "RecoverAndJoin"
    BOOTSTRAP_NEW = "BootstrapNew"
    START_NORMALLY = "StartNormally"


@dataclass(frozen=True)
class DataDirectory:
    """Persistent layout of the server's data directory."""

    path: Path
    system_database: str = "mysql"

    @property
    def node_marker(self) -> Path:
        return self.path / NODE_MARKER

    @property
    def data_store_marker(self) -> Path:
        return self.path / self.system_database

    @property
    def error_log(self) -> Path:
        return self.path / ERROR_LOG

    def has_node_marker(self) -> bool:
        """This directory was part of a running cluster instance."""
        return self.node_marker.is_file()

    def has_data_store(self) -> bool:
        """This directory has been initialized at least once."""
        return self.data_store_marker.is_dir()


@dataclass(frozen=True)
class BootstrapPlan:
    """Immutable outcome of classification."""

    mode: BootstrapMode
    extra_args: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_joining(self) -> bool:
        return self.mode in {BootstrapMode.JOIN_EXISTING, BootstrapMode.RECOVER_AND_JOIN}

    @property
    def checks_initialization(self) -> bool:
        """Whether the one-time initialization check precedes handoff.

        Joining nodes receive their data through state transfer.
        """
        return not self.is_joining

    @property
    def may_initialize(self) -> bool:
        """Only a node originating a new cluster may create its data store."""
        return self.mode == BootstrapMode.BOOTSTRAP_NEW

    @property
    def runs_setup(self) -> bool:
        """Whether a freshly initialized node is provisioned before handoff."""
        return self.mode == BootstrapMode.BOOTSTRAP_NEW

    def server_command(self, base_command: list[str]) -> list[str]:
        return [*base_command, *self.extra_args]


def cluster_address_arg(join_address: str) -> str:
    return f"--wsrep-cluster-address={CLUSTER_ADDRESS_SCHEME}{join_address}"


def recover_position(runner: IProcessRunner, helper: str) -> str | None:
    """Run the position-recovery helper, if installed.

    Absence or failure of the helper is not fatal: the server falls back to
    its own crash recovery.

    Returns:
        The position argument printed by the helper, or None
    """
    if runner.which(helper) is None:
        logger.warning("%s not found, relying on server crash recovery", helper)
        return None

    result = runner.run([helper])
    if not result.succeeded:
        logger.warning(
            "%s exited with status %d, relying on server crash recovery",
            helper,
            result.returncode,
        )
        return None

    position = result.stdout.strip()
    if not position:
        return None
    logger.info("Recovered position: %s", position)
    return position


def classify(
    *,
    node_marker_present: bool,
    join_address: str,
    data_store_present: bool = False,
    runner: IProcessRunner | None = None,
    recovery_helper: str = "wsrep_recover",
) -> BootstrapPlan:
    """Classify the node into exactly one bootstrap mode.

    Args:
        node_marker_present: Whether the cluster-state file exists
        join_address: Peer list to join, empty if none
        data_store_present: Whether the system database already exists
        runner: Process runner used to invoke the recovery helper
        recovery_helper: Name of the position-recovery helper

    Returns:
        The bootstrap plan with the server arguments for the mode
    """
    join_address = join_address.strip()

    if join_address:
        args = [cluster_address_arg(join_address)]
        if not node_marker_present:
            return BootstrapPlan(BootstrapMode.JOIN_EXISTING, tuple(args))

        if runner is not None:
            position = recover_position(runner, recovery_helper)
            if position:
                args.append(position)
        return BootstrapPlan(BootstrapMode.RECOVER_AND_JOIN, tuple(args))

    if node_marker_present or data_store_present:
        return BootstrapPlan(BootstrapMode.START_NORMALLY)
    return BootstrapPlan(BootstrapMode.BOOTSTRAP_NEW, (NEW_CLUSTER_FLAG,))
