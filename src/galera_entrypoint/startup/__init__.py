"""Galera Entrypoint Startup System.

Node classification, one-time initialization, setup-instance provisioning
and handoff, with clear feedback and a diagnostic dump on any failure.
"""

from __future__ import annotations

from galera_entrypoint.startup.classifier import BootstrapMode, BootstrapPlan, classify
from galera_entrypoint.startup.config_schema import EntrypointConfig
from galera_entrypoint.startup.orchestrator import EntrypointOrchestrator
from galera_entrypoint.startup.progress_reporter import StartupProgressReporter

__all__ = [
    "BootstrapMode",
    "BootstrapPlan",
    "EntrypointConfig",
    "EntrypointOrchestrator",
    "StartupProgressReporter",
    "classify",
]
