"""Galera Entrypoint Startup Progress Reporter.

Human-readable progress for the container log: one line per phase, one line
per step with its outcome and timing, and a closing banner before the
handoff (or before the diagnostics dump on failure).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
import logging
import sys
import time
from typing import TYPE_CHECKING, Any, TextIO

if TYPE_CHECKING:
    from galera_entrypoint.startup.classifier import BootstrapPlan
    from galera_entrypoint.startup.config_schema import EntrypointConfig

logger = logging.getLogger(__name__)

RULE_WIDTH = 60

ANSI = {
    "bold": "\033[1m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "cyan": "\033[36m",
    "gray": "\033[90m",
}
ANSI_RESET = "\033[0m"


class ProgressPhase(StrEnum):
    """Node lifecycle phases, in the order a bootstrap walks them."""

    STARTING = "starting"
    VALIDATING_CONFIG = "validating_config"
    CLASSIFYING = "classifying"
    INITIALIZING = "initializing"
    PROVISIONING = "provisioning"
    HANDING_OFF = "handing_off"
    READY = "ready"
    FAILED = "failed"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class StepStatus(StrEnum):
    """Outcome of a progress step."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def symbol(self) -> str:
        return {
            StepStatus.RUNNING: "🔄",
            StepStatus.COMPLETED: "✅",
            StepStatus.FAILED: "❌",
            StepStatus.SKIPPED: "⏭️",
        }[self]


@dataclass
class ProgressStep:
    """One unit of entrypoint work, timed from start to outcome."""

    name: str
    phase: ProgressPhase
    status: StepStatus = StepStatus.RUNNING
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    error: Exception | None = None
    started: float = field(default_factory=time.monotonic)
    finished: float | None = None

    @property
    def duration_ms(self) -> float:
        if self.finished is None:
            return 0.0
        return (self.finished - self.started) * 1000

    def finish(
        self,
        status: StepStatus,
        message: str = "",
        *,
        error: Exception | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status = status
        self.finished = time.monotonic()
        self.message = message or self.message
        self.error = error
        self.details.update(details or {})


class StartupProgressReporter:
    """Writes phase and step progress to a stream, normally stdout.

    Colors are only emitted when the stream is a terminal; container logs get
    plain text.
    """

    def __init__(
        self, output: TextIO | None = None, *, enable_colors: bool = True
    ) -> None:
        self.output = output or sys.stdout
        isatty = getattr(self.output, "isatty", None)
        self.enable_colors = bool(enable_colors and isatty and isatty())
        self.steps: list[ProgressStep] = []
        self.current_phase = ProgressPhase.STARTING
        self.started = time.monotonic()
        self.finished: float | None = None

    def _paint(self, text: str, color: str) -> str:
        if not self.enable_colors:
            return text
        return f"{ANSI[color]}{text}{ANSI_RESET}"

    def _emit(self, line: str = "") -> None:
        print(line, file=self.output, flush=True)  # noqa: T201

    def _step_line(self, step: ProgressStep, color: str, text: str) -> None:
        line = f"  {step.status.symbol} {self._paint(step.name, color)}"
        if text:
            line += f": {text}"
        if step.status is StepStatus.COMPLETED and step.duration_ms > 0:
            line += " " + self._paint(f"({step.duration_ms:.0f}ms)", "gray")
        self._emit(line)

    def _rule(self) -> None:
        self._emit(self._paint("=" * RULE_WIDTH, "gray"))

    @property
    def elapsed_ms(self) -> float:
        end = self.finished if self.finished is not None else time.monotonic()
        return (end - self.started) * 1000

    def start_startup(self, product: str) -> None:
        """Print the banner that opens the entrypoint's output."""
        self.started = time.monotonic()
        self._emit()
        self._emit(
            f"{self._paint('🚀 Preparing', 'bold')} {self._paint(product, 'cyan')}"
        )
        self._rule()

    def start_phase(self, phase: ProgressPhase, message: str = "") -> None:
        self.current_phase = phase
        line = f"📍 {self._paint(phase.label, 'bold')}"
        if message:
            line += f": {message}"
        self._emit()
        self._emit(line)
        logger.info("Startup phase: %s", phase.label)

    def start_step(self, name: str, message: str = "") -> ProgressStep:
        step = ProgressStep(name=name, phase=self.current_phase)
        self.steps.append(step)
        self._step_line(step, "bold", self._paint(message, "gray") if message else "")
        return step

    def complete_step(
        self,
        step: ProgressStep,
        message: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        step.finish(StepStatus.COMPLETED, message, details=details)
        self._step_line(step, "green", message)
        logger.debug("Completed: %s in %.0fms", step.name, step.duration_ms)

    def fail_step(
        self,
        step: ProgressStep,
        message: str,
        error: Exception | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        step.finish(StepStatus.FAILED, message, error=error, details=details)
        self._step_line(step, "red", self._paint(message, "red"))
        if error is not None:
            self._emit(f"    {self._paint('Error:', 'red')} {error}")
        logger.error("Step failed: %s - %s", step.name, message)

    def skip_step(self, step: ProgressStep, reason: str) -> None:
        step.finish(StepStatus.SKIPPED, reason)
        self._step_line(step, "yellow", self._paint(reason, "gray"))
        logger.debug("Skipped: %s - %s", step.name, reason)

    def report_startup_complete(
        self, *, success: bool = True, message: str = ""
    ) -> None:
        """Close the progress output before handoff or diagnostics."""
        self.finished = time.monotonic()
        if success:
            self.current_phase = ProgressPhase.READY
            banner = f"✅ {self._paint('Entrypoint Complete', 'green')}"
        else:
            self.current_phase = ProgressPhase.FAILED
            banner = f"❌ {self._paint('Entrypoint Failed', 'red')}"
        banner += f" ({self.elapsed_ms:.0f}ms)"
        if message:
            banner += f": {message}"
        self._emit()
        self._emit(banner)
        self._rule()
        self._emit()

    def get_startup_summary(self) -> dict[str, Any]:
        counts = Counter(step.status for step in self.steps)
        return {
            "total_duration_ms": self.elapsed_ms if self.finished is not None else 0.0,
            "total_steps": len(self.steps),
            "completed_steps": counts[StepStatus.COMPLETED],
            "failed_steps": counts[StepStatus.FAILED],
            "skipped_steps": counts[StepStatus.SKIPPED],
            "final_phase": self.current_phase.value,
            "success": (
                not counts[StepStatus.FAILED]
                and self.current_phase is ProgressPhase.READY
            ),
        }

    def create_dry_run_report(
        self,
        config: EntrypointConfig,
        plan: BootstrapPlan,
        command: list[str],
        *,
        node_marker: bool,
        data_store: bool,
    ) -> str:
        """Describe what a real start would do, without doing any of it.

        Secrets never appear: only the configuration summary is rendered.
        """

        def planned(enabled: bool, label: str) -> str:
            mark = StepStatus.COMPLETED if enabled else StepStatus.SKIPPED
            return f"  {mark.symbol} {label}"

        initializes = plan.may_initialize and not data_store
        summary = config.get_startup_summary()
        return "\n".join(
            [
                "🔍 Galera Entrypoint Dry-Run Report",
                "=" * 50,
                "",
                "📋 Configuration Summary:",
                *(f"  • {key}: {value}" for key, value in summary.items()),
                "",
                "🧭 Bootstrap Classification:",
                f"  • node marker: {'present' if node_marker else 'absent'}",
                f"  • data store: {'present' if data_store else 'absent'}",
                f"  • mode: {plan.mode.value}",
                "",
                "🔧 Planned Steps:",
                planned(initializes, "Initialize data directory"),
                planned(plan.runs_setup and initializes, "Provision setup instance"),
                planned(True, "Hand off to server"),
                "",
                "🚀 Final command:",
                f"  {' '.join(command)}",
            ]
        )
