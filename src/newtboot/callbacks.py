"""Progress callback protocol for the bootstrap.

Defines the callback interface the extractor, build runner and orchestrator
use to report progress to the display layer.
"""

from typing import Protocol, runtime_checkable

from .models import TargetPhase


@runtime_checkable
class BootstrapCallback(Protocol):
    """Protocol for receiving progress updates while targets are built.

    The TUI display layer implements this protocol to render a live table of
    targets and their current phase.
    """

    def on_progress(self, target_name: str, phase: TargetPhase, progress: float, total: float, detail: str) -> None:
        """Called when a target makes progress within a phase.

        Args:
            target_name: Name of the target (e.g. "popt").
            phase: Current phase.
            progress: Current progress value (e.g. files extracted).
            total: Total expected value. May be 0 if unknown.
            detail: Human-readable status detail (e.g. "./configure --prefix ...").
        """
        ...


class NullCallback:
    """No-op callback for tests and non-interactive use."""

    def on_progress(self, target_name: str, phase: TargetPhase, progress: float, total: float, detail: str) -> None:
        """Discard progress update."""
        pass


class LogCallback:
    """Plain-text callback for non-TTY output.

    Reports phase transitions only, through the timestamped output module.
    """

    def __init__(self) -> None:
        self._last_phase: dict[str, TargetPhase] = {}

    def on_progress(self, target_name: str, phase: TargetPhase, progress: float, total: float, detail: str) -> None:
        from .output import log_detail, log_error

        if self._last_phase.get(target_name) == phase:
            return
        self._last_phase[target_name] = phase
        if phase == TargetPhase.FAILED:
            log_error(f"{target_name}: {detail}")
        else:
            log_detail(f"{target_name}: {phase.value.capitalize()} - {detail}")
