"""Rich-based live progress display for the bootstrap.

Renders one line per target showing its current phase and status. Each
target moves through:

    Waiting -> Extracting [=======>      ] 55% -> Configuring (spinner) ./configure ...
    -> Building (spinner) make install -> Probing -> Done (checkmark) 41.2s

The bootstrap runs in the main thread and blocks on external tools, so the
table is rendered on demand by Live's own refresh thread.
"""

import threading
import time
from typing import Any

from rich.console import Console, Group
from rich.live import Live
from rich.table import Table
from rich.text import Text

from .models import TargetPhase

# Braille spinner frames for the configure/build phases
_SPINNER_FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")

_PHASE_LABELS = {
    TargetPhase.WAITING: ("Waiting", "dim"),
    TargetPhase.EXTRACTING: ("Extracting", "yellow"),
    TargetPhase.CONFIGURING: ("Configuring", "blue"),
    TargetPhase.BUILDING: ("Building", "magenta"),
    TargetPhase.PROBING: ("Probing", "cyan"),
    TargetPhase.DONE: ("Done", "green"),
    TargetPhase.FAILED: ("Failed", "red bold"),
}

_ACTIVE_PHASES = (TargetPhase.EXTRACTING, TargetPhase.CONFIGURING, TargetPhase.BUILDING, TargetPhase.PROBING)


class _TargetDisplayState:
    """Internal state for a single target's display line."""

    __slots__ = ("name", "version", "phase", "progress", "total", "detail", "elapsed", "start_time")

    def __init__(self, name: str, version: str) -> None:
        self.name = name
        self.version = version
        self.phase = TargetPhase.WAITING
        self.progress: float = 0.0
        self.total: float = 0.0
        self.detail: str = ""
        self.elapsed: float = 0.0
        self.start_time: float | None = None


class BootstrapProgressDisplay:
    """Live per-target progress table using Rich.

    Implements BootstrapCallback.

    Args:
        console: Rich Console instance for rendering. If None, creates a new one.
        refresh_per_second: Display refresh rate.
    """

    def __init__(self, console: Console | None = None, refresh_per_second: int = 8) -> None:
        self._console = console if console is not None else Console()
        self._refresh_per_second = refresh_per_second
        self._states: dict[str, _TargetDisplayState] = {}
        self._order: list[str] = []
        self._lock = threading.Lock()
        self._live: Live | None = None

    def register_target(self, name: str, version: str) -> None:
        """Register a target before the bootstrap starts so it shows as Waiting."""
        with self._lock:
            if name not in self._states:
                self._states[name] = _TargetDisplayState(name, version)
                self._order.append(name)

    def on_progress(self, target_name: str, phase: TargetPhase, progress: float, total: float, detail: str) -> None:
        """Update the display state for a target."""
        with self._lock:
            state = self._states.get(target_name)
            if state is None:
                state = _TargetDisplayState(target_name, "")
                self._states[target_name] = state
                self._order.append(target_name)

            if state.phase == TargetPhase.WAITING and phase != TargetPhase.WAITING:
                state.start_time = time.monotonic()

            state.phase = phase
            state.progress = progress
            state.total = total
            state.detail = detail
            if state.start_time is not None:
                state.elapsed = time.monotonic() - state.start_time

    def start(self) -> None:
        """Start the live display."""
        self._live = Live(
            console=self._console,
            get_renderable=self._render_display,
            refresh_per_second=self._refresh_per_second,
            transient=False,
        )
        self._live.start()

    def stop(self) -> None:
        """Stop the live display after a final render."""
        if self._live is not None:
            self._live.refresh()
            self._live.stop()
            self._live = None

    def _render_display(self) -> Group:
        header = Text("\nBootstrapping vendored libraries...\n", style="bold")
        return Group(header, self._render_table(), self._render_footer())

    def _render_table(self) -> Table:
        table = Table(show_header=False, show_edge=False, show_lines=False, box=None, padding=(0, 1), expand=False)
        table.add_column("Target", style="bold", no_wrap=True, min_width=16)
        table.add_column("Phase", no_wrap=True, min_width=12)
        table.add_column("Status", no_wrap=True, min_width=40)

        with self._lock:
            for name in self._order:
                state = self._states[name]
                table.add_row(self._format_name(state), self._format_phase(state), self._format_status(state))
        return table

    def _render_footer(self) -> Text:
        with self._lock:
            total = len(self._states)
            done_count = sum(1 for s in self._states.values() if s.phase == TargetPhase.DONE)
            failed_count = sum(1 for s in self._states.values() if s.phase == TargetPhase.FAILED)

        parts = [f"{total} targets"]
        if done_count:
            parts.append(f"{done_count} done")
        if failed_count:
            parts.append(f"{failed_count} failed")
        return Text(f"\n  {', '.join(parts)}", style="dim")

    def _format_name(self, state: _TargetDisplayState) -> Text:
        label = f"{state.name}-{state.version}" if state.version else state.name
        if state.phase == TargetPhase.DONE:
            return Text(label, style="green")
        if state.phase == TargetPhase.FAILED:
            return Text(label, style="red")
        if state.phase == TargetPhase.WAITING:
            return Text(label, style="dim")
        return Text(label, style="bold cyan")

    def _format_phase(self, state: _TargetDisplayState) -> Text:
        label, style = _PHASE_LABELS.get(state.phase, ("Unknown", "dim"))
        return Text(label, style=style)

    def _format_status(self, state: _TargetDisplayState) -> Text:
        if state.phase == TargetPhase.WAITING:
            return Text("")

        if state.phase == TargetPhase.EXTRACTING:
            return self._format_progress_bar(state)

        if state.phase in _ACTIVE_PHASES:
            spinner = _SPINNER_FRAMES[int(time.monotonic() * 8) % len(_SPINNER_FRAMES)]
            return Text(f"{spinner} {state.detail}", style=_PHASE_LABELS[state.phase][1])

        if state.phase == TargetPhase.DONE:
            elapsed_str = f" {state.elapsed:.1f}s" if state.elapsed > 0 else ""
            return Text(f"✓ {state.detail}{elapsed_str}", style="green")

        return Text(f"✗ {state.detail or 'Error'}", style="red")

    def _format_progress_bar(self, state: _TargetDisplayState) -> Text:
        """Text progress bar like [=========>     ] 62%."""
        bar_width = 20
        pct = min(state.progress / state.total, 1.0) if state.total > 0 else 0.0

        filled = int(bar_width * pct)
        remaining = bar_width - filled
        if 0 < filled < bar_width:
            bar = "=" * (filled - 1) + ">" + " " * remaining
        elif filled == bar_width:
            bar = "=" * bar_width
        else:
            bar = " " * bar_width

        return Text(f"[{bar}] {pct * 100:>3.0f}%", style="yellow")

    def get_snapshot(self) -> list[dict[str, Any]]:
        """Current display states, for testing."""
        with self._lock:
            return [
                {
                    "name": s.name,
                    "version": s.version,
                    "phase": s.phase,
                    "progress": s.progress,
                    "total": s.total,
                    "detail": s.detail,
                }
                for s in (self._states[name] for name in self._order)
            ]

    def __enter__(self) -> "BootstrapProgressDisplay":
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()
