"""Rich-based live progress display for build stages.

Renders one line per stage as targets move through their phases:

    compile example.com/lib    Running   ⠹
    pack example.com/lib       Waiting
    compile example.com/util   Done      ✓ 0.4s

Thread-safe: stage threads call on_stage() concurrently while rich's Live
refreshes the table from its own thread.
"""

import threading
import time
from typing import Any

from rich.console import Console, Group
from rich.live import Live
from rich.table import Table
from rich.text import Text

from .callbacks import StagePhase

_SPINNER_FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")

_PHASE_LABELS = {
    StagePhase.WAITING: ("Waiting", "dim"),
    StagePhase.RUNNING: ("Running", "bold cyan"),
    StagePhase.DONE: ("Done", "green"),
    StagePhase.FAILED: ("Failed", "red bold"),
    StagePhase.SKIPPED: ("Skipped", "yellow"),
}


class _StageDisplayState:
    """Display state of one stage line."""

    __slots__ = ("name", "phase", "detail", "elapsed", "start_time")

    def __init__(self, name: str) -> None:
        self.name = name
        self.phase = StagePhase.WAITING
        self.detail: str = ""
        self.elapsed: float = 0.0
        self.start_time: float | None = None


class BuildProgressDisplay:
    """Live stage table implementing BuildCallback.

    Args:
        console: Rich Console to render on. If None, creates a new one.
        title: Header line (e.g. the units being built).
        refresh_per_second: Display refresh rate.
        verbose: Show artifact paths of finished stages.
    """

    def __init__(self, console: Console | None, title: str, refresh_per_second: int = 10, verbose: bool = False) -> None:
        self._console = console if console is not None else Console()
        self._title = title
        self._refresh_per_second = refresh_per_second
        self._verbose = verbose
        self._states: dict[str, _StageDisplayState] = {}
        self._order: list[str] = []
        self._lock = threading.Lock()
        self._live: Live | None = None

    def on_stage(self, name: str, phase: StagePhase, detail: str) -> None:
        """Record a stage phase change. Thread-safe."""
        with self._lock:
            state = self._states.get(name)
            if state is None:
                state = _StageDisplayState(name)
                self._states[name] = state
                self._order.append(name)

            if phase is StagePhase.RUNNING:
                state.start_time = time.monotonic()
            if state.start_time is not None:
                state.elapsed = time.monotonic() - state.start_time

            state.phase = phase
            state.detail = detail

    def start(self) -> None:
        """Start the live display."""
        self._live = Live(
            console=self._console,
            refresh_per_second=self._refresh_per_second,
            transient=False,
            get_renderable=self._render_display,
        )
        self._live.start()

    def stop(self) -> None:
        """Render the final state and stop the live display."""
        if self._live is not None:
            self._live.refresh()
            self._live.stop()
            self._live = None

    def _render_display(self) -> Group:
        header = Text(f"\nBuilding {self._title}...\n", style="bold")
        return Group(header, self._render_table(), self._render_footer())

    def _render_table(self) -> Table:
        table = Table(show_header=False, show_edge=False, show_lines=False, box=None, padding=(0, 1), expand=False)
        table.add_column("Stage", style="bold", no_wrap=True, min_width=32)
        table.add_column("Phase", no_wrap=True, min_width=9)
        table.add_column("Status", no_wrap=True, min_width=30)

        with self._lock:
            for name in self._order:
                state = self._states[name]
                label, style = _PHASE_LABELS[state.phase]
                table.add_row(Text(state.name), Text(label, style=style), self._format_status(state))
        return table

    def _render_footer(self) -> Text:
        with self._lock:
            total = len(self._states)
            counts = {phase: 0 for phase in StagePhase}
            for state in self._states.values():
                counts[state.phase] += 1

        parts = [f"{total} stages"]
        for phase, label in ((StagePhase.RUNNING, "running"), (StagePhase.DONE, "done"), (StagePhase.FAILED, "failed"), (StagePhase.SKIPPED, "skipped")):
            if counts[phase]:
                parts.append(f"{counts[phase]} {label}")
        return Text(f"\n  {', '.join(parts)}", style="dim")

    def _format_status(self, state: _StageDisplayState) -> Text:
        if state.phase is StagePhase.RUNNING:
            spinner = _SPINNER_FRAMES[int(time.monotonic() * 8) % len(_SPINNER_FRAMES)]
            return Text(spinner, style="cyan")
        if state.phase is StagePhase.DONE:
            detail = f" {state.detail}" if self._verbose and state.detail else ""
            return Text(f"✓ {state.elapsed:.1f}s{detail}", style="green")
        if state.phase is StagePhase.FAILED:
            return Text(f"✗ {state.detail or 'Error'}", style="red")
        if state.phase is StagePhase.SKIPPED:
            return Text(state.detail, style="yellow")
        return Text("")

    def get_snapshot(self) -> list[dict[str, Any]]:
        """Get a snapshot of current stage states for testing."""
        with self._lock:
            return [
                {
                    "name": s.name,
                    "phase": s.phase,
                    "detail": s.detail,
                    "elapsed": s.elapsed,
                }
                for s in (self._states[n] for n in self._order)
            ]

    def __enter__(self) -> "BuildProgressDisplay":
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()
