"""Stage progress callback protocol.

Build targets report every phase change through a BuildCallback. The rich
progress display implements this protocol; NullCallback discards updates.
"""

from enum import Enum
from typing import Protocol, runtime_checkable


class StagePhase(Enum):
    """Phase of a single build stage."""

    WAITING = "waiting"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


@runtime_checkable
class BuildCallback(Protocol):
    """Protocol for receiving stage updates from build targets.

    Called from target threads, so implementations must be thread-safe.
    """

    def on_stage(self, name: str, phase: StagePhase, detail: str) -> None:
        """Called when a stage changes phase.

        Args:
            name: Stage description (e.g. "compile example.com/lib").
            phase: New phase of the stage.
            detail: Human-readable detail (artifact path or failure message).
        """
        ...


class NullCallback:
    """No-op callback for tests and non-interactive use."""

    def on_stage(self, name: str, phase: StagePhase, detail: str) -> None:
        """Discard stage update."""
        pass
