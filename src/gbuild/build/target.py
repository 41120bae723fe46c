"""Memoized one-shot build targets.

Every build step is a Target: a result cell that is resolved exactly once
and can then be read any number of times, from any number of threads.

- TaskTarget runs a producer function on its own thread once all of its
  dependencies have resolved successfully. If a dependency fails, the
  producer is never called and the target fails with UpstreamError.
- ErrTarget is already resolved to a failure.
- DoneTarget is already resolved to a success (e.g. a cached artifact).

There is no worker pool: concurrency follows the width of the graph.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .callbacks import BuildCallback, NullCallback, StagePhase
from .errors import BuildError, UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    """Terminal result of a target.

    Attributes:
        error: Failure reason, None on success
        artifact: Location of the produced file, if the stage produces one
    """

    error: BuildError | None = None
    artifact: Path | None = None

    @property
    def ok(self) -> bool:
        """True if the target succeeded."""
        return self.error is None


class Target:
    """A build step whose outcome is set exactly once."""

    def __init__(self) -> None:
        self._done = threading.Event()
        self._settle_lock = threading.Lock()
        self._outcome: Outcome | None = None

    def result(self) -> Outcome:
        """Block until the target resolves and return its outcome.

        Only the calling thread waits. Every call returns the same Outcome.
        """
        self._done.wait()
        return self._resolved()

    def done(self) -> bool:
        """Check whether the target has resolved, without blocking."""
        return self._done.is_set()

    @property
    def artifact(self) -> Path | None:
        """Artifact location once resolved successfully, otherwise None."""
        if not self._done.is_set():
            return None
        return self._resolved().artifact

    def _resolved(self) -> Outcome:
        outcome = self._outcome
        if outcome is None:
            raise RuntimeError(f"{self} signalled done without an outcome")
        return outcome

    def _settle(self, outcome: Outcome) -> None:
        with self._settle_lock:
            if self._outcome is not None:
                raise RuntimeError(f"{self} already resolved")
            self._outcome = outcome
        self._done.set()


class ErrTarget(Target):
    """A target that has already failed. No work is ever attempted."""

    def __init__(self, error: BuildError) -> None:
        super().__init__()
        self._settle(Outcome(error=error))

    def __str__(self) -> str:
        return f"error: {self.result().error}"


class DoneTarget(Target):
    """A target that has already succeeded with an existing artifact."""

    def __init__(self, artifact: Path) -> None:
        super().__init__()
        self._settle(Outcome(artifact=artifact))

    def __str__(self) -> str:
        return f"cached {self.artifact}"


class TaskTarget(Target):
    """A target backed by a producer function run on a dedicated thread.

    Dependencies are awaited in input order; the first failing one (in that
    order, not in time order) is the failure this target reports.

    Args:
        fn: Zero-argument producer. Returns the artifact path (or None) and
            raises BuildError on failure.
        deps: Targets that must succeed before fn runs.
        callback: Receives phase updates for this target.
    """

    def __init__(
        self,
        fn: Callable[[], Path | None],
        *deps: Target,
        callback: BuildCallback | None = None,
    ) -> None:
        super().__init__()
        self._fn = fn
        self._deps = deps
        self._callback = callback if callback is not None else NullCallback()
        self._report(StagePhase.WAITING, "")
        self._thread = threading.Thread(target=self._run, name=str(self), daemon=True)
        self._thread.start()

    @property
    def deps(self) -> tuple[Target, ...]:
        """Upstream targets, in input order."""
        return self._deps

    def __str__(self) -> str:
        return getattr(self._fn, "__name__", "target")

    def _run(self) -> None:
        for dep in self._deps:
            outcome = dep.result()
            if outcome.error is not None:
                err = UpstreamError(str(self), outcome.error)
                logger.debug(f"{self}: skipped, {err.root}")
                self._report(StagePhase.SKIPPED, str(err.root))
                self._settle(Outcome(error=err))
                return

        self._report(StagePhase.RUNNING, "")
        try:
            artifact = self._fn()
        except BuildError as e:
            self._report(StagePhase.FAILED, str(e))
            self._settle(Outcome(error=e))
            return
        except Exception as e:
            logger.error(f"{self}: unexpected error: {e}", exc_info=True)
            err = BuildError(f"{self}: {e}")
            err.__cause__ = e
            self._report(StagePhase.FAILED, str(err))
            self._settle(Outcome(error=err))
            return
        except BaseException as e:
            # SystemExit and friends only end this thread; waiters still need an outcome
            logger.error(f"{self}: producer aborted by {type(e).__name__}")
            err = BuildError(f"{self}: aborted by {type(e).__name__}")
            err.__cause__ = e
            self._settle(Outcome(error=err))
            return

        self._report(StagePhase.DONE, str(artifact) if artifact is not None else "")
        self._settle(Outcome(artifact=artifact))

    def _report(self, phase: StagePhase, detail: str) -> None:
        try:
            self._callback.on_stage(str(self), phase, detail)
        except KeyboardInterrupt:
            raise
        except Exception as e:
            logger.error(f"Progress callback error: {e}", exc_info=True)
