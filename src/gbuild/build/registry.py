"""Target registry - one target per (scope, import path).

The registry is the only structure mutated by concurrently constructing
graph builders. A re-entrant lock is held for the whole of a factory call,
so a factory may request its dependencies from the same thread while other
threads asking for any key wait until construction finishes.
"""

import logging
import threading
from typing import Callable

from .errors import ImportCycleError
from .target import Target

Key = tuple[str, str]


class TargetRegistry:
    """Insert-if-absent map from (scope, import path) to the target building it.

    Thread-safe: for a given key exactly one target is ever created, and every
    later or concurrent request observes that same instance.
    """

    def __init__(self) -> None:
        self._targets: dict[Key, Target] = {}
        self._constructing: set[Key] = set()
        self._lock = threading.RLock()

    def get_or_create(self, key: Key, factory: Callable[[], Target]) -> Target:
        """Return the target for key, creating it with factory if absent.

        Args:
            key: (scope, import path)
            factory: Zero-argument callable building the target

        Returns:
            The target registered for key

        Raises:
            ImportCycleError: If key is requested while its own factory runs.
        """
        with self._lock:
            target = self._targets.get(key)
            if target is not None:
                logging.debug(f"Registry hit: {key[0]}:{key[1]}")
                return target
            if key in self._constructing:
                raise ImportCycleError(key)
            self._constructing.add(key)
            try:
                target = factory()
            finally:
                self._constructing.discard(key)
            self._targets[key] = target
            logging.debug(f"Registered target for {key[0]}:{key[1]} ({len(self._targets)} total)")
            return target

    def get(self, key: Key) -> Target | None:
        """Get the target registered for key, if any."""
        with self._lock:
            return self._targets.get(key)

    def keys(self) -> list[Key]:
        """Return all registered keys."""
        with self._lock:
            return list(self._targets)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._targets

    def __len__(self) -> int:
        with self._lock:
            return len(self._targets)
