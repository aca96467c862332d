"""Holder for the live application state replaced by a successful load."""

import logging
import threading
from typing import Generic, TypeVar

from saveforge.core.loader import LoadResult, SaveLoader

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StateHolder(Generic[T]):
    """Thread-safe holder of the current domain state.

    Readers always see either the old or the new state, never a mix:
    the state is swapped as a single reference under a writer lock, and
    only after a load fully succeeded.

    Example:
        holder = StateHolder(SaveFile(version="2.0.0"))
        holder.load_into(loader, raw_bytes)
        current = holder.get()
    """

    def __init__(self, initial: T | None = None):
        self._state = initial
        self._write_lock = threading.Lock()
        self._generation = 0

    def get(self) -> T | None:
        return self._state

    @property
    def generation(self) -> int:
        """Number of replacements so far."""
        return self._generation

    def replace(self, new_state: T) -> T | None:
        """Swap in a new state and return the previous one."""
        with self._write_lock:
            previous = self._state
            self._state = new_state
            self._generation += 1
        return previous

    def reset(self, empty_state: T) -> T | None:
        """Clear the live state, e.g. to start a new save from scratch.

        Args:
            empty_state: The state representing "nothing loaded"

        Returns:
            The state that was replaced
        """
        logger.info("Resetting live state")
        return self.replace(empty_state)

    def load_into(
        self,
        loader: SaveLoader[T],
        raw: bytes | str,
        source_name: str | None = None,
    ) -> LoadResult[T]:
        """Load a save file and swap it in.

        On any LoadError the current state is left untouched and the
        error propagates.
        """
        result = loader.load(raw, source_name=source_name)
        self.replace(result.state)
        return result
