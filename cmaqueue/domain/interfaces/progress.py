"""Interface for progress reporting.

Defines the contract used by the queue engine to report how many work items
have settled. Implementations are purely observational: they must never
delay, reorder or otherwise influence the operations they report on.
"""

import abc
from typing import Any


class ProgressReporter(abc.ABC):
    """Abstract Base Class for rendering queue progress."""

    @abc.abstractmethod
    def create(self, total: int, label: str) -> Any:
        """Starts tracking a new unit of work.

        Args:
            total: Number of items that will settle.
            label: Text shown next to the progress indicator.

        Returns:
            An opaque handle passed back to tick() and finish().
        """
        pass

    @abc.abstractmethod
    def tick(self, handle: Any) -> None:
        """Records that one more item has settled.

        Args:
            handle: The handle returned by create().
        """
        pass

    def finish(self, handle: Any) -> None:
        """Stops rendering for the given handle. Optional for implementations."""
        pass
