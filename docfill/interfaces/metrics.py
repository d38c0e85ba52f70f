"""Abstract base class for generation metrics stores.

The pipeline reports through this interface so that it stays stateless;
implementations own whatever synchronization their backing store needs.
"""

from abc import ABC, abstractmethod
from typing import Any


class BaseMetricsStore(ABC):
    """Abstract base class for metrics stores.

    Implementations must be safe to call from concurrent invocations.
    """

    @abstractmethod
    def record_generation(self, mode: str) -> None:
        """Count one successful generation produced by the given mode."""
        ...

    @abstractmethod
    def record_failure(self, kind: str) -> None:
        """Count one structured failure of the given error kind."""
        ...

    @abstractmethod
    def touch_health(self) -> None:
        """Remember that a health check just ran."""
        ...

    @abstractmethod
    def snapshot(self) -> dict[str, Any]:
        """Return a point-in-time copy of all counters.

        Returns:
            Dict with startTime, uptimeSeconds, generationCount, modes,
            failures, lastDocGenerationTime and lastHealthTime.
        """
        ...
