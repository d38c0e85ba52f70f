"""In-memory metrics store.

Process-local counters for generations, failures and health checks.
"""

import threading
import time
from collections import Counter
from typing import Any

from docfill.interfaces.metrics import BaseMetricsStore


class InMemoryMetricsStore(BaseMetricsStore):
    """Lock-guarded counters shared by every pipeline invocation in a process."""

    def __init__(self, clock=time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._start_time = clock()
        self._generation_count = 0
        self._modes: Counter[str] = Counter()
        self._failures: Counter[str] = Counter()
        self._last_generation: float | None = None
        self._last_health: float | None = None

    def record_generation(self, mode: str) -> None:
        with self._lock:
            self._generation_count += 1
            self._modes[mode] += 1
            self._last_generation = self._clock()

    def record_failure(self, kind: str) -> None:
        with self._lock:
            self._failures[kind] += 1

    def touch_health(self) -> None:
        with self._lock:
            self._last_health = self._clock()

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            now = self._clock()
            return {
                "startTime": self._start_time,
                "uptimeSeconds": max(0, int(now - self._start_time)),
                "generationCount": self._generation_count,
                "modes": dict(self._modes),
                "failures": dict(self._failures),
                "lastDocGenerationTime": self._last_generation,
                "lastHealthTime": self._last_health,
            }
