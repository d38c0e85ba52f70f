"""Metrics store implementations."""

from docfill.strategies.metrics.memory import InMemoryMetricsStore

__all__ = ["InMemoryMetricsStore"]
