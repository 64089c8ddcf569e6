"""Metrics Protocol - Interface for metrics collection without concrete dependency

This protocol enables dependency injection of metrics into the election
core, allowing it to be tested and run (e.g. from the reconcile CLI)
without the server module.
"""

from typing import Protocol, Any


class LabeledCounter(Protocol):
    def labels(self, **kwargs: Any) -> "LabeledCounter": ...
    def inc(self, amount: float = 1) -> None: ...


class MetricsCollector(Protocol):
    """Metrics interface for the election core

    Used by:
    - elections/ledger.py - accepted and rejected ballots
    - elections/reconcile.py - batch status transitions
    """
    votes_cast: LabeledCounter
    vote_rejections: LabeledCounter
    status_transitions: LabeledCounter

    def record_error(self, component: str, error: Exception) -> None: ...


class _NullCounter:
    def labels(self, **kwargs: Any) -> "_NullCounter":
        return self

    def inc(self, amount: float = 1) -> None:
        pass


class NullMetrics:
    """No-op metrics for testing or standalone use"""

    def __init__(self):
        self.votes_cast = _NullCounter()
        self.vote_rejections = _NullCounter()
        self.status_transitions = _NullCounter()

    def record_error(self, component: str, error: Exception) -> None:
        pass
