"""
Prometheus Metrics Module

Instrumentation for the voting core and the API:
- Accepted and rejected ballots
- Status transitions (reactive and batch)
- API request counts and latency
- Error tracking

Usage:
    from server.metrics import metrics
    metrics.vote_rejections.labels(reason="already_voted").inc()
"""

from prometheus_client import Counter, Gauge, Histogram, generate_latest, REGISTRY


class EvoteMetrics:
    """Centralized metrics for the evote API and reconciliation job"""

    def __init__(self):
        # Ballot metrics
        self.votes_cast = Counter(
            'evote_votes_cast_total',
            'Total ballots recorded',
        )

        self.vote_rejections = Counter(
            'evote_vote_rejections_total',
            'Ballots rejected before reaching the ledger',
            ['reason']  # election_not_active, already_voted, voter_not_found, ...
        )

        # Lifecycle metrics
        self.status_transitions = Counter(
            'evote_status_transitions_total',
            'Election status transitions',
            ['from_status', 'to_status', 'path']  # path: reactive/batch
        )

        self.elections_by_status = Gauge(
            'evote_elections',
            'Current number of elections by status',
            ['status']
        )

        # API metrics
        self.api_requests = Counter(
            'evote_api_requests_total',
            'Total API requests',
            ['endpoint', 'method', 'status_code']
        )

        self.api_request_duration = Histogram(
            'evote_api_request_duration_seconds',
            'API request duration',
            ['endpoint', 'method'],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
        )

        # Error metrics
        self.errors = Counter(
            'evote_errors_total',
            'Total errors by component and type',
            ['component', 'error_type']
        )

    def update_election_counts(self, by_status: dict):
        """Update status gauges from Database.get_stats()['by_status']"""
        for status in ['draft', 'upcoming', 'active', 'completed', 'cancelled']:
            self.elections_by_status.labels(status=status).set(by_status.get(status, 0))

    def record_error(self, component: str, error: Exception):
        """Record an error

        Args:
            component: Component name (ledger/reconcile/database/api)
            error: Exception instance
        """
        error_type = type(error).__name__
        self.errors.labels(component=component, error_type=error_type).inc()


# Global metrics instance
metrics = EvoteMetrics()


def get_metrics_text() -> str:
    """Prometheus metrics in text format for the /metrics endpoint"""
    return generate_latest(REGISTRY).decode('utf-8')
