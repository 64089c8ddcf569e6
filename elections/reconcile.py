"""Batch status reconciliation

Advances elections whose status fell behind the clock because nobody wrote
to them. Each change is a compare-and-set on the status the sweep read, so
an admin edit that lands between read and write wins and the sweep simply
skips that election.
"""

from datetime import datetime
from typing import Dict, Optional

from config import get_logger
from elections.protocols import MetricsCollector, NullMetrics
from elections.status import reconcile_status
from exceptions import DatabaseError

logger = get_logger(__name__).bind(component="reconcile")


async def reconcile_statuses(
    elections,
    now: datetime,
    metrics: Optional[MetricsCollector] = None,
) -> Dict[str, int]:
    """Run one sweep.

    Args:
        elections: ElectionRepository
        now: Time the sweep evaluates windows against
        metrics: Optional metrics collector

    Returns:
        Counts: checked, transitioned, skipped (lost the compare-and-set), failed
    """
    metrics = metrics or NullMetrics()
    stats = {"checked": 0, "transitioned": 0, "skipped": 0, "failed": 0}

    for election in await elections.get_elections_for_reconciliation():
        stats["checked"] += 1
        target = reconcile_status(election, now)
        if target is None:
            continue

        try:
            changed = await elections.set_status_if(election.id, election.status, target, now)
        except DatabaseError as e:
            # One bad row must not stop the sweep
            stats["failed"] += 1
            metrics.record_error("reconcile", e)
            logger.error("status update failed", election_id=election.id, error=str(e))
            continue

        if not changed:
            stats["skipped"] += 1
            logger.debug("status changed concurrently", election_id=election.id)
            continue

        stats["transitioned"] += 1
        metrics.status_transitions.labels(
            from_status=election.status.value,
            to_status=target.value,
            path="batch",
        ).inc()
        logger.info(
            "status transition",
            election_id=election.id,
            from_status=election.status.value,
            to_status=target.value,
            path="batch",
        )

    logger.info("reconciliation sweep complete", **stats)
    return stats
