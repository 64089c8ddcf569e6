"""Election lifecycle state machine

Two ways a status changes:
- Reactive: every admin write recomputes status from the voting window and
  must follow a single legal edge of TRANSITIONS.
- Batch: the periodic reconciliation sweep advances elections nobody wrote
  to, and may skip intermediate states it missed.

Everything here is a pure function of (election, now) so the transition
table is testable without a database.
"""

from datetime import datetime
from typing import Dict, FrozenSet, Optional

from database.models import Election, ElectionStatus
from exceptions import ValidationError

DRAFT = ElectionStatus.DRAFT
UPCOMING = ElectionStatus.UPCOMING
ACTIVE = ElectionStatus.ACTIVE
COMPLETED = ElectionStatus.COMPLETED
CANCELLED = ElectionStatus.CANCELLED

TRANSITIONS: Dict[ElectionStatus, FrozenSet[ElectionStatus]] = {
    DRAFT: frozenset({UPCOMING, ACTIVE, COMPLETED, CANCELLED}),
    UPCOMING: frozenset({ACTIVE, CANCELLED}),
    ACTIVE: frozenset({COMPLETED, CANCELLED}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)

# Statuses whose tallies may be shown publicly
RESULTS_VISIBLE_STATUSES = frozenset({ACTIVE, COMPLETED})


def is_terminal(status: ElectionStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_legal_transition(current: ElectionStatus, target: ElectionStatus) -> bool:
    """Staying put is always legal; otherwise the edge must exist"""
    if current == target:
        return True
    return target in TRANSITIONS[current]


def status_for_window(now: datetime, start_date: datetime, end_date: datetime) -> ElectionStatus:
    """Map wall-clock time onto the voting window (inclusive on both ends)"""
    if now < start_date:
        return UPCOMING
    if now <= end_date:
        return ACTIVE
    return COMPLETED


def derive_status(
    election: Election,
    now: datetime,
    current: Optional[ElectionStatus] = None,
    requested: Optional[ElectionStatus] = None,
) -> ElectionStatus:
    """Reactive path: compute the status a write should persist.

    Args:
        election: Would-be final state (patch already merged)
        now: Current time
        current: Persisted status before the write, None for a new election
        requested: Status explicitly supplied by the caller, if any

    Returns:
        Status to persist

    Raises:
        ValidationError: illegal transition, or a non-draft election missing
            required fields
    """
    if current is not None and current == CANCELLED:
        if requested is not None and requested != CANCELLED:
            raise ValidationError("invalid status transition", field="status", value=requested.value)
        return CANCELLED

    if requested == CANCELLED:
        if current is not None and is_terminal(current):
            raise ValidationError("invalid status transition", field="status", value=requested.value)
        return CANCELLED

    if not election.is_publishable():
        if current is None or current == DRAFT:
            target = DRAFT
        else:
            raise ValidationError(
                f"A {current.value} election requires: {', '.join(election.missing_fields())}",
                field="status",
                value=current.value,
            )
    else:
        target = status_for_window(now, election.start_date, election.end_date)

    if requested is not None and requested != target:
        raise ValidationError("invalid status transition", field="status", value=requested.value)

    # First creation computes the initial status directly
    if current is not None and not is_legal_transition(current, target):
        raise ValidationError(
            "invalid status transition",
            field="status",
            value=f"{current.value} -> {target.value}",
        )

    return target


def reconcile_status(election: Election, now: datetime) -> Optional[ElectionStatus]:
    """Batch path: status the sweep should move this election to, or None.

    Allowed to jump straight from draft/upcoming to completed when the whole
    window elapsed without anyone observing the election as active.
    """
    status = election.status
    if is_terminal(status) or not election.start_date or not election.end_date:
        return None

    if election.end_date < now:
        if status == ACTIVE:
            return COMPLETED
        if status == UPCOMING:
            return COMPLETED
        if status == DRAFT and election.is_publishable():
            return COMPLETED
        return None

    if status == UPCOMING and election.within_window(now):
        return ACTIVE

    return None
