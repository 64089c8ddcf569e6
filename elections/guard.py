"""Election invariant guard

Single gatekeeper for every election write. Each function takes the
persisted state plus caller input and returns the complete would-be state,
already validated and with its status recomputed, or raises ValidationError.
Nothing here touches storage.
"""

import dataclasses
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from config import get_logger
from database.id_generation import generate_candidate_id, generate_election_id
from database.models import Candidate, Election, ElectionStatus
from elections.status import derive_status
from exceptions import BadRequestError, NotFoundError, ValidationError

logger = get_logger(__name__).bind(component="election_guard")

EDITABLE_FIELDS = frozenset({"title", "description", "start_date", "end_date", "status", "candidates"})
CANDIDATE_FIELDS = frozenset({"name", "party", "gender"})

# Fields owned by the vote ledger or by the system
PROTECTED_FIELDS = frozenset({"id", "voters", "voted", "results", "created_by", "created_at", "updated_at"})


def _check_fields(data: Mapping[str, Any], allowed: Iterable[str]) -> None:
    allowed = set(allowed)
    for key in data:
        if key in PROTECTED_FIELDS:
            raise ValidationError(f"Field '{key}' cannot be set directly", field=key)
        if key not in allowed:
            raise ValidationError(f"Unknown field '{key}'", field=key)


def _requested_status(data: Mapping[str, Any]) -> Optional[ElectionStatus]:
    value = data.get("status")
    if value is None:
        return None
    try:
        return ElectionStatus(value)
    except ValueError:
        raise ValidationError("Invalid election status", field="status", value=value)


def build_candidates(
    entries: Iterable[Mapping[str, Any]],
    existing: Optional[Election] = None,
    now: Optional[datetime] = None,
    allow_new: bool = True,
) -> List[Candidate]:
    """Build an ordered candidate list from caller input.

    Entries carrying the id of a candidate already on `existing` keep that
    id (and its votes); every other entry becomes a new candidate, which
    raises BadRequestError when `allow_new` is False.
    """
    candidates: List[Candidate] = []
    taken = {c.id for c in existing.candidates} if existing else set()
    seen: set[str] = set()

    for entry in entries:
        entry = dict(entry)
        candidate_id = entry.pop("id", None)
        _check_fields(entry, CANDIDATE_FIELDS)

        if candidate_id is not None:
            previous = existing.candidate(candidate_id) if existing else None
            if previous is None:
                raise NotFoundError("Candidate not found", entity="candidate", entity_id=candidate_id)
            if candidate_id in seen:
                raise ValidationError("Duplicate candidate id", field="candidates", value=candidate_id)
            merged = {"name": previous.name, "party": previous.party, "gender": previous.gender, **entry}
            candidates.append(
                Candidate(
                    id=candidate_id,
                    name=merged["name"] or "",
                    party=merged["party"] or "",
                    gender=merged["gender"],
                    created_at=previous.created_at,
                )
            )
        else:
            if not allow_new:
                raise BadRequestError("Candidate registration is disabled")
            candidate_id = generate_candidate_id(taken | seen)
            candidates.append(
                Candidate(
                    id=candidate_id,
                    name=entry.get("name") or "",
                    party=entry.get("party") or "",
                    gender=entry.get("gender"),
                    created_at=now,
                )
            )
        seen.add(candidate_id)

    return candidates


def ensure_removable(election: Election, candidate_ids: Iterable[str], policy: str) -> None:
    """Apply the removal policy to candidates that already received votes.

    Policies:
        reject: removing a candidate with votes fails
        retain: removal is allowed and the tally stays in results as history
    """
    with_votes = [cid for cid in candidate_ids if election.results.get(cid, 0) > 0]
    if not with_votes:
        return
    if policy == "reject":
        raise BadRequestError(
            "Cannot remove a candidate who already received votes",
            context={"candidates": ",".join(with_votes)},
        )
    logger.warning(
        "removing candidates with recorded votes",
        election_id=election.id,
        candidate_ids=with_votes,
        policy=policy,
    )


def _ensure_still_complete(existing: Election, merged: Election, status: ElectionStatus) -> None:
    """A cancelled election keeps every field it had when it was complete"""
    if status == ElectionStatus.CANCELLED and existing.is_publishable() and not merged.is_publishable():
        raise ValidationError(
            f"A cancelled election requires: {', '.join(merged.missing_fields())}",
            field="status",
            value=status.value,
        )


def build_election(
    data: Mapping[str, Any],
    created_by: str,
    now: datetime,
    allow_new_candidates: bool = True,
) -> Election:
    """Validate a new election and compute its initial status.

    Status is `draft` unless title, description, both dates and at least two
    candidates are supplied, in which case it is derived from the window.
    """
    _check_fields(data, EDITABLE_FIELDS)
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("Please provide election title", field="title")

    requested = _requested_status(data)
    election = Election(
        id=generate_election_id(),
        title=title,
        description=data.get("description"),
        start_date=data.get("start_date"),
        end_date=data.get("end_date"),
        candidates=build_candidates(
            data.get("candidates") or [], now=now, allow_new=allow_new_candidates
        ),
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )
    status = derive_status(election, now, current=None, requested=requested)
    return dataclasses.replace(election, status=status)


def apply_update(
    existing: Election,
    patch: Mapping[str, Any],
    now: datetime,
    removal_policy: str = "reject",
    allow_new_candidates: bool = True,
) -> Election:
    """Merge a partial update onto the persisted election, then validate.

    Validation sees the merged, would-be final state. Status is re-derived
    unless the patch cancels the election; cancelling never strips fields a
    complete election already had.
    """
    _check_fields(patch, EDITABLE_FIELDS)
    changes: Dict[str, Any] = {
        key: value for key, value in patch.items() if key not in ("status", "candidates")
    }
    if "title" in changes and not (changes["title"] or "").strip():
        raise ValidationError("Please provide election title", field="title")

    if "candidates" in patch:
        entries = patch.get("candidates") or []
        candidates = build_candidates(
            entries, existing=existing, now=now, allow_new=allow_new_candidates
        )
        kept = {c.id for c in candidates}
        removed = [c.id for c in existing.candidates if c.id not in kept]
        ensure_removable(existing, removed, removal_policy)
        changes["candidates"] = candidates

    merged = dataclasses.replace(existing, updated_at=now, **changes)
    status = derive_status(merged, now, current=existing.status, requested=_requested_status(patch))
    _ensure_still_complete(existing, merged, status)
    if status != existing.status:
        logger.info(
            "status transition",
            election_id=existing.id,
            from_status=existing.status.value,
            to_status=status.value,
            path="reactive",
        )
    return dataclasses.replace(merged, status=status)


def add_candidate(existing: Election, data: Mapping[str, Any], now: datetime) -> tuple[Election, Candidate]:
    """Append one candidate; returns the new election state and the candidate"""
    if "id" in data:
        raise ValidationError("Field 'id' cannot be set directly", field="id")
    new_candidate = build_candidates([data], existing=existing, now=now)[0]
    updated = _with_candidates(existing, [*existing.candidates, new_candidate], now)
    return updated, new_candidate


def update_candidate(
    existing: Election, candidate_id: str, data: Mapping[str, Any], now: datetime
) -> tuple[Election, Candidate]:
    if existing.candidate(candidate_id) is None:
        raise NotFoundError("Candidate not found", entity="candidate", entity_id=candidate_id)
    if "id" in data:
        raise ValidationError("Field 'id' cannot be set directly", field="id")

    replacement = build_candidates([{"id": candidate_id, **data}], existing=existing, now=now)[0]
    candidates = [replacement if c.id == candidate_id else c for c in existing.candidates]
    return _with_candidates(existing, candidates, now), replacement


def remove_candidate(existing: Election, candidate_id: str, now: datetime, removal_policy: str = "reject") -> Election:
    if existing.candidate(candidate_id) is None:
        raise NotFoundError("Candidate not found", entity="candidate", entity_id=candidate_id)
    ensure_removable(existing, [candidate_id], removal_policy)
    candidates = [c for c in existing.candidates if c.id != candidate_id]
    return _with_candidates(existing, candidates, now)


def _with_candidates(existing: Election, candidates: List[Candidate], now: datetime) -> Election:
    merged = dataclasses.replace(existing, candidates=candidates, updated_at=now)
    status = derive_status(merged, now, current=existing.status)
    _ensure_still_complete(existing, merged, status)
    if status != existing.status:
        logger.info(
            "status transition",
            election_id=existing.id,
            from_status=existing.status.value,
            to_status=status.value,
            path="reactive",
        )
    return dataclasses.replace(merged, status=status)
