"""Election service - the operations the API exposes

Ties together the invariant guard, the status engine, the vote ledger, the
results projection and the settings. Role checks live here so every entry
point (HTTP routes, CLI, tests) gets the same rules.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from config import config, get_logger
from database.models import Candidate, Election, ElectionStatus, Principal, VoteReceipt
from elections import guard
from elections.ledger import VoteLedger
from elections.protocols import MetricsCollector, NullMetrics
from elections.results import project_results
from exceptions import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    ServiceUnavailableError,
)

logger = get_logger(__name__).bind(component="election_service")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def require_admin(principal: Optional[Principal]) -> Principal:
    if principal is None or not principal.is_admin:
        raise ForbiddenError("Admin access required")
    return principal


def require_sysadmin(principal: Optional[Principal]) -> Principal:
    if principal is None or not principal.is_sysadmin:
        raise ForbiddenError("System admin access required")
    return principal


class ElectionService:
    """Election, candidate and ballot operations

    Args:
        db: Database (or any object with elections/users repositories)
        settings: SettingsService
        clock: Returns the current time (injectable for tests)
        removal_policy: What to do when removing a candidate with votes
        metrics: Optional metrics collector
    """

    def __init__(
        self,
        db,
        settings,
        clock: Callable[[], datetime] = _utcnow,
        removal_policy: Optional[str] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.db = db
        self.settings = settings
        self.clock = clock
        self.removal_policy = removal_policy or config.CANDIDATE_REMOVAL_POLICY
        self.metrics = metrics or NullMetrics()
        self.ledger = VoteLedger(db.elections, db.users, metrics=self.metrics)

    # ---- Elections ----

    async def create_election(self, principal: Principal, data: Mapping[str, Any]) -> Election:
        require_admin(principal)
        election = guard.build_election(
            data,
            created_by=principal.id,
            now=self.clock(),
            allow_new_candidates=self._registration_enabled(),
        )
        stored = await self.db.elections.create_election(election)
        logger.info(
            "election created",
            election_id=stored.id,
            status=stored.status.value,
            created_by=principal.id,
        )
        return stored

    async def update_election(
        self, principal: Principal, election_id: str, patch: Mapping[str, Any]
    ) -> Election:
        require_admin(principal)
        now = self.clock()
        allow_new = self._registration_enabled()
        election = await self._apply(
            election_id,
            lambda existing: guard.apply_update(
                existing, patch, now, self.removal_policy, allow_new_candidates=allow_new
            ),
        )
        logger.info("election updated", election_id=election_id, status=election.status.value)
        return election

    async def cancel_election(self, principal: Principal, election_id: str) -> Election:
        return await self.update_election(
            principal, election_id, {"status": ElectionStatus.CANCELLED.value}
        )

    async def delete_election(self, principal: Principal, election_id: str) -> None:
        require_admin(principal)
        if not await self.db.elections.delete_election(election_id):
            raise NotFoundError("Election not found", entity="election", entity_id=election_id)
        logger.info("election deleted", election_id=election_id, deleted_by=principal.id)

    async def purge_elections(self, principal: Principal) -> int:
        require_sysadmin(principal)
        deleted = await self.db.elections.delete_all_elections()
        logger.warning("all elections deleted", count=deleted, deleted_by=principal.id)
        return deleted

    async def get_election(self, election_id: str) -> Election:
        election = await self.db.elections.get_election(election_id)
        if election is None:
            raise NotFoundError("Election not found", entity="election", entity_id=election_id)
        return election

    async def list_elections(self, status: Optional[ElectionStatus] = None) -> List[Election]:
        return await self.db.elections.get_elections(status)

    # ---- Candidates ----

    async def list_candidates(self, election_id: str) -> List[Candidate]:
        election = await self.get_election(election_id)
        return list(election.candidates)

    async def add_candidate(
        self, principal: Principal, election_id: str, data: Mapping[str, Any]
    ) -> Candidate:
        require_admin(principal)
        if not self._registration_enabled():
            raise BadRequestError("Candidate registration is disabled")

        now = self.clock()
        added: Dict[str, Candidate] = {}

        def apply(existing: Election) -> Election:
            updated, candidate = guard.add_candidate(existing, data, now)
            added["candidate"] = candidate
            return updated

        await self._apply(election_id, apply)
        logger.info("candidate added", election_id=election_id, candidate_id=added["candidate"].id)
        return added["candidate"]

    async def update_candidate(
        self,
        principal: Principal,
        election_id: str,
        candidate_id: str,
        data: Mapping[str, Any],
    ) -> Candidate:
        require_admin(principal)
        now = self.clock()
        updated_candidate: Dict[str, Candidate] = {}

        def apply(existing: Election) -> Election:
            updated, candidate = guard.update_candidate(existing, candidate_id, data, now)
            updated_candidate["candidate"] = candidate
            return updated

        await self._apply(election_id, apply)
        return updated_candidate["candidate"]

    async def remove_candidate(self, principal: Principal, election_id: str, candidate_id: str) -> Election:
        require_admin(principal)
        now = self.clock()
        election = await self._apply(
            election_id,
            lambda existing: guard.remove_candidate(existing, candidate_id, now, self.removal_policy),
        )
        logger.info("candidate removed", election_id=election_id, candidate_id=candidate_id)
        return election

    # ---- Ballots and results ----

    async def cast_vote(self, principal: Principal, election_id: str, candidate_id: str) -> VoteReceipt:
        if self.settings.get().maintenance_mode and not principal.is_admin:
            self.metrics.vote_rejections.labels(reason="maintenance").inc()
            raise ServiceUnavailableError("Voting is temporarily unavailable (maintenance mode)")
        return await self.ledger.cast_vote(election_id, principal.id, candidate_id, self.clock())

    async def get_results(self, election_id: str) -> Dict[str, Any]:
        return project_results(await self.get_election(election_id))

    # ---- Internal ----

    def _registration_enabled(self) -> bool:
        return self.settings.get().registration_enabled

    async def _apply(self, election_id: str, apply: Callable[[Election], Election]) -> Election:
        """Locked read-modify-write; records a metric when the status moved"""
        before: Dict[str, ElectionStatus] = {}

        def tracked(existing: Election) -> Election:
            before["status"] = existing.status
            return apply(existing)

        updated = await self.db.elections.update_election(election_id, tracked)
        if updated.status != before["status"]:
            self.metrics.status_transitions.labels(
                from_status=before["status"].value,
                to_status=updated.status.value,
                path="reactive",
            ).inc()
        return updated
