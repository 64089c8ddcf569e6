"""Vote ledger - the no-double-vote guarantee

Pre-checks give the caller a precise error in the common case. The
guarantee itself comes from ElectionRepository.record_vote, a single
conditional UPDATE that re-checks voter absence, candidate presence and
the voting window in its WHERE clause. Two ballots from the same voter can
both pass the pre-checks; only one of them can match that UPDATE.
"""

from datetime import datetime
from typing import Optional

from config import get_logger
from database.models import Election, ElectionStatus, VoteReceipt
from elections.protocols import MetricsCollector, NullMetrics
from exceptions import BadRequestError, ConflictError, NotFoundError

logger = get_logger(__name__).bind(component="vote_ledger")

# Statuses that never accept ballots, whatever the window says
CLOSED_STATUSES = frozenset({ElectionStatus.DRAFT, ElectionStatus.CANCELLED})


def check_open(election: Optional[Election], election_id: str, now: datetime) -> Election:
    if election is None:
        raise NotFoundError("Election not found", entity="election", entity_id=election_id)
    if election.status in CLOSED_STATUSES or not election.within_window(now):
        raise BadRequestError("election not active", context={"status": election.status.value})
    return election


def check_choice(election: Election, voter_id: str, candidate_id: str) -> None:
    if election.has_voted(voter_id):
        raise BadRequestError("already voted")
    if election.candidate(candidate_id) is None:
        raise NotFoundError("Candidate not found", entity="candidate", entity_id=candidate_id)


class VoteLedger:
    """Records ballots against an election's embedded ledger

    Args:
        elections: ElectionRepository (or anything with the same methods)
        users: UserRepository used as the voter identity lookup
        metrics: Optional metrics collector
    """

    def __init__(self, elections, users, metrics: Optional[MetricsCollector] = None):
        self.elections = elections
        self.users = users
        self.metrics = metrics or NullMetrics()

    async def cast_vote(
        self,
        election_id: str,
        voter_id: str,
        candidate_id: str,
        now: datetime,
    ) -> VoteReceipt:
        """Record one ballot.

        Checks run in order: election exists, election open, voter exists,
        voter has not voted, candidate belongs to the election.

        Returns:
            VoteReceipt with the candidate's new tally and the new turnout
        """
        try:
            election = check_open(await self.elections.get_election(election_id), election_id, now)
            if not await self.users.voter_exists(voter_id):
                raise NotFoundError("Voter not found", entity="voter", entity_id=voter_id)
            check_choice(election, voter_id, candidate_id)

            recorded = await self.elections.record_vote(election_id, voter_id, candidate_id, now)
            if recorded is None:
                # Guard did not match: re-read to report what changed underneath us
                current = check_open(await self.elections.get_election(election_id), election_id, now)
                check_choice(current, voter_id, candidate_id)
                raise ConflictError(
                    "Vote could not be recorded, please retry",
                    context={"election_id": election_id},
                )
        except (BadRequestError, NotFoundError, ConflictError) as e:
            reason = self._reason(e)
            self.metrics.vote_rejections.labels(reason=reason).inc()
            logger.info("vote rejected", election_id=election_id, reason=reason)
            raise

        candidate_votes, voted = recorded
        self.metrics.votes_cast.inc()
        logger.info("vote accepted", election_id=election_id, voted=voted)

        candidate = election.candidate(candidate_id)
        return VoteReceipt(
            election_id=election.id,
            election_title=election.title,
            candidate_id=candidate_id,
            candidate_name=candidate.name,
            candidate_votes=candidate_votes,
            voted=voted,
        )

    @staticmethod
    def _reason(error: Exception) -> str:
        if isinstance(error, NotFoundError):
            return f"{error.entity or 'entity'}_not_found"
        if isinstance(error, ConflictError):
            return "conflict"
        return error.message.replace(" ", "_")
