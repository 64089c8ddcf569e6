"""Election repository - election documents and their vote ledger.

Each election is one row. Candidates and the ledger (voters, voted,
results) are stored on that row, which makes the row the unit of
atomicity: a ballot is recorded by a single conditional UPDATE.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from config import get_logger
from database.id_generation import validate_id
from database.models import Election, ElectionStatus
from database.repositories_async.base import BaseRepository
from database.repositories_async.helpers import (
    ELECTION_COLUMNS,
    build_election,
    serialize_candidates,
)
from exceptions import NotFoundError

logger = get_logger(__name__).bind(component="election_repository")

# Statuses the reconciliation sweep may still move
RECONCILABLE_STATUSES = [
    ElectionStatus.DRAFT.value,
    ElectionStatus.UPCOMING.value,
    ElectionStatus.ACTIVE.value,
]


class ElectionRepository(BaseRepository):
    """Repository for election CRUD, ballots and status reconciliation."""

    async def create_election(self, election: Election) -> Election:
        row = await self._fetchrow(
            f"""
            INSERT INTO elections
                (id, title, description, start_date, end_date, status, candidates,
                 voters, voted, results, created_by, created_at, updated_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
            RETURNING {ELECTION_COLUMNS}
            """,
            election.id,
            election.title,
            election.description,
            election.start_date,
            election.end_date,
            election.status.value,
            serialize_candidates(election.candidates),
            list(election.voters),
            election.voted,
            dict(election.results),
            election.created_by,
            election.created_at,
            election.updated_at,
        )
        logger.info("election stored", election_id=election.id, status=election.status.value)
        return build_election(row)

    async def get_election(self, election_id: str) -> Optional[Election]:
        if not validate_id(election_id):
            return None
        row = await self._fetchrow(
            f"SELECT {ELECTION_COLUMNS} FROM elections WHERE id = $1",
            election_id,
        )
        return build_election(row) if row else None

    async def get_elections(self, status: Optional[ElectionStatus] = None) -> List[Election]:
        """Newest first, optionally filtered by status."""
        if status is not None:
            rows = await self._fetch(
                f"""
                SELECT {ELECTION_COLUMNS} FROM elections
                WHERE status = $1
                ORDER BY created_at DESC
                """,
                status.value,
            )
        else:
            rows = await self._fetch(
                f"SELECT {ELECTION_COLUMNS} FROM elections ORDER BY created_at DESC"
            )
        return [build_election(row) for row in rows]

    async def update_election(
        self,
        election_id: str,
        apply: Callable[[Election], Election],
    ) -> Election:
        """Read-modify-write under a row lock.

        `apply` receives the locked, persisted election and returns the new
        state (or raises, which rolls the transaction back). Only
        admin-editable columns are written; the ledger columns belong to
        record_vote.
        """
        if not validate_id(election_id):
            raise NotFoundError("Election not found", entity="election", entity_id=election_id)

        async with self.transaction() as conn:
            row = await self._run(
                conn.fetchrow,
                f"SELECT {ELECTION_COLUMNS} FROM elections WHERE id = $1 FOR UPDATE",
                election_id,
            )
            if row is None:
                raise NotFoundError("Election not found", entity="election", entity_id=election_id)

            updated = apply(build_election(row))

            row = await self._run(
                conn.fetchrow,
                f"""
                UPDATE elections
                SET title = $2,
                    description = $3,
                    start_date = $4,
                    end_date = $5,
                    status = $6,
                    candidates = $7,
                    updated_at = $8
                WHERE id = $1
                RETURNING {ELECTION_COLUMNS}
                """,
                election_id,
                updated.title,
                updated.description,
                updated.start_date,
                updated.end_date,
                updated.status.value,
                serialize_candidates(updated.candidates),
                updated.updated_at,
            )
        return build_election(row)

    async def delete_election(self, election_id: str) -> bool:
        if not validate_id(election_id):
            return False
        result = await self._execute("DELETE FROM elections WHERE id = $1", election_id)
        return self._parse_row_count(result) > 0

    async def delete_all_elections(self) -> int:
        result = await self._execute("DELETE FROM elections")
        return self._parse_row_count(result)

    async def record_vote(
        self,
        election_id: str,
        voter_id: str,
        candidate_id: str,
        now: datetime,
    ) -> Optional[Tuple[int, int]]:
        """Append a ballot to the ledger in one atomic statement.

        The WHERE clause re-checks everything the caller already checked
        (window open, voter absent, candidate present). Concurrent updates
        of the same row serialize on its lock and the loser re-evaluates the
        clause against the winner's row, so a voter can never be appended
        twice.

        Returns:
            (candidate_votes, voted) after the increment, or None when the
            guard did not match.
        """
        row = await self._fetchrow(
            """
            UPDATE elections
            SET voters = array_append(voters, $2::text),
                voted = voted + 1,
                results = jsonb_set(
                    results,
                    ARRAY[$3::text],
                    to_jsonb(COALESCE((results ->> $3::text)::int, 0) + 1)
                ),
                updated_at = $4
            WHERE id = $1
              AND status NOT IN ('draft', 'cancelled')
              AND start_date <= $4
              AND end_date >= $4
              AND NOT ($2::text = ANY(voters))
              AND candidates @> jsonb_build_array(jsonb_build_object('id', $3::text))
            RETURNING voted, (results ->> $3::text)::int AS candidate_votes
            """,
            election_id,
            voter_id,
            candidate_id,
            now,
        )
        if row is None:
            return None
        return row["candidate_votes"], row["voted"]

    async def get_elections_for_reconciliation(self) -> List[Election]:
        """Non-terminal elections with a complete voting window."""
        rows = await self._fetch(
            f"""
            SELECT {ELECTION_COLUMNS} FROM elections
            WHERE status = ANY($1::text[])
              AND start_date IS NOT NULL
              AND end_date IS NOT NULL
            ORDER BY end_date ASC
            """,
            RECONCILABLE_STATUSES,
        )
        return [build_election(row) for row in rows]

    async def set_status_if(
        self,
        election_id: str,
        expected: ElectionStatus,
        new: ElectionStatus,
        now: datetime,
    ) -> bool:
        """Compare-and-set the status. False if someone else moved it first."""
        result = await self._execute(
            """
            UPDATE elections
            SET status = $3, updated_at = $4
            WHERE id = $1 AND status = $2
            """,
            election_id,
            expected.value,
            new.value,
            now,
        )
        return self._parse_row_count(result) > 0

    async def count_by_status(self) -> Dict[str, int]:
        rows = await self._fetch(
            "SELECT status, COUNT(*) AS count FROM elections GROUP BY status"
        )
        return {row["status"]: row["count"] for row in rows}
