"""
Shared fixtures

No live PostgreSQL: FakeDatabase mirrors the repository interface, with
record_vote applying the same guard as the conditional UPDATE. Nothing
inside a fake method awaits between reading and writing a row, so each
call is atomic with respect to other coroutines, like a single statement.
"""

import asyncio
import dataclasses
import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("EVOTE_ENV", "test")
os.environ.setdefault("EVOTE_JWT_SECRET", "test-secret-do-not-use-in-production")

import pytest

from auth import jwt as auth_jwt
from config import config
from database.models import ElectionStatus, Principal, Role, Settings
from elections.service import ElectionService
from elections.settings import SettingsService
from exceptions import ConflictError, NotFoundError

if not auth_jwt.is_initialized():
    auth_jwt.init_jwt(config.JWT_SECRET)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

ADMIN = Principal(id="admin-1", role=Role.ADMIN)
SYSADMIN = Principal(id="root-1", role=Role.SYSADMIN)
VOTER_IDS = ["voter-1", "voter-2", "voter-3", "voter-4", "voter-5"]


def _copy(election):
    return dataclasses.replace(
        election,
        candidates=list(election.candidates),
        voters=list(election.voters),
        results=dict(election.results),
    )


class FakeElectionRepository:
    def __init__(self):
        self.rows = {}

    async def create_election(self, election):
        if election.id in self.rows:
            raise ConflictError("Resource already exists")
        self.rows[election.id] = _copy(election)
        return _copy(election)

    async def get_election(self, election_id):
        row = self.rows.get(election_id)
        snapshot = _copy(row) if row else None
        # Yield after reading so concurrent callers act on stale snapshots
        await asyncio.sleep(0)
        return snapshot

    async def get_elections(self, status=None):
        rows = [r for r in self.rows.values() if status is None or r.status == status]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return [_copy(r) for r in rows]

    async def update_election(self, election_id, apply):
        current = self.rows.get(election_id)
        if current is None:
            raise NotFoundError("Election not found", entity="election", entity_id=election_id)
        updated = apply(_copy(current))
        # Ledger columns are never written by this path
        self.rows[election_id] = dataclasses.replace(
            updated,
            voters=list(current.voters),
            voted=current.voted,
            results=dict(current.results),
        )
        return _copy(self.rows[election_id])

    async def delete_election(self, election_id):
        return self.rows.pop(election_id, None) is not None

    async def delete_all_elections(self):
        count = len(self.rows)
        self.rows.clear()
        return count

    async def record_vote(self, election_id, voter_id, candidate_id, now):
        row = self.rows.get(election_id)
        if (
            row is None
            or row.status in (ElectionStatus.DRAFT, ElectionStatus.CANCELLED)
            or not row.within_window(now)
            or voter_id in row.voters
            or row.candidate(candidate_id) is None
        ):
            return None
        results = dict(row.results)
        results[candidate_id] = results.get(candidate_id, 0) + 1
        self.rows[election_id] = dataclasses.replace(
            row,
            voters=[*row.voters, voter_id],
            voted=row.voted + 1,
            results=results,
            updated_at=now,
        )
        return results[candidate_id], row.voted + 1

    async def get_elections_for_reconciliation(self):
        reconcilable = (ElectionStatus.DRAFT, ElectionStatus.UPCOMING, ElectionStatus.ACTIVE)
        return [
            _copy(r)
            for r in self.rows.values()
            if r.status in reconcilable and r.start_date and r.end_date
        ]

    async def set_status_if(self, election_id, expected, new, now):
        row = self.rows.get(election_id)
        if row is None or row.status != expected:
            return False
        self.rows[election_id] = dataclasses.replace(row, status=new, updated_at=now)
        return True

    async def count_by_status(self):
        counts = {}
        for row in self.rows.values():
            counts[row.status.value] = counts.get(row.status.value, 0) + 1
        return counts


class FakeUserRepository:
    def __init__(self, user_ids=()):
        self.user_ids = set(user_ids)

    async def voter_exists(self, user_id):
        return user_id in self.user_ids


class FakeSettingsRepository:
    def __init__(self):
        self.stored = None
        self.saves = 0

    async def load_or_create_default(self):
        if self.stored is None:
            self.stored = Settings()
        return self.stored

    async def save(self, settings, updated_by, now):
        self.saves += 1
        self.stored = dataclasses.replace(settings, updated_by=updated_by, updated_at=now)
        return self.stored


class FakeDatabase:
    def __init__(self, user_ids=VOTER_IDS):
        self.elections = FakeElectionRepository()
        self.users = FakeUserRepository([*user_ids, ADMIN.id, SYSADMIN.id])
        self.settings = FakeSettingsRepository()

    async def get_stats(self):
        by_status = await self.elections.count_by_status()
        return {"elections": sum(by_status.values()), "by_status": by_status}


class Clock:
    """Settable clock for services"""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def settings_service(db, clock):
    service = SettingsService(db.settings, clock=clock)
    asyncio.run(service.load())
    return service


@pytest.fixture
def service(db, settings_service, clock):
    return ElectionService(db, settings_service, clock=clock, removal_policy="reject")


@pytest.fixture
def election_data():
    """Factory for publishable election input; window is relative to NOW"""
    def make(start=timedelta(hours=-1), end=timedelta(hours=1), **overrides):
        data = {
            "title": "Board Vote",
            "description": "Annual board election",
            "start_date": NOW + start,
            "end_date": NOW + end,
            "candidates": [
                {"name": "Ada Lovelace", "party": "Analytical"},
                {"name": "Grace Hopper", "party": "Compiler"},
            ],
        }
        data.update(overrides)
        return data

    return make


@pytest.fixture
def active_election(service, election_data, admin):
    return asyncio.run(service.create_election(admin, election_data()))


@pytest.fixture
def admin():
    return ADMIN


@pytest.fixture
def sysadmin():
    return SYSADMIN
