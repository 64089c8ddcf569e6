"""
Database Models for evote

Pydantic dataclasses with runtime validation for core entities.
Candidates are embedded in their election; the vote ledger lives on the
election itself (voters, voted, results) rather than in a separate table.
"""

from dataclasses import field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic.dataclasses import dataclass

from exceptions import ValidationError


class ElectionStatus(str, Enum):
    DRAFT = "draft"
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CandidateGender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SYSADMIN = "sysadmin"


ADMIN_ROLES = frozenset({Role.ADMIN, Role.SYSADMIN})


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and convert aware ones to UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# --- Domain Dataclasses (with runtime validation) ---


@dataclass
class Candidate:
    """Candidate embedded in exactly one election"""

    id: str
    name: str
    party: str
    gender: Optional[CandidateGender] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.name = (self.name or "").strip()
        self.party = (self.party or "").strip()
        if not self.name:
            raise ValidationError("Please provide candidate name", field="name")
        if not self.party:
            raise ValidationError("Please provide candidate party", field="party")
        self.created_at = ensure_utc(self.created_at)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "party": self.party,
            "gender": self.gender.value if self.gender else None,
            "createdAt": _isoformat(self.created_at),
        }


@dataclass
class Election:
    """Election entity with its embedded candidates and vote ledger

    Ledger fields:
    - voters: IDs of everyone who voted, append-only
    - voted: cached len(voters)
    - results: candidate ID -> vote count
    """

    id: str
    title: str
    created_by: str
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: ElectionStatus = ElectionStatus.DRAFT
    candidates: List[Candidate] = field(default_factory=list)
    voters: List[str] = field(default_factory=list)
    voted: int = 0
    results: Dict[str, int] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.title = (self.title or "").strip()
        if self.description is not None:
            self.description = self.description.strip() or None
        if not self.title:
            raise ValidationError("Please provide election title", field="title")

        self.start_date = ensure_utc(self.start_date)
        self.end_date = ensure_utc(self.end_date)
        self.created_at = ensure_utc(self.created_at)
        self.updated_at = ensure_utc(self.updated_at)

        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValidationError(
                "End date must be after start date",
                field="end_date",
                value=self.end_date.isoformat(),
            )

        index: Dict[str, Candidate] = {}
        for candidate in self.candidates:
            if candidate.id in index:
                raise ValidationError("Duplicate candidate id", field="candidates", value=candidate.id)
            index[candidate.id] = candidate
        self._candidate_index = index

    def candidate(self, candidate_id: str) -> Optional[Candidate]:
        """O(1) lookup of an embedded candidate"""
        return self._candidate_index.get(candidate_id)

    def has_voted(self, voter_id: str) -> bool:
        return voter_id in self.voters

    def is_publishable(self) -> bool:
        """All fields a non-draft election needs are present"""
        return bool(
            self.title
            and self.description
            and self.start_date
            and self.end_date
            and len(self.candidates) >= 2
        )

    def missing_fields(self) -> List[str]:
        missing = [
            name
            for name, value in (
                ("title", self.title),
                ("description", self.description),
                ("startDate", self.start_date),
                ("endDate", self.end_date),
            )
            if not value
        ]
        if len(self.candidates) < 2:
            missing.append("candidates")
        return missing

    def within_window(self, now: datetime) -> bool:
        """Voting window check against wall-clock time, inclusive on both ends"""
        if not self.start_date or not self.end_date:
            return False
        return self.start_date <= now <= self.end_date

    def to_dict(self, include_ledger: bool = False) -> dict:
        """Convert to dictionary for JSON serialization

        Tallies and voter IDs are only included on request; public reads go
        through the results projection which applies visibility rules.
        """
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "startDate": _isoformat(self.start_date),
            "endDate": _isoformat(self.end_date),
            "status": self.status.value,
            "candidates": [c.to_dict() for c in self.candidates],
            "voted": self.voted,
            "createdBy": self.created_by,
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
        }
        if include_ledger:
            data["voters"] = list(self.voters)
            data["results"] = dict(self.results)
        return data


@dataclass
class Settings:
    """Global application settings (single row)"""

    maintenance_mode: bool = False
    registration_enabled: bool = True
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "maintenanceMode": self.maintenance_mode,
            "registrationEnabled": self.registration_enabled,
        }


@dataclass
class Principal:
    """Authenticated caller as supplied by the auth collaborator"""

    id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_sysadmin(self) -> bool:
        return self.role == Role.SYSADMIN


@dataclass
class VoteReceipt:
    """Outcome of an accepted ballot"""

    election_id: str
    election_title: str
    candidate_id: str
    candidate_name: str
    candidate_votes: int
    voted: int

    def to_dict(self) -> dict:
        return {
            "id": self.election_id,
            "title": self.election_title,
            "voted": self.voted,
            "candidate": {
                "id": self.candidate_id,
                "name": self.candidate_name,
                "votes": self.candidate_votes,
            },
        }
