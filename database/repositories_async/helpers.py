"""Repository helper functions for row <-> object conversion."""

from typing import Any, Dict, List

from database.models import Candidate, Election, Settings

ELECTION_COLUMNS = """
    id, title, description, start_date, end_date, status, candidates,
    voters, voted, results, created_by, created_at, updated_at
"""


def serialize_candidates(candidates: List[Candidate]) -> List[Dict[str, Any]]:
    """Candidates as JSONB-ready dicts, insertion order preserved."""
    return [
        {
            "id": c.id,
            "name": c.name,
            "party": c.party,
            "gender": c.gender.value if c.gender else None,
            "created_at": c.created_at.isoformat() if c.created_at else None,
        }
        for c in candidates
    ]


def deserialize_candidates(data: Any) -> List[Candidate]:
    """Deserialize JSONB candidates array to typed Candidate list."""
    if not data:
        return []
    return [Candidate(**c) for c in data]


def deserialize_results(data: Any) -> Dict[str, int]:
    """JSONB results object -> {candidate_id: count}, keys always strings."""
    if not data:
        return {}
    return {str(k): int(v) for k, v in data.items()}


def build_election(row: Any) -> Election:
    """Construct Election from database row with JSONB deserialization."""
    return Election(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        status=row["status"],
        candidates=deserialize_candidates(row["candidates"]),
        voters=list(row["voters"] or []),
        voted=row["voted"],
        results=deserialize_results(row["results"]),
        created_by=row["created_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def build_settings(row: Any) -> Settings:
    return Settings(
        maintenance_mode=row["maintenance_mode"],
        registration_enabled=row["registration_enabled"],
        updated_by=row["updated_by"],
        updated_at=row["updated_at"],
    )

