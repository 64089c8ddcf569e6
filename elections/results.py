"""Results projection - read-only view of an election's tallies"""

from typing import Any, Dict, List

from database.models import Election
from elections.status import RESULTS_VISIBLE_STATUSES
from exceptions import ForbiddenError


def _percentage(votes: int, voted: int) -> float:
    if voted <= 0:
        return 0
    return round(votes / voted * 100, 2)


def project_results(election: Election) -> Dict[str, Any]:
    """Tallies per candidate, highest first.

    Visible only while the election is active or completed. Ties keep the
    candidates' insertion order. Tallies left behind by removed candidates
    are not shown.

    Raises:
        ForbiddenError: election status hides results
    """
    if election.status not in RESULTS_VISIBLE_STATUSES:
        raise ForbiddenError(
            "Results are not available for this election",
            context={"status": election.status.value},
        )

    entries: List[Dict[str, Any]] = []
    for index, candidate in enumerate(election.candidates):
        votes = election.results.get(candidate.id, 0)
        entries.append(
            {
                "id": candidate.id,
                "name": candidate.name,
                "party": candidate.party,
                "gender": candidate.gender.value if candidate.gender else None,
                "votes": votes,
                "percentage": _percentage(votes, election.voted),
                "_order": index,
            }
        )

    entries.sort(key=lambda e: (-e["votes"], e["_order"]))
    for entry in entries:
        del entry["_order"]

    return {
        "election": {
            "id": election.id,
            "title": election.title,
            "totalVoters": len(election.voters),
            "voted": election.voted,
            "startDate": election.start_date.isoformat() if election.start_date else None,
            "endDate": election.end_date.isoformat() if election.end_date else None,
            "status": election.status.value,
        },
        "results": entries,
    }
