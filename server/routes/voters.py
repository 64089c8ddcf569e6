"""Voting API - cast ballots and read results"""

from fastapi import APIRouter, Depends

from database.models import Principal
from elections.service import ElectionService
from server.dependencies import get_current_principal, get_election_service
from server.models.requests import VoteRequest
from server.utils.responses import success_response

router = APIRouter(prefix="/api/v1/voters", tags=["voters"])


@router.post("/election/{election_id}")
async def cast_vote(
    election_id: str,
    body: VoteRequest,
    principal: Principal = Depends(get_current_principal),
    service: ElectionService = Depends(get_election_service),
):
    """Cast the caller's single ballot in this election.

    Requires authentication. The voter is always the caller.
    """
    receipt = await service.cast_vote(principal, election_id, body.candidate_id)
    return success_response(receipt.to_dict(), message="Vote cast successfully")


@router.get("/election/{election_id}/results")
async def get_results(
    election_id: str,
    service: ElectionService = Depends(get_election_service),
):
    """Tallies, visible while the election is active or completed"""
    return success_response(await service.get_results(election_id))
