"""Candidate API - candidates embedded in an election"""

from fastapi import APIRouter, Depends

from database.models import Principal
from elections.service import ElectionService
from server.dependencies import get_election_service, require_admin
from server.models.requests import CandidateCreateRequest, CandidateUpdateRequest
from server.utils.responses import list_response, success_response

router = APIRouter(prefix="/api/v1/candidates", tags=["candidates"])


@router.get("/election/{election_id}")
async def list_candidates(
    election_id: str,
    service: ElectionService = Depends(get_election_service),
):
    candidates = await service.list_candidates(election_id)
    return list_response([c.to_dict() for c in candidates])


@router.post("/election/{election_id}", status_code=201)
async def add_candidate(
    election_id: str,
    body: CandidateCreateRequest,
    principal: Principal = Depends(require_admin),
    service: ElectionService = Depends(get_election_service),
):
    """Fails while candidate registration is disabled in settings"""
    candidate = await service.add_candidate(principal, election_id, body.to_patch())
    return success_response(candidate.to_dict(), message="Candidate added")


@router.put("/election/{election_id}/{candidate_id}")
async def update_candidate(
    election_id: str,
    candidate_id: str,
    body: CandidateUpdateRequest,
    principal: Principal = Depends(require_admin),
    service: ElectionService = Depends(get_election_service),
):
    candidate = await service.update_candidate(principal, election_id, candidate_id, body.to_patch())
    return success_response(candidate.to_dict(), message="Candidate updated")


@router.delete("/election/{election_id}/{candidate_id}")
async def remove_candidate(
    election_id: str,
    candidate_id: str,
    principal: Principal = Depends(require_admin),
    service: ElectionService = Depends(get_election_service),
):
    election = await service.remove_candidate(principal, election_id, candidate_id)
    return success_response(
        {"id": candidate_id, "election": election.to_dict()},
        message="Candidate removed",
    )
