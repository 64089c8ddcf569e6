"""Election API - create, read, update, cancel and delete elections"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from database.models import ElectionStatus, Principal
from elections.service import ElectionService
from server.dependencies import (
    get_current_principal,
    get_election_service,
    get_optional_principal,
    require_admin,
    require_sysadmin,
)
from server.models.requests import (
    ElectionCreateRequest,
    ElectionStatusRequest,
    ElectionUpdateRequest,
    VoteRequest,
)
from server.utils.responses import list_response, success_response

router = APIRouter(prefix="/api/v1/elections", tags=["elections"])


def _include_ledger(principal: Optional[Principal]) -> bool:
    return principal is not None and principal.is_admin


@router.get("")
async def list_elections(
    status: Optional[ElectionStatus] = Query(default=None),
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: ElectionService = Depends(get_election_service),
):
    """All elections, newest first. Voter lists and tallies are admin-only."""
    elections = await service.list_elections(status)
    ledger = _include_ledger(principal)
    return list_response([e.to_dict(include_ledger=ledger) for e in elections])


@router.get("/status/{status}")
async def list_elections_by_status(
    status: ElectionStatus,
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: ElectionService = Depends(get_election_service),
):
    elections = await service.list_elections(status)
    ledger = _include_ledger(principal)
    return list_response([e.to_dict(include_ledger=ledger) for e in elections])


@router.get("/{election_id}")
async def get_election(
    election_id: str,
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: ElectionService = Depends(get_election_service),
):
    election = await service.get_election(election_id)
    return success_response(election.to_dict(include_ledger=_include_ledger(principal)))


@router.post("", status_code=201)
async def create_election(
    body: ElectionCreateRequest,
    principal: Principal = Depends(require_admin),
    service: ElectionService = Depends(get_election_service),
):
    election = await service.create_election(principal, body.to_patch())
    return success_response(election.to_dict(include_ledger=True), message="Election created")


@router.patch("/{election_id}")
async def update_election(
    election_id: str,
    body: ElectionUpdateRequest,
    principal: Principal = Depends(require_admin),
    service: ElectionService = Depends(get_election_service),
):
    election = await service.update_election(principal, election_id, body.to_patch())
    return success_response(election.to_dict(include_ledger=True), message="Election updated")


@router.patch("/{election_id}/status")
async def cancel_election(
    election_id: str,
    body: ElectionStatusRequest,
    principal: Principal = Depends(require_admin),
    service: ElectionService = Depends(get_election_service),
):
    """Only cancellation can be requested explicitly; other statuses follow the clock"""
    election = await service.cancel_election(principal, election_id)
    return success_response(election.to_dict(include_ledger=True), message="Election cancelled")


@router.post("/{election_id}/vote")
async def cast_vote(
    election_id: str,
    body: VoteRequest,
    principal: Principal = Depends(get_current_principal),
    service: ElectionService = Depends(get_election_service),
):
    """Same as POST /api/v1/voters/election/{election_id}"""
    receipt = await service.cast_vote(principal, election_id, body.candidate_id)
    return success_response(receipt.to_dict(), message="Vote cast successfully")


@router.delete("/purge/all")
async def purge_elections(
    principal: Principal = Depends(require_sysadmin),
    service: ElectionService = Depends(get_election_service),
):
    deleted = await service.purge_elections(principal)
    return success_response({"deleted": deleted}, message="All elections deleted")


@router.delete("/{election_id}")
async def delete_election(
    election_id: str,
    principal: Principal = Depends(require_admin),
    service: ElectionService = Depends(get_election_service),
):
    await service.delete_election(principal, election_id)
    return success_response({"id": election_id}, message="Election deleted")
