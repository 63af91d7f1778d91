"""Admin router -- registry ownership."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dappstore.registry.service import RegistryService

from web.backend.app.middleware.auth import get_caller
from web.backend.app.models.api import ERROR_RESPONSES, OwnerResponse, TransferOwnershipRequest
from web.backend.app.state import get_service

router = APIRouter(prefix="/api/admin", tags=["admin"], responses=ERROR_RESPONSES)


@router.get("/owner", response_model=OwnerResponse, summary="Current registry owner")
async def get_owner(service: RegistryService = Depends(get_service)):
    return OwnerResponse(owner=service.owner)


@router.put("/owner", response_model=OwnerResponse, summary="Transfer registry ownership")
async def transfer_ownership(
    body: TransferOwnershipRequest,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_service),
):
    """Only the current owner may hand the role to someone else."""
    service.transfer_ownership(caller, body.new_owner)
    return OwnerResponse(owner=service.owner)
