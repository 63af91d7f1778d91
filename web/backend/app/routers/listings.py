"""Listings router -- register, activate, rate and read dApp listings."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dappstore.registry.service import RegistryService

from web.backend.app.middleware.auth import get_caller
from web.backend.app.models.api import (
    AverageRatingResponse,
    DeveloperListingsResponse,
    ERROR_RESPONSES,
    ListingResponse,
    RateListingRequest,
    RatingStatsResponse,
    RegisterListingRequest,
    RegisterListingResponse,
    SetActiveRequest,
)
from web.backend.app.state import get_service

router = APIRouter(prefix="/api/listings", tags=["listings"], responses=ERROR_RESPONSES)


def _listing_response(service: RegistryService, listing_id: int) -> ListingResponse:
    listing = service.get_listing(listing_id)
    stats = service.get_rating_stats(listing_id)
    return ListingResponse(
        id=listing.id,
        developer=listing.developer,
        name=listing.name,
        url=listing.url,
        category=listing.category,
        created_at=listing.created_at,
        active=listing.active,
        rating_count=stats.rating_count,
        rating_sum=stats.rating_sum,
        average_x100=stats.average_x100,
    )


@router.post(
    "",
    response_model=RegisterListingResponse,
    status_code=201,
    summary="Register a listing",
)
async def register_listing(
    body: RegisterListingRequest,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_service),
):
    """Register a listing owned by the caller and return its id."""
    listing_id = service.register_listing(caller, body.name, body.url, body.category)
    return RegisterListingResponse(id=listing_id)


@router.get(
    "/developers/{developer}",
    response_model=DeveloperListingsResponse,
    summary="List a developer's listing ids",
)
async def listings_of(developer: str, service: RegistryService = Depends(get_service)):
    """Ids registered by ``developer`` in registration order."""
    return DeveloperListingsResponse(
        developer=developer, listing_ids=service.get_listings_of(developer)
    )


@router.get(
    "/{listing_id}",
    response_model=ListingResponse,
    summary="Get a listing",
)
async def get_listing(listing_id: int, service: RegistryService = Depends(get_service)):
    return _listing_response(service, listing_id)


@router.put(
    "/{listing_id}/active",
    response_model=ListingResponse,
    summary="Activate or deactivate a listing",
)
async def set_active(
    listing_id: int,
    body: SetActiveRequest,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_service),
):
    """Only the listing's developer may change its status."""
    service.set_active(caller, listing_id, body.active)
    return _listing_response(service, listing_id)


@router.put(
    "/{listing_id}/rating",
    response_model=RatingStatsResponse,
    summary="Rate a listing",
)
async def rate_listing(
    listing_id: int,
    body: RateListingRequest,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_service),
):
    """Record the caller's 1-5 rating, replacing any earlier one."""
    service.rate_listing(caller, listing_id, body.rating)
    stats = service.get_rating_stats(listing_id)
    return RatingStatsResponse(
        id=listing_id, rating_count=stats.rating_count, rating_sum=stats.rating_sum
    )


@router.get(
    "/{listing_id}/average",
    response_model=AverageRatingResponse,
    summary="Average rating x100",
)
async def get_average_rating(listing_id: int, service: RegistryService = Depends(get_service)):
    return AverageRatingResponse(
        id=listing_id, average_x100=service.get_average_rating(listing_id)
    )
