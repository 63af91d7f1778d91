"""Pydantic models for API request/response serialization.

These models mirror the dappstore dataclasses and provide proper JSON
serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Listing models
# ---------------------------------------------------------------------------


class RegisterListingRequest(BaseModel):
    name: str
    url: str
    category: str


class RegisterListingResponse(BaseModel):
    id: int


class ListingResponse(BaseModel):
    """Mirrors dappstore.registry.models.Listing plus its RatingStats."""

    id: int
    developer: str
    name: str
    url: str
    category: str
    created_at: int
    active: bool
    rating_count: int = 0
    rating_sum: int = 0
    average_x100: int = 0


class SetActiveRequest(BaseModel):
    active: bool


class RateListingRequest(BaseModel):
    # Passed through untouched: the service rejects bools, strings, floats
    # and out-of-range values alike with invalid_rating
    rating: Any = None


class RatingStatsResponse(BaseModel):
    id: int
    rating_count: int
    rating_sum: int


class AverageRatingResponse(BaseModel):
    id: int
    average_x100: int = Field(description="Average rating times 100, truncated")


class DeveloperListingsResponse(BaseModel):
    developer: str
    listing_ids: list[int] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Admin models
# ---------------------------------------------------------------------------


class TransferOwnershipRequest(BaseModel):
    new_owner: str


class OwnerResponse(BaseModel):
    owner: str


class ErrorResponse(BaseModel):
    """Body of every registry error response."""

    error: str
    detail: str = ""


ERROR_RESPONSES: dict[int, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid argument"},
    403: {"model": ErrorResponse, "description": "Caller lacks the required role"},
    404: {"model": ErrorResponse, "description": "Listing not found"},
    409: {"model": ErrorResponse, "description": "Listing is inactive"},
    422: {"model": ErrorResponse, "description": "Invalid rating"},
}
