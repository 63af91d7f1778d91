"""FastAPI application for the dappstore registry.

Provides REST API endpoints wrapping the dappstore package for:
- Listing registration and activation
- Per-user ratings and average-rating queries
- Registry ownership administration
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dappstore import __version__
from dappstore.config import load_settings
from dappstore.logging_setup import setup_logging
from dappstore.registry.errors import (
    InactiveListing,
    InvalidArgument,
    InvalidRating,
    NotFound,
    RegistryError,
    Unauthorized,
)

from web.backend.app.routers import admin, listings

logger = logging.getLogger(__name__)

setup_logging(load_settings().log_level)

app = FastAPI(
    title="dappstore API",
    description=(
        "REST API for the dappstore registry. "
        "Provides endpoints for registering dApp listings, rating them, "
        "and reading aggregate rating statistics."
    ),
    version=__version__,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Registry errors -> HTTP status
# ---------------------------------------------------------------------------
ERROR_STATUS: dict[type, int] = {
    NotFound: 404,
    Unauthorized: 403,
    InvalidRating: 422,
    InactiveListing: 409,
    InvalidArgument: 400,
}


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), 400)
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.message},
    )


# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(listings.router)
app.include_router(admin.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "dappstore API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
