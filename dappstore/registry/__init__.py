"""Registry — source-of-truth layer for dApp listings and their ratings.

The registry provides:
- Cataloging: sequential listing ids, per-developer listing index
- Activation: developers switch their own listings on and off
- Ratings: one current 1-5 mark per (user, listing), aggregated per listing
- Events: an ordered stream of committed mutations for observers
"""

from dappstore.registry.errors import (
    InactiveListing,
    InvalidArgument,
    InvalidRating,
    NotFound,
    RegistryError,
    Unauthorized,
)
from dappstore.registry.service import RegistryService

__all__ = [
    "InactiveListing",
    "InvalidArgument",
    "InvalidRating",
    "NotFound",
    "RegistryError",
    "RegistryService",
    "Unauthorized",
]
