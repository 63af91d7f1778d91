"""Typed failures raised by the registry service.

Every error is raised before any state is touched, so a caller that sees
one of these can assume the registry is exactly as it was before the call.
"""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for registry failures. ``code`` is stable across releases."""

    code = "registry_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFound(RegistryError):
    """The referenced listing does not exist."""

    code = "not_found"


class Unauthorized(RegistryError):
    """The caller is neither the listing's developer nor the registry owner."""

    code = "unauthorized"


class InvalidRating(RegistryError):
    """The rating is not an integer in the 1-5 range."""

    code = "invalid_rating"


class InactiveListing(RegistryError):
    """A rating was attempted on a deactivated listing."""

    code = "inactive_listing"


class InvalidArgument(RegistryError):
    """An identity argument is missing or empty."""

    code = "invalid_argument"
