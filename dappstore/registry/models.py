"""Registry data models — listings and their aggregate rating stats."""

from __future__ import annotations

from dataclasses import dataclass

MIN_RATING = 1
MAX_RATING = 5


@dataclass
class Listing:
    """A registered dApp.

    Everything except ``active`` is fixed at registration time.
    """

    id: int
    developer: str
    name: str
    url: str
    category: str
    created_at: int  # seconds since the epoch
    active: bool = True


@dataclass
class RatingStats:
    """Aggregate of the current marks on one listing."""

    rating_count: int = 0
    rating_sum: int = 0

    @property
    def average_x100(self) -> int:
        """Average rating scaled by 100, truncated (7 / 3 -> 233)."""
        if self.rating_count == 0:
            return 0
        return (self.rating_sum * 100) // self.rating_count


def is_valid_rating(value: object) -> bool:
    # bool is an int subclass; True must not count as a 1-star rating
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return MIN_RATING <= value <= MAX_RATING
