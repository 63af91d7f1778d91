"""Registry/rating service — the only code path that mutates registry state.

Every public method runs as one transaction under the service's
re-entrant lock and, when the registry is backed by a snapshot file, under
that file's cross-process lock as well. A transaction reloads the snapshot,
validates, applies the change, saves, and only then publishes the event, so:

- two ratings of the same listing never interleave their read-modify-write,
  whether they come from two threads or two processes
- readers never see a rating count without its matching sum
- an event is published iff its mutation was committed
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Iterator, Optional

from dappstore.registry.errors import (
    InactiveListing,
    InvalidArgument,
    InvalidRating,
    NotFound,
    RegistryError,
    Unauthorized,
)
from dappstore.registry.events import (
    EventLog,
    ListingRated,
    ListingRegistered,
    ListingStatusUpdated,
    OwnershipTransferred,
    RegistryEvent,
)
from dappstore.registry.models import (
    MAX_RATING,
    MIN_RATING,
    Listing,
    RatingStats,
    is_valid_rating,
)
from dappstore.registry.store import JsonStateFile, RegistryState

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(time.time())


class RegistryService:
    """Registers listings, records ratings and keeps aggregate stats exact."""

    def __init__(
        self,
        owner: str = "",
        state: Optional[RegistryState] = None,
        events: Optional[EventLog] = None,
        clock: Callable[[], int] = _now,
        state_file: Optional[JsonStateFile] = None,
    ) -> None:
        if state is None:
            _require_identity(owner, "owner")
            state = RegistryState(owner=owner)
        self._state = state
        self._events = events if events is not None else EventLog()
        self._clock = clock
        self._state_file = state_file
        self._lock = threading.RLock()
        self._depth = 0
        self._pending: list[RegistryEvent] = []

    @classmethod
    def open(
        cls,
        state_file: JsonStateFile,
        owner: str,
        events: Optional[EventLog] = None,
        clock: Callable[[], int] = _now,
    ) -> RegistryService:
        """Load the snapshot at ``state_file``, or start fresh owned by ``owner``.

        The snapshot is reloaded at the start of every call afterwards, so
        several services (or processes) may share one file.
        """
        with state_file.lock():
            state = state_file.load()
        if state is None:
            logger.info("No registry snapshot at %s, initializing for owner %s",
                        state_file.path, owner)
        return cls(owner=owner, state=state, events=events, clock=clock,
                   state_file=state_file)

    def save(self) -> None:
        """Write the current state to the backing snapshot file, if any."""
        if self._state_file is None:
            return
        with self._lock, self._state_file.lock():
            self._state_file.save(self._state)

    @property
    def events(self) -> EventLog:
        return self._events

    @property
    def owner(self) -> str:
        with self._transaction():
            return self._state.owner

    @property
    def listing_count(self) -> int:
        with self._transaction():
            return self._state.next_id

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def register_listing(self, caller: str, name: str, url: str, category: str) -> int:
        """Create a listing owned by ``caller`` and return its id.

        ``name``, ``url`` and ``category`` are stored as given.
        """
        with self._transaction(write=True):
            _require_identity(caller, "caller")
            state = self._state
            listing_id = state.next_id
            now = self._clock()

            state.listings[listing_id] = Listing(
                id=listing_id,
                developer=caller,
                name=name,
                url=url,
                category=category,
                created_at=now,
                active=True,
            )
            state.stats[listing_id] = RatingStats()
            state.developer_index.setdefault(caller, []).append(listing_id)
            state.next_id = listing_id + 1

            logger.info("Listing %d registered by %s (%s)", listing_id, caller, name)
            self._emit(ListingRegistered(
                id=listing_id,
                developer=caller,
                name=name,
                url=url,
                category=category,
                timestamp=now,
            ))
            return listing_id

    def set_active(self, caller: str, listing_id: int, active: bool) -> None:
        """Switch a listing on or off. Only its developer may do this.

        Setting the flag to its current value still succeeds and still
        publishes a status event.
        """
        with self._transaction(write=True):
            listing = self._get_listing(listing_id)
            if caller != listing.developer:
                raise self._reject(Unauthorized(
                    f"{caller!r} is not the developer of listing {listing_id}"
                ))

            listing.active = bool(active)
            now = self._clock()
            logger.info("Listing %d set %s by %s", listing_id,
                        "active" if listing.active else "inactive", caller)
            self._emit(ListingStatusUpdated(
                id=listing_id, active=listing.active, timestamp=now,
            ))

    def rate_listing(self, caller: str, listing_id: int, rating: int) -> None:
        """Record ``caller``'s rating, replacing any rating they gave before.

        A first rating adds one rater and its value to the sum. A repeat
        rating leaves the count alone and swaps the old value for the new
        one in the sum, so each user always contributes exactly their
        latest rating.
        """
        with self._transaction(write=True):
            _require_identity(caller, "caller")
            listing = self._get_listing(listing_id)
            if not listing.active:
                raise self._reject(InactiveListing(f"Listing {listing_id} is inactive"))
            if not is_valid_rating(rating):
                raise self._reject(InvalidRating(
                    f"Rating must be an integer from {MIN_RATING} to {MAX_RATING}, got {rating!r}"
                ))

            state = self._state
            stats = state.stats[listing_id]
            key = (caller, listing_id)
            prior = state.marks.get(key)

            if prior is None:
                stats.rating_count += 1
                stats.rating_sum += rating
            else:
                stats.rating_sum += rating - prior
            state.marks[key] = rating

            logger.info("Listing %d rated %d by %s (count=%d, sum=%d)", listing_id,
                        rating, caller, stats.rating_count, stats.rating_sum)
            self._emit(ListingRated(
                id=listing_id,
                rater=caller,
                rating=rating,
                rating_count=stats.rating_count,
                rating_sum=stats.rating_sum,
            ))

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """Hand the administrative owner role to ``new_owner``."""
        with self._transaction(write=True):
            previous = self._state.owner
            if caller != previous:
                raise self._reject(Unauthorized(f"{caller!r} is not the registry owner"))
            _require_identity(new_owner, "new owner")

            self._state.owner = new_owner
            logger.info("Registry ownership transferred from %s to %s", previous, new_owner)
            self._emit(OwnershipTransferred(
                previous_owner=previous, new_owner=new_owner,
            ))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_average_rating(self, listing_id: int) -> int:
        """Average rating x100, truncated; 0 when nobody has rated yet."""
        with self._transaction():
            self._get_listing(listing_id)
            return self._state.stats[listing_id].average_x100

    def get_listings_of(self, developer: str) -> list[int]:
        """Ids registered by ``developer`` in registration order."""
        with self._transaction():
            return list(self._state.developer_index.get(developer, []))

    def get_listing(self, listing_id: int) -> Listing:
        with self._transaction():
            return replace(self._get_listing(listing_id))

    def get_rating_stats(self, listing_id: int) -> RatingStats:
        with self._transaction():
            self._get_listing(listing_id)
            return replace(self._state.stats[listing_id])

    def get_user_rating(self, user: str, listing_id: int) -> Optional[int]:
        """The user's current mark on the listing, or ``None`` if they never rated it."""
        with self._transaction():
            self._get_listing(listing_id)
            return self._state.marks.get((user, listing_id))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, write: bool = False) -> Iterator[None]:
        """Run one call against the latest committed state.

        Nested calls join the outer transaction. Events queued by
        :meth:`_emit` are published after the snapshot is saved and are
        dropped if the call raises.
        """
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            file_lock = self._state_file.lock() if self._state_file else None
            if file_lock is not None:
                file_lock.acquire()
            self._depth = 1
            self._pending = []
            try:
                if self._state_file is not None:
                    loaded = self._state_file.load()
                    if loaded is not None:
                        self._state = loaded
                yield
                if write and self._state_file is not None:
                    self._state_file.save(self._state)
                for event in self._pending:
                    self._events.publish(event)
            finally:
                self._pending = []
                self._depth = 0
                if file_lock is not None:
                    file_lock.release()

    def _emit(self, event: RegistryEvent) -> None:
        # The sequence lives in the state so it survives reloads and is
        # shared by every process writing the same snapshot.
        self._state.last_sequence += 1
        event.sequence = self._state.last_sequence
        self._pending.append(event)

    def _get_listing(self, listing_id: int) -> Listing:
        listing = None
        if isinstance(listing_id, int) and not isinstance(listing_id, bool):
            listing = self._state.listings.get(listing_id)
        if listing is None:
            raise self._reject(NotFound(f"Listing {listing_id!r} does not exist"))
        return listing

    @staticmethod
    def _reject(exc: RegistryError) -> RegistryError:
        logger.warning("Rejected: %s (%s)", exc.message, exc.code)
        return exc


def _require_identity(value: object, what: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise RegistryService._reject(
            InvalidArgument(f"{what} must be a non-empty identity")
        )
