"""Registry events and the ordered stream that carries them.

Each committed mutation produces exactly one event. The :class:`EventLog`
appends it to an in-memory stream and hands it to every subscriber before
the mutating call returns. :class:`JsonlEventJournal` is a subscriber that
persists the stream as newline-delimited JSON.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, ClassVar, Optional, Union

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Event records
# ------------------------------------------------------------------


@dataclass
class ListingRegistered:
    event: ClassVar[str] = "listing.registered"

    id: int
    developer: str
    name: str
    url: str
    category: str
    timestamp: int
    sequence: int = 0


@dataclass
class ListingStatusUpdated:
    event: ClassVar[str] = "listing.status_updated"

    id: int
    active: bool
    timestamp: int
    sequence: int = 0


@dataclass
class ListingRated:
    event: ClassVar[str] = "listing.rated"

    id: int
    rater: str
    rating: int
    rating_count: int
    rating_sum: int
    sequence: int = 0


@dataclass
class OwnershipTransferred:
    event: ClassVar[str] = "ownership.transferred"

    previous_owner: str
    new_owner: str
    sequence: int = 0


RegistryEvent = Union[
    ListingRegistered, ListingStatusUpdated, ListingRated, OwnershipTransferred
]

EVENT_TYPES: dict[str, type] = {
    cls.event: cls
    for cls in (ListingRegistered, ListingStatusUpdated, ListingRated, OwnershipTransferred)
}

Subscriber = Callable[[RegistryEvent], None]


def event_to_dict(event: RegistryEvent) -> dict[str, Any]:
    return {"event": event.event, **asdict(event)}


def event_from_dict(data: dict[str, Any]) -> RegistryEvent:
    """Rebuild an event from :func:`event_to_dict` output.

    Raises ``ValueError`` for an unknown event type.
    """
    fields = dict(data)
    name = fields.pop("event", "")
    cls = EVENT_TYPES.get(name)
    if cls is None:
        raise ValueError(f"Unknown event type: {name!r}")
    return cls(**{k: v for k, v in fields.items() if k in cls.__dataclass_fields__})


# ------------------------------------------------------------------
# Stream
# ------------------------------------------------------------------


class EventLog:
    """Append-only, ordered event stream with synchronous subscribers.

    The log does no locking of its own; the registry service publishes while
    holding its writer lock, which is what orders the stream. Events that
    arrive already numbered (the service numbers them from the persisted
    state) keep their sequence.
    """

    def __init__(self, first_sequence: int = 1) -> None:
        self._events: list[RegistryEvent] = []
        self._subscribers: list[Subscriber] = []
        self._next_sequence = first_sequence

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for future events. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: RegistryEvent) -> RegistryEvent:
        """Deliver ``event``, stamping it with the next sequence number if unset."""
        if not event.sequence:
            event.sequence = self._next_sequence
        self._next_sequence = event.sequence + 1
        self._events.append(event)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                # The mutation has already committed; a broken observer
                # must not turn it into a reported failure.
                logger.exception(
                    "Event subscriber %r failed on %s #%d",
                    callback, event.event, event.sequence,
                )
        return event

    @property
    def events(self) -> list[RegistryEvent]:
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)


# ------------------------------------------------------------------
# Journal
# ------------------------------------------------------------------


class JsonlEventJournal:
    """Subscriber that appends each event as one JSON line to ``path``."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, event: RegistryEvent) -> None:
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(event_to_dict(event)) + "\n")

    def read(self, event_type: Optional[str] = None) -> list[RegistryEvent]:
        """Return journaled events in order, optionally of one type only."""
        if not self.path.exists():
            return []
        events = []
        for line in self.path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            event = event_from_dict(json.loads(line))
            if event_type and event.event != event_type:
                continue
            events.append(event)
        return events

    def last_sequence(self) -> int:
        events = self.read()
        return events[-1].sequence if events else 0
