"""Registry state and its JSON snapshot file.

The state is four mappings plus three scalars:

- ``listings`` -- listing id -> :class:`Listing`
- ``stats`` -- listing id -> :class:`RatingStats`
- ``marks`` -- (user, listing id) -> current rating; absent means "not rated"
- ``developer_index`` -- developer -> ids they registered, in order
- ``next_id`` and ``owner``
- ``last_sequence`` -- sequence number of the last published event

Only :class:`~dappstore.registry.service.RegistryService` should touch it.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from filelock import FileLock

from dappstore.registry.models import Listing, RatingStats

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1
_MARK_SEP = "|"


@dataclass
class RegistryState:
    """Process-wide registry state."""

    owner: str
    next_id: int = 0
    listings: dict[int, Listing] = field(default_factory=dict)
    stats: dict[int, RatingStats] = field(default_factory=dict)
    marks: dict[tuple[str, int], int] = field(default_factory=dict)
    developer_index: dict[str, list[int]] = field(default_factory=dict)
    last_sequence: int = 0

    def to_dict(self) -> dict[str, Any]:
        # JSON object keys must be strings; a mark key is "<user>|<id>".
        # The id goes last so a "|" inside the user name survives rsplit.
        return {
            "version": SNAPSHOT_VERSION,
            "owner": self.owner,
            "next_id": self.next_id,
            "listings": {str(i): asdict(lst) for i, lst in self.listings.items()},
            "stats": {str(i): asdict(s) for i, s in self.stats.items()},
            "marks": {
                f"{user}{_MARK_SEP}{listing_id}": value
                for (user, listing_id), value in self.marks.items()
            },
            "developer_index": {d: list(ids) for d, ids in self.developer_index.items()},
            "last_sequence": self.last_sequence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegistryState:
        marks: dict[tuple[str, int], int] = {}
        for key, value in data.get("marks", {}).items():
            user, _, listing_id = key.rpartition(_MARK_SEP)
            marks[(user, int(listing_id))] = int(value)

        return cls(
            owner=data["owner"],
            next_id=int(data.get("next_id", 0)),
            listings={int(i): Listing(**d) for i, d in data.get("listings", {}).items()},
            stats={int(i): RatingStats(**d) for i, d in data.get("stats", {}).items()},
            marks=marks,
            developer_index={
                d: [int(i) for i in ids]
                for d, ids in data.get("developer_index", {}).items()
            },
            last_sequence=int(data.get("last_sequence", 0)),
        )


class JsonStateFile:
    """Reads and writes a :class:`RegistryState` snapshot as JSON.

    Writers in different processes coordinate through an exclusive lock on
    a ``<snapshot>.lock`` file beside the snapshot; see :meth:`lock`.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self._file_lock = FileLock(str(self.lock_path))

    def lock(self) -> FileLock:
        """Cross-process lock to hold around a load, mutate, save cycle."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return self._file_lock

    def load(self) -> Optional[RegistryState]:
        """Return the stored state, or ``None`` if no snapshot exists yet.

        A snapshot that cannot be parsed raises ``ValueError``; starting
        empty on top of a damaged file would throw away every listing.
        """
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            state = RegistryState.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Corrupt registry snapshot at {self.path}: {e}") from e
        logger.debug(
            "Loaded registry snapshot from %s (%d listings)", self.path, len(state.listings)
        )
        return state

    def save(self, state: RegistryState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(state.to_dict(), indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)
