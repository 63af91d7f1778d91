"""Runtime settings, read from ``DAPPSTORE_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DEFAULT_STATE_FILE = Path.home() / ".dappstore" / "registry.json"
DEFAULT_OWNER = "deployer"
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class Settings:
    state_file: Path = DEFAULT_STATE_FILE
    owner: str = DEFAULT_OWNER  # only used when no snapshot exists yet
    log_level: str = DEFAULT_LOG_LEVEL
    events_file: Optional[Path] = None

    @property
    def journal_path(self) -> Path:
        """Event journal location; defaults to a file beside the snapshot."""
        if self.events_file is not None:
            return self.events_file
        return self.state_file.with_name(self.state_file.stem + ".events.jsonl")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``env`` (defaults to ``os.environ``)."""
    if env is None:
        env = os.environ
    events_file = env.get("DAPPSTORE_EVENTS_FILE")
    return Settings(
        state_file=Path(env.get("DAPPSTORE_STATE_FILE", str(DEFAULT_STATE_FILE))).expanduser(),
        owner=env.get("DAPPSTORE_OWNER", DEFAULT_OWNER),
        log_level=env.get("DAPPSTORE_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        events_file=Path(events_file).expanduser() if events_file else None,
    )
