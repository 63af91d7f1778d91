"""Process-wide registry service shared by all routers."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from dappstore.config import load_settings
from dappstore.registry.events import EventLog, JsonlEventJournal
from dappstore.registry.service import RegistryService
from dappstore.registry.store import JsonStateFile

logger = logging.getLogger(__name__)

_service: Optional[RegistryService] = None
_service_lock = threading.Lock()


def get_service() -> RegistryService:
    """Return the singleton RegistryService, opening it on first use.

    FastAPI runs sync dependencies in a threadpool, so first requests may
    race here; only one of them opens the service.
    """
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                settings = load_settings()
                events = EventLog()
                events.subscribe(JsonlEventJournal(settings.journal_path))
                _service = RegistryService.open(
                    JsonStateFile(settings.state_file), owner=settings.owner, events=events
                )
                logger.info("Registry service opened from %s", settings.state_file)
    return _service
