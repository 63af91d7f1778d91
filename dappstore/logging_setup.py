"""Logging configuration shared by the CLI and the web app."""

from __future__ import annotations

import logging
import sys

from dappstore.config import LOG_FORMAT


def setup_logging(log_level: str = "INFO") -> None:
    """Configure root logging to stderr at ``log_level``."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
