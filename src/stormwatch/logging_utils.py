"""Shared logging helpers for Stormwatch services."""

from __future__ import annotations

import logging
from pythonjsonlogger import jsonlogger


def configure_logging(level: int = logging.INFO) -> None:
    """Configure JSON logging for the engine and its CLI."""
    formatter = jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=[handler], force=True)
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
