"""Logging configuration module."""

from __future__ import annotations

import logging

from memora.config.settings import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logger according to project conventions."""

    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # httpx logs every request line at INFO; provider calls are logged by our clients.
    logging.getLogger("httpx").setLevel(logging.WARNING)
