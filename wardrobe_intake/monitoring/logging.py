"""Logging setup for the API process and maintenance scripts."""

from __future__ import annotations

import logging

from wardrobe_intake.config.settings import Settings, get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Client libraries that log every request at INFO, signed URLs and queue tokens included.
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging(settings: Settings | None = None) -> None:
    """Set the service log level and keep HTTP client chatter at WARNING or above."""

    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("wardrobe_intake").setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
