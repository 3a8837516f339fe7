"""Logging setup for the gcalman CLI."""

import logging
import os


def configure_logging(level: str | None = None) -> None:
    """Configure root logging.

    Args:
        level: Level name such as "DEBUG". Falls back to LOG_LEVEL, then INFO.
    """
    env_level = os.getenv("LOG_LEVEL")
    chosen = (level or env_level or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, chosen, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    for noisy in ["urllib3", "googleapiclient", "google.auth", "authlib"]:
        logging.getLogger(noisy).setLevel(logging.WARNING)
