"""Logging configuration utilities for the Status Board service."""
import logging
import os

SERVICE_NAME = "Status-Board"


def setup_logging() -> None:
    """Configure root logging from the LOG_LEVEL and LOG_FILE environment variables.

    Without LOG_FILE records go to stderr.
    """
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        filename=os.getenv("LOG_FILE") or None,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    logging.getLogger(SERVICE_NAME).info("logging configured (level=%s)", level)
