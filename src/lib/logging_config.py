"""Logging configuration for the user ingestion pipeline."""

from __future__ import annotations

import logging
import sys

LOGGER_NAME: str = "ingest_users"


def setup_logging(*, level: int = logging.INFO) -> logging.Logger:
    """Configure and return the ingestion logger.

    Sets up a stream handler writing to stderr so that stdout remains
    reserved for the run summary and distribution report.

    Args:
        level: Logging level. Defaults to INFO.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(level)

    return logger
