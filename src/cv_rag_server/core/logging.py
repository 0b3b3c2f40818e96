"""
Logging setup for the `cv.*` logger tree.
"""

from __future__ import annotations

import logging

ROOT_LOGGER_NAME = "cv"

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach a single stream handler to the `cv` logger.

    Safe to call more than once (e.g. once per create_app() in tests).
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper())

    if not any(getattr(h, "_cv_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._cv_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger
