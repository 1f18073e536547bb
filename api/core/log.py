"""Logging setup shared by the public and admin apps."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_HANDLER_FLAG = "_visitcards_handler"


def _level(name: str | None) -> int:
    # getLevelName maps known names to ints and anything else to a "Level x" string
    value = logging.getLevelName((name or "").strip().upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stream handler to the ``api`` logger (idempotent).

    Unknown level names fall back to INFO.
    """
    logger = logging.getLogger("api")
    logger.setLevel(_level(level))
    if not any(getattr(h, _HANDLER_FLAG, False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        setattr(handler, _HANDLER_FLAG, True)
        logger.addHandler(handler)
    return logger
