"""Logging helpers for sitter-bundle."""

from __future__ import annotations

import logging
from typing import Optional, Union

_ROOT_LOGGER_NAME = "sitter_bundle"
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Install a single stream handler on the package logger.

    Calling this more than once only updates the level, so repeated CLI invocations in one
    process do not duplicate output.

    Parameters
    ----------
    level : Union[int, str]
        A logging level or its name (e.g. ``"DEBUG"``).

    Returns
    -------
    logging.Logger
        The configured package logger.
    """
    if isinstance(level, str):
        level = level.upper()
    logger = logging.getLogger(_ROOT_LOGGER_NAME)
    logger.setLevel(level)
    if not any(getattr(h, "_sitter_bundle", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._sitter_bundle = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger or one of its children."""
    if not name:
        return logging.getLogger(_ROOT_LOGGER_NAME)
    if name == _ROOT_LOGGER_NAME or name.startswith(_ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")
