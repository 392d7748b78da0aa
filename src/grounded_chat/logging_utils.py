"""Process-wide logging setup.

Modules only ever call ``logging.getLogger(__name__)``; the entry points
(CLI and the FastAPI lifespan) call :func:`setup_logging` once so every
``grounded_chat.*`` logger shares one handler and format.
"""

from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a console handler to the package logger and return it.

    Calling this more than once only updates the level, so the lifespan
    hook and the CLI can both call it without duplicating output.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("grounded_chat")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
        logger.addHandler(handler)
        # Keep uvicorn's root configuration from printing every line twice
        logger.propagate = False

    for handler in logger.handlers:
        handler.setLevel(level)
    return logger
