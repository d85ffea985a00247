"""
Centralized logging configuration for the ``trackhub`` package.

Two helpers:

  - configure_logging(): attaches a single StreamHandler to the package root
    logger ("trackhub"). Called once by the application lifespan.
  - get_logger(name): returns a named logger, making sure the package root
    has at least a NullHandler when nothing has been configured (tests,
    scripts importing the services directly).

Modules never attach their own handlers; they call
get_logger("trackhub.<module>") and rely on the central configuration.
"""

import logging
import sys
from typing import IO

_PKG_LOGGER_NAME = "trackhub"
_CONFIGURED = False


def _parse_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    level = level.strip().upper()
    if level.isdigit():
        return int(level)
    numeric = getattr(logging, level, None)
    if isinstance(numeric, int):
        return numeric
    return logging.INFO


def configure_logging(
    level: int | str = "INFO",
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """
    Configure the package root logger exactly once.

    Args:
        level: Level as int or name ("DEBUG", "INFO", ...). Unknown names
               fall back to INFO.
        fmt: Optional format string.
        stream: Output stream for the handler (stderr by default).
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)

    # Drop the NullHandler installed by get_logger() before configuration
    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        logging.Formatter(fmt or "%(asctime)s %(name)s %(levelname)s %(message)s")
    )
    logger.setLevel(_parse_level(level))
    logger.addHandler(handler)
    # Avoid double emission via the root logger (uvicorn configures it too)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name; silent until configure_logging() runs."""
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
