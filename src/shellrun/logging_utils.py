"""Logging helpers.

The runner and engine accept an injected logger; this module only adds the
TRACE level and the fallback to module loggers.
"""

from __future__ import annotations

import logging
from typing import Union

__all__ = ["TRACE", "LoggerLike", "resolve_logger", "trace"]

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Anything with the logging.Logger call surface
LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


def resolve_logger(logger: LoggerLike | None, name: str) -> LoggerLike:
    """Return the injected logger, or the module logger for `name`."""
    return logger if logger is not None else logging.getLogger(name)


def trace(logger: LoggerLike, msg: str, *args: object) -> None:
    """Log at TRACE level."""
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, msg, *args)
