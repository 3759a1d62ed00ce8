"""Availability checker.

Asks the OS-native lookup utility (`where` on Windows, `which` elsewhere)
whether an executable can be found on the search path. The answer is
advisory: a later run can still fail to start.
"""

from __future__ import annotations

import logging
import subprocess

from ..logging_utils import LoggerLike, resolve_logger, trace
from ..types import OSFamily
from .resolver import current_os_family

__all__ = ["is_available", "lookup_utility"]

logger = logging.getLogger(__name__)


def lookup_utility(family: OSFamily | None = None) -> str:
    """Name of the search-path lookup utility for an OS family."""
    family = current_os_family() if family is None else family
    return "where" if family is OSFamily.WINDOWS else "which"


def is_available(
    name: str,
    family: OSFamily | None = None,
    *,
    logger: LoggerLike | None = None,
) -> bool:
    """Check whether `name` resolves to an executable on this host.

    Both streams of the lookup process are discarded. There is no timeout;
    the lookup utility's own execution is bounded.

    Args:
        name: Executable name or path
        family: OS family override (defaults to the host)
        logger: Optional injected logger

    Returns:
        True if the lookup utility exits with 0, False otherwise, including
        when the lookup utility itself cannot be started
    """
    log = resolve_logger(logger, __name__)
    if not name or not name.strip():
        return False

    utility = lookup_utility(family)
    try:
        completed = subprocess.run(
            [utility, name],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except (OSError, ValueError) as e:
        log.debug(f"Lookup utility '{utility}' failed to start for '{name}': {e}")
        return False

    available = completed.returncode == 0
    trace(log, "%s %s -> returncode=%s", utility, name, completed.returncode)
    return available
