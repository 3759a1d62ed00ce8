"""Application resolver.

Maps an ApplicationKind, a serialized kind name, or a free-form executable
name/path to the executable the runner will spawn.

Per-OS table:
- Windows: CMD -> cmd.exe, POWERSHELL -> powershell.exe
- Linux/macOS: BASH -> /bin/bash, SH -> /bin/sh

OS default kind: Windows -> CMD, Linux -> BASH, macOS -> SH.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

from ..errors import UnsupportedApplicationError, UnsupportedOperatingSystemError
from ..logging_utils import LoggerLike, resolve_logger, trace
from ..types import ApplicationKind, OSFamily

__all__ = [
    "ResolvedApplication",
    "current_os_family",
    "default_kind",
    "executable_for",
    "kind_from_executable",
    "parse_kind",
    "resolve",
]

logger = logging.getLogger(__name__)

_EXECUTABLES: dict[OSFamily, dict[ApplicationKind, str]] = {
    OSFamily.WINDOWS: {
        ApplicationKind.CMD: "cmd.exe",
        ApplicationKind.POWERSHELL: "powershell.exe",
    },
    OSFamily.LINUX: {
        ApplicationKind.BASH: "/bin/bash",
        ApplicationKind.SH: "/bin/sh",
    },
    OSFamily.MACOS: {
        ApplicationKind.BASH: "/bin/bash",
        ApplicationKind.SH: "/bin/sh",
    },
}

_DEFAULT_KINDS: dict[OSFamily, ApplicationKind] = {
    OSFamily.WINDOWS: ApplicationKind.CMD,
    OSFamily.LINUX: ApplicationKind.BASH,
    OSFamily.MACOS: ApplicationKind.SH,
}

# Conventional executable names that still quote like a known shell
_KNOWN_EXECUTABLES: dict[str, ApplicationKind] = {
    "cmd.exe": ApplicationKind.CMD,
    "cmd": ApplicationKind.CMD,
    "powershell.exe": ApplicationKind.POWERSHELL,
    "powershell": ApplicationKind.POWERSHELL,
    "/bin/bash": ApplicationKind.BASH,
    "bash": ApplicationKind.BASH,
    "/bin/sh": ApplicationKind.SH,
    "sh": ApplicationKind.SH,
}


@dataclass(frozen=True)
class ResolvedApplication:
    """Result of resolution.

    Attributes:
        executable: Path or command name handed to the OS at spawn time
        kind: Shell kind used for quoting, None for arbitrary applications
    """

    executable: str
    kind: ApplicationKind | None = None


def current_os_family(platform: str | None = None) -> OSFamily:
    """Classify sys.platform (or the given value) into an OSFamily.

    Raises:
        UnsupportedOperatingSystemError: Platform is not Windows, Linux or macOS
    """
    platform = sys.platform if platform is None else platform
    if platform == "win32":
        return OSFamily.WINDOWS
    if platform.startswith("linux"):
        return OSFamily.LINUX
    if platform == "darwin":
        return OSFamily.MACOS
    logger.error(f"Unsupported operating system: {platform}")
    raise UnsupportedOperatingSystemError(platform)


def default_kind(family: OSFamily | None = None) -> ApplicationKind:
    """Return the one default kind for an OS family."""
    family = current_os_family() if family is None else family
    return _DEFAULT_KINDS[family]


def executable_for(
    kind: ApplicationKind,
    family: OSFamily | None = None,
    *,
    logger: LoggerLike | None = None,
) -> str:
    """Look up the canonical executable for a kind on an OS family.

    Raises:
        UnsupportedApplicationError: No mapping for this kind on this family
    """
    log = resolve_logger(logger, __name__)
    family = current_os_family() if family is None else family
    executable = _EXECUTABLES[family].get(kind) if isinstance(kind, ApplicationKind) else None
    if executable is None:
        name = getattr(kind, "value", kind)
        log.error(f"Application {name} is not supported on {family.value}")
        raise UnsupportedApplicationError(kind, f"is not supported on {family.value}")
    return executable


def parse_kind(name: str) -> ApplicationKind | None:
    """Exact, case-sensitive match against serialized kind names."""
    try:
        return ApplicationKind(name)
    except ValueError:
        return None


def kind_from_executable(name: str) -> ApplicationKind | None:
    """Infer the shell kind from a conventional executable name or path."""
    return _KNOWN_EXECUTABLES.get(name.strip().lower())


def resolve(
    application: ApplicationKind | str | None = None,
    family: OSFamily | None = None,
    *,
    logger: LoggerLike | None = None,
) -> ResolvedApplication:
    """Resolve a kind, kind name, or free-form name to an executable.

    A free-form name that is not a serialized kind is returned verbatim and
    not checked for existence here; the runner probes availability and the
    OS reports anything else at spawn time.

    Args:
        application: Kind, kind name, executable name/path, or None for the
            OS default
        family: OS family override (defaults to the host)
        logger: Optional injected logger

    Raises:
        UnsupportedApplicationError: Kind has no mapping, or name is blank
        UnsupportedOperatingSystemError: Host OS is unsupported
    """
    log = resolve_logger(logger, __name__)
    family = current_os_family() if family is None else family

    if application is None:
        kind = default_kind(family)
        trace(log, "No application given, using OS default %s", kind.value)
    elif isinstance(application, ApplicationKind):
        kind = application
    elif isinstance(application, str):
        if not application.strip():
            log.error("Application name cannot be empty")
            raise UnsupportedApplicationError(application, "cannot be empty")
        kind = parse_kind(application)
        if kind is None:
            resolved = ResolvedApplication(application, kind_from_executable(application))
            log.debug(
                f"Resolved application '{application}' as literal executable "
                f"(kind={resolved.kind.value if resolved.kind else None})"
            )
            return resolved
    else:
        log.error(f"Invalid application descriptor: {application!r}")
        raise UnsupportedApplicationError(application, "is not a valid application descriptor")

    resolved = ResolvedApplication(executable_for(kind, family, logger=log), kind)
    log.debug(f"Resolved application {kind.value} -> {resolved.executable}")
    return resolved
