"""Exceptions raised while constructing or configuring a runner.

shellrun v0.1.0

Run-time failures (spawn errors, non-zero exits) are never raised; they are
reported through ProcessOutcome instead.
"""

from __future__ import annotations

__all__ = [
    "ShellRunError",
    "UnsupportedApplicationError",
    "UnsupportedOperatingSystemError",
    "DirectoryNotFoundError",
    "UnsupportedEncodingError",
]


class ShellRunError(Exception):
    """Base exception for shellrun."""
    pass


class UnsupportedApplicationError(ShellRunError):
    """Application has no mapping on this OS or cannot be located.

    Attributes:
        application: The kind or name that was requested
        reason: Human readable explanation
    """

    def __init__(self, application: object, reason: str = "") -> None:
        self.application = application
        self.reason = reason or "not supported"
        # Kinds are named the way callers spell them ("PowerShell")
        name = getattr(application, "value", application)
        super().__init__(f"Application '{name}' {self.reason}")


class UnsupportedOperatingSystemError(ShellRunError):
    """Host OS is outside Windows, Linux and macOS.

    Attributes:
        platform: The sys.platform value that was rejected
    """

    def __init__(self, platform: str) -> None:
        self.platform = platform
        super().__init__(f"Unsupported operating system: {platform}")


class DirectoryNotFoundError(ShellRunError, FileNotFoundError):
    """Working directory does not exist.

    Attributes:
        path: The offending path
    """

    def __init__(self, path: object) -> None:
        self.path = path
        super().__init__(f"Working directory '{path}' does not exist")


class UnsupportedEncodingError(ShellRunError, LookupError):
    """Output encoding is not a known codec.

    Attributes:
        encoding: The rejected encoding name
    """

    def __init__(self, encoding: str) -> None:
        self.encoding = encoding
        super().__init__(f"Unknown output encoding: {encoding}")
