"""shellrun environment variable configuration.

Used by the command-line entry point; library callers pass the same
settings to ProcessRunner directly.

Environment variables:
    SHELLRUN_APPLICATION: Application to run commands with
        - Empty/unset = OS default shell (Windows: CMD, Linux: Bash, macOS: Sh)
        - A kind name (CMD, PowerShell, Bash, Sh), executable name or path
        - e.g. "Bash", "/bin/sh", "python3"

    SHELLRUN_WORKDIR: Working directory for the child process
        - Empty/unset = current directory

    SHELLRUN_STDOUT_REDIRECT: Capture stdout
        - true/1/yes/on = capture (default)
        - false/0/no/off = inherit the parent's stdout

    SHELLRUN_STDERR_REDIRECT: Capture stderr
        - true/1/yes/on = capture (default)
        - false/0/no/off = inherit the parent's stderr

    SHELLRUN_ENCODING: Encoding used to decode captured output
        - Default utf-8

    SHELLRUN_LOG_DEBUG: Debug logging
        - true/1/yes = on (DEBUG logs written to a temp file)
        - false/0/no = off (default, WARNING logs to stderr)

    SHELLRUN_LOG_TRACE: Trace logging
        - true/1/yes = on (TRACE records, including every captured line)
        - false/0/no = off (default)
"""

from __future__ import annotations

import codecs
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .types import DEFAULT_ENCODING

__all__ = ["Config", "load_config", "get_config", "reload_config"]


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def _parse_optional(value: str | None) -> str | None:
    """Empty or whitespace-only values mean unset."""
    if not value or not value.strip():
        return None
    return value.strip()


def _parse_encoding(value: str | None) -> str:
    """Validate an encoding name; unknown names fall back to the default."""
    value = _parse_optional(value)
    if value is None:
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(value).name
    except LookupError:
        return DEFAULT_ENCODING


@dataclass
class Config:
    """shellrun configuration.

    Attributes:
        application: Application kind name, executable, or None for the OS default
        working_directory: Working directory, None for the current directory
        stdout_redirect: Capture stdout
        stderr_redirect: Capture stderr
        encoding: Output encoding
        log_debug: Debug logging to a temp file
        log_trace: Enable TRACE records
        log_file: Log file path (set automatically when log_debug=True)
    """

    application: str | None = None
    working_directory: str | None = None
    stdout_redirect: bool = True
    stderr_redirect: bool = True
    encoding: str = DEFAULT_ENCODING
    log_debug: bool = False
    log_trace: bool = False
    log_file: str | None = None

    def __repr__(self) -> str:
        return (
            f"Config(application={self.application or 'default'}, "
            f"working_directory={self.working_directory or 'current'}, "
            f"stdout_redirect={self.stdout_redirect}, "
            f"stderr_redirect={self.stderr_redirect}, "
            f"encoding={self.encoding}, "
            f"log_debug={self.log_debug}, "
            f"log_trace={self.log_trace}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """Generate a log file path.

    Returns:
        Absolute path of a timestamped log file under the temp directory
    """
    log_dir = Path(tempfile.gettempdir()) / "shellrun"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"shellrun_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from environment variables."""
    log_debug = _parse_bool(os.environ.get("SHELLRUN_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        application=_parse_optional(os.environ.get("SHELLRUN_APPLICATION")),
        working_directory=_parse_optional(os.environ.get("SHELLRUN_WORKDIR")),
        stdout_redirect=_parse_bool(os.environ.get("SHELLRUN_STDOUT_REDIRECT"), default=True),
        stderr_redirect=_parse_bool(os.environ.get("SHELLRUN_STDERR_REDIRECT"), default=True),
        encoding=_parse_encoding(os.environ.get("SHELLRUN_ENCODING")),
        log_debug=log_debug,
        log_trace=_parse_bool(os.environ.get("SHELLRUN_LOG_TRACE"), default=False),
        log_file=log_file,
    )


# Global config instance (lazily loaded)
_config: Config | None = None


def get_config() -> Config:
    """Return the global config instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration (used by tests)."""
    global _config
    _config = load_config()
    return _config
