"""shellrun - run commands through a shell and capture their output.

Environment variables (command-line entry point only):
    SHELLRUN_APPLICATION: Application to run commands with (empty = OS default)
    SHELLRUN_WORKDIR: Working directory (empty = current)
    SHELLRUN_LOG_DEBUG: Debug log file (default false)

Usage:
    from shellrun import ApplicationKind, ProcessRunner

    runner = ProcessRunner(ApplicationKind.BASH)
    outcome = runner.run("echo Hello World")
"""

__version__ = "0.1.0"

from .errors import (
    DirectoryNotFoundError,
    ShellRunError,
    UnsupportedApplicationError,
    UnsupportedEncodingError,
    UnsupportedOperatingSystemError,
)
from .runner import ProcessRunner
from .types import (
    FAILED_TO_RUN_EXIT_CODE,
    ApplicationKind,
    CapturedOutput,
    OSFamily,
    ProcessOutcome,
    ProcessStatus,
    RunnerConfig,
)

__all__ = [
    "__version__",
    "ApplicationKind",
    "CapturedOutput",
    "DirectoryNotFoundError",
    "FAILED_TO_RUN_EXIT_CODE",
    "OSFamily",
    "ProcessOutcome",
    "ProcessRunner",
    "ProcessStatus",
    "RunnerConfig",
    "ShellRunError",
    "UnsupportedApplicationError",
    "UnsupportedEncodingError",
    "UnsupportedOperatingSystemError",
]
