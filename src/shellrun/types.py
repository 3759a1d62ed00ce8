"""shellrun type definitions.

shellrun v0.1.0

Defines application kinds, OS families, runner configuration, captured
output buffers and the per-invocation outcome.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

__all__ = [
    "ApplicationKind",
    "OSFamily",
    "ProcessStatus",
    "ProcessOutcome",
    "RunnerConfig",
    "CapturedOutput",
    "LaunchSpec",
    "FAILED_TO_RUN_EXIT_CODE",
    "DEFAULT_ENCODING",
]

# Exit code reported when the child process could not be created.
# On POSIX a child killed by signal 1 (SIGHUP) also exits with -1;
# only ProcessOutcome.status (FAILED vs DID_NOT_RUN) tells the two apart.
FAILED_TO_RUN_EXIT_CODE = -1

DEFAULT_ENCODING = "utf-8"


class ApplicationKind(str, Enum):
    """Supported command interpreters.

    The value is the serialized kind name accepted by the resolver:
    - CMD: Windows command interpreter
    - POWERSHELL: Windows PowerShell
    - BASH: POSIX bash
    - SH: POSIX sh
    """

    CMD = "CMD"
    POWERSHELL = "PowerShell"
    BASH = "Bash"
    SH = "Sh"


class OSFamily(str, Enum):
    """Operating system families the resolver knows about."""

    WINDOWS = "windows"
    LINUX = "linux"
    MACOS = "macos"

    @property
    def is_posix(self) -> bool:
        return self is not OSFamily.WINDOWS


class ProcessStatus(str, Enum):
    """Terminal status of one invocation."""

    SUCCESS = "success"
    FAILED = "failed"
    DID_NOT_RUN = "did_not_run"


@dataclass(frozen=True)
class ProcessOutcome:
    """Immutable record of one invocation.

    Attributes:
        status: SUCCESS, FAILED or DID_NOT_RUN
        exit_code: Child exit code, FAILED_TO_RUN_EXIT_CODE when not spawned
        message: Description referencing the invoked command
    """

    status: ProcessStatus
    exit_code: int
    message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is ProcessStatus.SUCCESS

    @classmethod
    def from_exit_code(cls, exit_code: int, command: str) -> "ProcessOutcome":
        """Map a real exit code to SUCCESS/FAILED."""
        if exit_code == 0:
            return cls(
                ProcessStatus.SUCCESS,
                exit_code,
                f"Command executed successfully: {command}",
            )
        return cls(
            ProcessStatus.FAILED,
            exit_code,
            f"Command ran and failed: {command}",
        )

    @classmethod
    def did_not_run(cls, command: str, error: BaseException | str) -> "ProcessOutcome":
        return cls(
            ProcessStatus.DID_NOT_RUN,
            FAILED_TO_RUN_EXIT_CODE,
            f"Process failed to start: {command} ({error})",
        )


@dataclass
class RunnerConfig:
    """Configuration owned by a single runner.

    Attributes:
        executable: Resolved executable path or command name
        working_directory: Directory the child runs in (None = current)
        stdout_redirect: Capture stdout into a buffer
        stderr_redirect: Capture stderr into a buffer
        encoding: Encoding used to decode captured streams
    """

    executable: str
    working_directory: Path | None = None
    stdout_redirect: bool = True
    stderr_redirect: bool = True
    encoding: str = DEFAULT_ENCODING

    def __post_init__(self) -> None:
        """Normalize working_directory to a Path; empty string means unset."""
        if isinstance(self.working_directory, (str, os.PathLike)):
            self.working_directory = (
                Path(self.working_directory) if str(self.working_directory) else None
            )

    def copy(self) -> "RunnerConfig":
        return replace(self)


@dataclass
class CapturedOutput:
    """Line buffers for one invocation.

    Each list only ever receives complete lines, in the order the child
    emitted them on that stream.
    """

    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class LaunchSpec:
    """Snapshot of everything needed to spawn one invocation.

    Taken at the start of a run so later setter calls on the runner never
    affect a run in flight.

    Attributes:
        argv: Executable followed by its arguments
        command: Display form of the command, used in messages and logs
        cwd: Working directory (None = inherit)
        stdout_redirect: Drain stdout into the buffer
        stderr_redirect: Drain stderr into the buffer
        encoding: Stream encoding
    """

    argv: list[str]
    command: str
    cwd: Path | None = None
    stdout_redirect: bool = True
    stderr_redirect: bool = True
    encoding: str = DEFAULT_ENCODING
