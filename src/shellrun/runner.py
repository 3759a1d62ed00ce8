"""Process runner.

shellrun v0.1.0

The orchestrator: owns a RunnerConfig, turns command text into an argv
through an invocation strategy, and hands the launch to the capture engine.

Contract:
- Construction validates everything up front. An executable the
  availability checker cannot locate raises UnsupportedApplicationError;
  a missing working directory raises DirectoryNotFoundError, checked
  before the application itself; an unknown output encoding raises
  UnsupportedEncodingError.
- Runs never raise for run-time failures; they return a ProcessOutcome.
- Output buffers are replaced at the start of every run (sync and async),
  so stdout/stderr always reflect exactly the last invocation.
- One run at a time per instance. Overlapping runs on the same instance
  share the configuration and buffers; use separate runners for parallel
  work.
- No timeout: run() blocks and run_async() suspends until the child exits.
  Wrap externally (e.g. anyio.fail_after) if a bound is needed.

Example:
    runner = ProcessRunner(ApplicationKind.BASH)
    outcome = runner.run("echo Hello World")
    assert outcome.succeeded
    assert runner.stdout == ("Hello World",)
"""

from __future__ import annotations

import codecs
import logging
import os
from pathlib import Path

from .errors import DirectoryNotFoundError, UnsupportedApplicationError, UnsupportedEncodingError
from .logging_utils import LoggerLike, resolve_logger, trace
from .runtime.availability import is_available
from .runtime.capture import LineSink, capture, capture_async
from .runtime.invocation import InvocationStrategy, split_arguments, strategy_for
from .runtime.resolver import current_os_family, kind_from_executable, resolve
from .types import (
    DEFAULT_ENCODING,
    ApplicationKind,
    CapturedOutput,
    LaunchSpec,
    OSFamily,
    ProcessOutcome,
    RunnerConfig,
)

__all__ = ["ProcessRunner"]

logger = logging.getLogger(__name__)


def _check_working_directory(
    directory: str | os.PathLike[str] | None,
    log: LoggerLike,
) -> None:
    """Raise DirectoryNotFoundError unless directory is unset or exists."""
    if directory is None or not str(directory):
        return
    path = Path(directory)
    if not path.is_dir():
        log.error(f"Working directory '{path}' does not exist.")
        raise DirectoryNotFoundError(path)


class ProcessRunner:
    """Runs command text through a shell or an arbitrary application.

    Construction forms (all converge on the same validation):
        ProcessRunner()                          # OS default shell
        ProcessRunner(ApplicationKind.BASH)      # closed-set kind
        ProcessRunner("Bash") / ("/bin/sh")      # kind name or executable
        ProcessRunner("git")                     # arbitrary application
        ProcessRunner.from_config(RunnerConfig(executable="/bin/bash"))

    Attributes:
        kind: Shell kind used for quoting, None for arbitrary applications
    """

    def __init__(
        self,
        application: ApplicationKind | str | None = None,
        working_directory: str | os.PathLike[str] | None = None,
        stdout_redirect: bool = True,
        stderr_redirect: bool = True,
        *,
        encoding: str = DEFAULT_ENCODING,
        on_stdout: LineSink | None = None,
        on_stderr: LineSink | None = None,
        logger: LoggerLike | None = None,
        family: OSFamily | None = None,
    ) -> None:
        """Resolve `application` and validate the resulting configuration.

        Args:
            application: ApplicationKind, kind name, executable name/path,
                or None for the OS default shell
            working_directory: Directory the child runs in (None = current)
            stdout_redirect: Capture stdout (default True)
            stderr_redirect: Capture stderr (default True)
            encoding: Encoding used to decode captured output
            on_stdout: Optional callback per captured stdout line
            on_stderr: Optional callback per captured stderr line
            logger: Optional injected logger (defaults to the module logger)
            family: OS family override (defaults to the host)

        Raises:
            UnsupportedApplicationError: Unknown kind, or executable not found
            UnsupportedOperatingSystemError: Host OS is unsupported
            DirectoryNotFoundError: working_directory does not exist
            UnsupportedEncodingError: encoding is not a known codec
        """
        log = resolve_logger(logger, __name__)
        _check_working_directory(working_directory, log)
        family = current_os_family() if family is None else family
        resolved = resolve(application, family, logger=log)
        config = RunnerConfig(
            executable=resolved.executable,
            working_directory=working_directory,
            stdout_redirect=stdout_redirect,
            stderr_redirect=stderr_redirect,
            encoding=encoding,
        )
        self._setup(
            config,
            kind=resolved.kind,
            invocation=None,
            on_stdout=on_stdout,
            on_stderr=on_stderr,
            log=log,
            family=family,
        )

    @classmethod
    def from_config(
        cls,
        config: RunnerConfig,
        *,
        invocation: InvocationStrategy | None = None,
        on_stdout: LineSink | None = None,
        on_stderr: LineSink | None = None,
        logger: LoggerLike | None = None,
        family: OSFamily | None = None,
    ) -> "ProcessRunner":
        """Build a runner from a pre-built configuration.

        The config is copied and used as-is after validation. The invocation
        strategy defaults to the shell rules of the configured executable,
        or passthrough when it is not a known shell.
        """
        runner = cls.__new__(cls)
        family = current_os_family() if family is None else family
        runner._setup(
            config.copy(),
            kind=kind_from_executable(config.executable),
            invocation=invocation,
            on_stdout=on_stdout,
            on_stderr=on_stderr,
            log=resolve_logger(logger, __name__),
            family=family,
        )
        return runner

    def _setup(
        self,
        config: RunnerConfig,
        *,
        kind: ApplicationKind | None,
        invocation: InvocationStrategy | None,
        on_stdout: LineSink | None,
        on_stderr: LineSink | None,
        log: LoggerLike,
        family: OSFamily,
    ) -> None:
        self._log = log
        self._family = family
        self._config = config
        self.kind = kind
        self._invocation = invocation if invocation is not None else strategy_for(kind)
        self._on_stdout = on_stdout
        self._on_stderr = on_stderr
        self._output = CapturedOutput()
        trace(log, "Initialized with default settings.")

        directory = config.working_directory
        _check_working_directory(directory, log)

        try:
            codecs.lookup(config.encoding)
        except LookupError:
            log.error(f"Unknown output encoding: {config.encoding}")
            raise UnsupportedEncodingError(config.encoding) from None

        if not self.is_application_available(config.executable):
            log.error(f"Application '{config.executable}' not found on the system.")
            raise UnsupportedApplicationError(config.executable, "not found on the system")

        log.debug(
            f"Initialized with following info (Application: {config.executable}, "
            f"Working Directory: {directory or '<current>'}, "
            f"STDOutRedirect: {config.stdout_redirect}, "
            f"STDErrRedirect: {config.stderr_redirect})"
        )

    # =========================================================================
    # Configuration
    # =========================================================================

    @property
    def application_name(self) -> str:
        return self._config.executable

    @property
    def working_directory(self) -> Path | None:
        return self._config.working_directory

    @property
    def stdout_redirect(self) -> bool:
        return self._config.stdout_redirect

    @property
    def stderr_redirect(self) -> bool:
        return self._config.stderr_redirect

    @property
    def encoding(self) -> str:
        return self._config.encoding

    @property
    def config(self) -> RunnerConfig:
        """A copy of the current configuration."""
        return self._config.copy()

    def set_standard_output_redirect(self, redirect: bool) -> None:
        """Toggle stdout capture for subsequent runs."""
        self._config.stdout_redirect = redirect
        self._log.debug(f"STD Output Redirect: {redirect}")

    def set_standard_error_redirect(self, redirect: bool) -> None:
        """Toggle stderr capture for subsequent runs."""
        self._config.stderr_redirect = redirect
        self._log.debug(f"STD Error Redirect: {redirect}")

    def set_working_directory(self, path: str | os.PathLike[str]) -> None:
        """Set the working directory for subsequent runs.

        Raises:
            DirectoryNotFoundError: path does not exist
        """
        directory = Path(path)
        if not directory.is_dir():
            self._log.error(f"Directory does not exist: {path}")
            raise DirectoryNotFoundError(path)
        self._config.working_directory = directory
        self._log.debug(f"Working Directory: {directory}")

    def is_application_available(self, name: str) -> bool:
        """Advisory check that `name` can be found on this host. Never raises."""
        return is_available(name, self._family, logger=self._log)

    # =========================================================================
    # Output
    # =========================================================================

    @property
    def output(self) -> CapturedOutput:
        """Buffers of the most recent run."""
        return self._output

    @property
    def stdout(self) -> tuple[str, ...]:
        return tuple(self._output.stdout)

    @property
    def stderr(self) -> tuple[str, ...]:
        return tuple(self._output.stderr)

    # =========================================================================
    # Running
    # =========================================================================

    def _prepare(self, command_text: str) -> tuple[LaunchSpec | None, ProcessOutcome | None]:
        """Snapshot the config into a LaunchSpec and reset the buffers.

        Returns a DID_NOT_RUN outcome instead of a spec when the argument
        string cannot be split (unbalanced quotes).
        """
        self._output = CapturedOutput()
        arguments = self._invocation.build(command_text)
        command = f"{self._config.executable} {arguments}".rstrip()
        self._log.info(f"Running command: {command}")

        try:
            argv = [self._config.executable, *split_arguments(arguments, self._family)]
        except ValueError as e:
            self._log.error(f"Invalid arguments for command: {command} ({e})")
            return None, ProcessOutcome.did_not_run(command, e)

        spec = LaunchSpec(
            argv=argv,
            command=command,
            cwd=self._config.working_directory,
            stdout_redirect=self._config.stdout_redirect,
            stderr_redirect=self._config.stderr_redirect,
            encoding=self._config.encoding,
        )
        return spec, None

    def run(self, command_text: str, *, display: bool = False) -> ProcessOutcome:
        """Run command text and block until the child exits.

        Args:
            command_text: Text handed to the invocation strategy verbatim
            display: Echo captured lines to the console while running

        Returns:
            ProcessOutcome (SUCCESS, FAILED, or DID_NOT_RUN)
        """
        spec, failed = self._prepare(command_text)
        if spec is None:
            return failed
        return capture(
            spec,
            self._output,
            on_stdout=self._on_stdout,
            on_stderr=self._on_stderr,
            display=display,
            logger=self._log,
        )

    async def run_async(self, command_text: str, *, display: bool = False) -> ProcessOutcome:
        """Async counterpart of run() with the same outcome and buffers."""
        spec, failed = self._prepare(command_text)
        if spec is None:
            return failed
        return await capture_async(
            spec,
            self._output,
            on_stdout=self._on_stdout,
            on_stderr=self._on_stderr,
            display=display,
            logger=self._log,
        )

    def try_run(self, command_text: str, *, display: bool = False) -> bool:
        """Run and collapse the outcome to success/failure."""
        return self.run(command_text, display=display).succeeded

    async def try_run_async(self, command_text: str, *, display: bool = False) -> bool:
        outcome = await self.run_async(command_text, display=display)
        return outcome.succeeded

    def __repr__(self) -> str:
        return (
            f"ProcessRunner(application={self._config.executable!r}, "
            f"kind={self.kind.value if self.kind else None}, "
            f"working_directory={self._config.working_directory}, "
            f"stdout_redirect={self._config.stdout_redirect}, "
            f"stderr_redirect={self._config.stderr_redirect})"
        )
