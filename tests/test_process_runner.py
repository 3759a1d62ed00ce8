"""ProcessRunner unit tests.

Test coverage:
- Construction forms and fail-fast validation
- Basic command execution through the OS shell
- Failing commands and spawn failures
- Redirect toggles and working directory
- Buffer reset between runs
- Large concurrent stdout/stderr output (deadlock guard)
- Sync/async equivalence and try_run variants
"""

from __future__ import annotations

import logging
import shutil
import sys
from pathlib import Path

import pytest

from shellrun import (
    FAILED_TO_RUN_EXIT_CODE,
    ApplicationKind,
    DirectoryNotFoundError,
    ProcessRunner,
    ProcessStatus,
    RunnerConfig,
    ShellRunError,
    UnsupportedApplicationError,
    UnsupportedEncodingError,
)
from shellrun.runtime.invocation import PassthroughInvocation, ShellInvocation
from shellrun.runtime.resolver import default_kind

IS_WINDOWS = sys.platform == "win32"

posix_only = pytest.mark.skipif(IS_WINDOWS, reason="POSIX-specific test")


class _BrokenPipeConsole:
    """Console that behaves like a closed pipe (`shellrun ... | head -1`)."""

    def write(self, text: str) -> int:
        raise BrokenPipeError(32, "Broken pipe")

    def flush(self) -> None:
        raise BrokenPipeError(32, "Broken pipe")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def runner() -> ProcessRunner:
    """Runner for the OS default shell."""
    return ProcessRunner()


@pytest.fixture
def bash_runner() -> ProcessRunner:
    if IS_WINDOWS or shutil.which("/bin/bash") is None:
        pytest.skip("/bin/bash not available")
    return ProcessRunner(ApplicationKind.BASH)


# =============================================================================
# Construction Tests
# =============================================================================


class TestConstruction:
    """Test construction forms and validation."""

    def test_default_uses_os_kind(self, runner: ProcessRunner):
        assert runner.kind is default_kind()
        assert runner.stdout_redirect is True
        assert runner.stderr_redirect is True
        assert runner.working_directory is None

    @posix_only
    def test_by_kind(self):
        runner = ProcessRunner(ApplicationKind.SH)
        assert runner.application_name == "/bin/sh"
        assert runner.kind is ApplicationKind.SH

    @posix_only
    def test_by_kind_name(self):
        runner = ProcessRunner("Sh")
        assert runner.application_name == "/bin/sh"

    @posix_only
    def test_by_executable_path(self):
        runner = ProcessRunner("/bin/sh")
        assert runner.kind is ApplicationKind.SH

    @posix_only
    def test_arbitrary_application(self):
        runner = ProcessRunner("echo")
        assert runner.kind is None
        assert runner.application_name == "echo"

    def test_redirect_flags(self):
        runner = ProcessRunner(stdout_redirect=False, stderr_redirect=False)
        assert runner.stdout_redirect is False
        assert runner.stderr_redirect is False

    def test_working_directory(self, temp_workspace: Path):
        runner = ProcessRunner(working_directory=str(temp_workspace))
        assert runner.working_directory == temp_workspace

    def test_missing_application_fails_construction(self):
        with pytest.raises(UnsupportedApplicationError) as exc_info:
            ProcessRunner("definitely_not_an_app_xyz_123")
        assert "definitely_not_an_app_xyz_123" in str(exc_info.value)

    @posix_only
    def test_kind_unsupported_on_os(self):
        with pytest.raises(UnsupportedApplicationError):
            ProcessRunner(ApplicationKind.POWERSHELL)

    def test_missing_working_directory(self, tmp_path: Path):
        missing = tmp_path / "missing"
        with pytest.raises(DirectoryNotFoundError) as exc_info:
            ProcessRunner(working_directory=missing)
        assert exc_info.value.path == missing
        assert isinstance(exc_info.value, FileNotFoundError)

    @pytest.mark.parametrize(
        "application",
        [
            "definitely_not_an_app_xyz_123",
            "   ",
            ApplicationKind.POWERSHELL,
            ApplicationKind.SH,
        ],
    )
    def test_missing_working_directory_independent_of_application(
        self, tmp_path: Path, application: object
    ):
        """The directory is reported even when the application is also invalid."""
        with pytest.raises(DirectoryNotFoundError):
            ProcessRunner(application, tmp_path / "missing")

    def test_unknown_encoding(self):
        with pytest.raises(UnsupportedEncodingError) as exc_info:
            ProcessRunner(encoding="no-such-codec")
        assert exc_info.value.encoding == "no-such-codec"
        assert isinstance(exc_info.value, ShellRunError)
        assert isinstance(exc_info.value, LookupError)

    def test_blank_application_rejected(self):
        with pytest.raises(UnsupportedApplicationError):
            ProcessRunner("  ")


class TestFromConfig:
    """Test construction from a pre-built configuration."""

    @posix_only
    def test_config_used_as_is(self, temp_workspace: Path):
        config = RunnerConfig(
            executable="/bin/sh",
            working_directory=temp_workspace,
            stdout_redirect=False,
        )
        runner = ProcessRunner.from_config(config)

        assert runner.application_name == "/bin/sh"
        assert runner.kind is ApplicationKind.SH
        assert runner.working_directory == temp_workspace
        assert runner.stdout_redirect is False
        assert runner.stderr_redirect is True

    @posix_only
    def test_config_is_copied(self):
        config = RunnerConfig(executable="/bin/sh")
        runner = ProcessRunner.from_config(config)
        config.stdout_redirect = False
        assert runner.stdout_redirect is True

    def test_missing_executable(self):
        with pytest.raises(UnsupportedApplicationError):
            ProcessRunner.from_config(RunnerConfig(executable="definitely_not_an_app_xyz_123"))

    def test_missing_directory(self, tmp_path: Path):
        config = RunnerConfig(executable=sys.executable, working_directory=tmp_path / "nope")
        with pytest.raises(DirectoryNotFoundError):
            ProcessRunner.from_config(config)

    def test_unknown_encoding(self):
        config = RunnerConfig(executable=sys.executable, encoding="no-such-codec")
        with pytest.raises(UnsupportedEncodingError):
            ProcessRunner.from_config(config)

    def test_empty_working_directory_means_unset(self):
        config = RunnerConfig(executable=sys.executable, working_directory="")
        assert config.working_directory is None

    @posix_only
    def test_custom_invocation(self, python_exe: str):
        runner = ProcessRunner.from_config(
            RunnerConfig(executable=python_exe),
            invocation=PassthroughInvocation(),
        )
        outcome = runner.run("-c \"print('from python')\"")
        assert outcome.succeeded
        assert runner.stdout == ("from python",)

    @posix_only
    def test_unknown_executable_defaults_to_passthrough(self, python_exe: str):
        runner = ProcessRunner.from_config(RunnerConfig(executable=python_exe))
        assert runner.kind is None
        assert runner.run("-c \"import sys; sys.exit(4)\"").exit_code == 4

    @posix_only
    def test_shell_executable_gets_shell_invocation(self):
        runner = ProcessRunner.from_config(
            RunnerConfig(executable="/bin/sh"),
            invocation=ShellInvocation(ApplicationKind.SH),
        )
        assert runner.run("echo via config").succeeded
        assert runner.stdout == ("via config",)


# =============================================================================
# Basic Execution Tests
# =============================================================================


class TestBasicExecution:
    """Test running commands through the default shell."""

    def test_echo_round_trip(self, runner: ProcessRunner):
        outcome = runner.run("echo Hello World")

        assert outcome.status is ProcessStatus.SUCCESS
        assert outcome.exit_code == 0
        assert runner.stdout == ("Hello World",)
        assert runner.stderr == ()
        assert "echo Hello World" in outcome.message

    def test_failing_command(self, runner: ProcessRunner):
        outcome = runner.run("nonexistent_command_xyz_123")

        assert outcome.status is ProcessStatus.FAILED
        assert outcome.exit_code != 0
        assert runner.stdout == ()
        assert len(runner.stderr) > 0
        assert "nonexistent_command_xyz_123" in outcome.message

    @posix_only
    def test_exit_code_preserved(self, runner: ProcessRunner):
        outcome = runner.run("exit 42")
        assert outcome.status is ProcessStatus.FAILED
        assert outcome.exit_code == 42

    @posix_only
    def test_multiline_output(self, runner: ProcessRunner):
        runner.run("echo line1; echo line2; echo line3")
        assert runner.stdout == ("line1", "line2", "line3")

    @posix_only
    def test_stderr_output(self, runner: ProcessRunner):
        outcome = runner.run("echo problem >&2")
        assert outcome.succeeded
        assert runner.stdout == ()
        assert runner.stderr == ("problem",)

    @posix_only
    def test_command_text_not_escaped(self, bash_runner: ProcessRunner):
        """Single quotes pass straight through to the shell."""
        bash_runner.run("echo 'a  b'")
        assert bash_runner.stdout == ("a  b",)

    @posix_only
    def test_arbitrary_application_gets_raw_arguments(self):
        runner = ProcessRunner("echo")
        outcome = runner.run("Hello World")
        assert outcome.succeeded
        assert runner.stdout == ("Hello World",)

    def test_unbalanced_quotes_did_not_run(self, runner: ProcessRunner):
        outcome = runner.run('echo "oops')
        assert outcome.status is ProcessStatus.DID_NOT_RUN
        assert outcome.exit_code == FAILED_TO_RUN_EXIT_CODE

    def test_output_property(self, runner: ProcessRunner):
        runner.run("echo buffered")
        assert runner.output.stdout == ["buffered"]

    def test_display(self, runner: ProcessRunner, capsys: pytest.CaptureFixture[str]):
        runner.run("echo on screen", display=True)
        assert "on screen" in capsys.readouterr().out
        assert runner.stdout == ("on screen",)

    def test_line_callbacks(self):
        lines: list[str] = []
        runner = ProcessRunner(on_stdout=lines.append)
        runner.run("echo callback")
        assert lines == ["callback"]


# =============================================================================
# Spawn Failure Tests
# =============================================================================


class TestSpawnFailure:
    """Runs never raise; a process that cannot start is DID_NOT_RUN."""

    def test_working_directory_removed_before_run(self, temp_workspace: Path):
        runner = ProcessRunner(working_directory=temp_workspace)
        temp_workspace.rmdir()

        outcome = runner.run("echo unreachable")

        assert outcome.status is ProcessStatus.DID_NOT_RUN
        assert outcome.exit_code == FAILED_TO_RUN_EXIT_CODE
        assert runner.stdout == ()
        assert runner.try_run("echo unreachable") is False

    @pytest.mark.asyncio
    async def test_working_directory_removed_before_run_async(self, temp_workspace: Path):
        runner = ProcessRunner(working_directory=temp_workspace)
        temp_workspace.rmdir()

        outcome = await runner.run_async("echo unreachable")

        assert outcome.status is ProcessStatus.DID_NOT_RUN
        assert outcome.exit_code == FAILED_TO_RUN_EXIT_CODE
        assert await runner.try_run_async("echo unreachable") is False


# =============================================================================
# Configuration Tests
# =============================================================================


class TestConfiguration:
    """Test setters and their effect on later runs."""

    def test_stdout_redirect_toggle(self, runner: ProcessRunner):
        runner.set_standard_output_redirect(True)
        runner.set_standard_output_redirect(False)
        assert runner.stdout_redirect is False

        outcome = runner.run("echo not captured")
        assert outcome.succeeded
        assert runner.stdout == ()

    @posix_only
    def test_stderr_redirect_toggle(self, runner: ProcessRunner):
        runner.set_standard_error_redirect(False)
        runner.run("echo kept; echo lost >&2")
        assert runner.stdout == ("kept",)
        assert runner.stderr == ()

    def test_redirect_restored(self, runner: ProcessRunner):
        runner.set_standard_output_redirect(False)
        runner.set_standard_output_redirect(True)
        runner.run("echo back")
        assert runner.stdout == ("back",)

    def test_set_working_directory(self, runner: ProcessRunner, temp_workspace: Path):
        runner.set_working_directory(temp_workspace)
        assert runner.working_directory == temp_workspace

        runner.run("cd" if IS_WINDOWS else "pwd")
        assert Path(runner.stdout[0]).resolve() == temp_workspace.resolve()

    def test_set_missing_working_directory(self, runner: ProcessRunner, tmp_path: Path):
        with pytest.raises(DirectoryNotFoundError):
            runner.set_working_directory(tmp_path / "missing")
        assert runner.working_directory is None

    def test_config_property_is_a_copy(self, runner: ProcessRunner):
        config = runner.config
        config.stdout_redirect = False
        assert runner.stdout_redirect is True

    def test_is_application_available(self, runner: ProcessRunner):
        assert runner.is_application_available(runner.application_name) is True
        assert runner.is_application_available("definitely_not_an_app_xyz_123") is False

    def test_repr(self, runner: ProcessRunner):
        assert runner.application_name in repr(runner)


# =============================================================================
# Buffer Policy Tests
# =============================================================================


class TestBufferPolicy:
    """Buffers hold exactly the last run's output."""

    def test_buffers_reset_between_runs(self, runner: ProcessRunner):
        runner.run("echo first")
        runner.run("echo second")
        assert runner.stdout == ("second",)

    @pytest.mark.asyncio
    async def test_buffers_reset_between_async_runs(self, runner: ProcessRunner):
        await runner.run_async("echo first")
        await runner.run_async("echo second")
        assert runner.stdout == ("second",)

    def test_previous_output_object_untouched(self, runner: ProcessRunner):
        runner.run("echo first")
        previous = runner.output
        runner.run("echo second")
        assert previous.stdout == ["first"]


# =============================================================================
# Volume Tests
# =============================================================================


class TestLargeOutput:
    """Both streams in volume must not deadlock."""

    @posix_only
    @pytest.mark.timeout(60)
    def test_interleaved_streams(self, runner: ProcessRunner):
        count = 20000
        outcome = runner.run(
            f"i=0; while [ $i -lt {count} ]; do echo out$i; echo err$i >&2; i=$((i+1)); done"
        )

        assert outcome.succeeded
        assert len(runner.stdout) == count
        assert len(runner.stderr) == count
        assert runner.stdout[0] == "out0"
        assert runner.stdout[-1] == f"out{count - 1}"
        assert runner.stderr[-1] == f"err{count - 1}"

    @posix_only
    @pytest.mark.asyncio
    @pytest.mark.timeout(60)
    async def test_interleaved_streams_async(self, runner: ProcessRunner):
        count = 20000
        outcome = await runner.run_async(
            f"i=0; while [ $i -lt {count} ]; do echo out$i; echo err$i >&2; i=$((i+1)); done"
        )

        assert outcome.succeeded
        assert len(runner.stdout) == count
        assert len(runner.stderr) == count

    @posix_only
    @pytest.mark.timeout(60)
    def test_display_to_closed_console(
        self, runner: ProcessRunner, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setattr(sys, "stdout", _BrokenPipeConsole())
        count = 20000
        outcome = runner.run(
            f"i=0; while [ $i -lt {count} ]; do echo out$i; i=$((i+1)); done",
            display=True,
        )

        assert outcome.succeeded
        assert len(runner.stdout) == count
        assert runner.stdout[-1] == f"out{count - 1}"

    @posix_only
    @pytest.mark.asyncio
    @pytest.mark.timeout(60)
    async def test_display_to_closed_console_async(
        self, runner: ProcessRunner, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setattr(sys, "stdout", _BrokenPipeConsole())
        outcome = await runner.run_async("echo a; echo b", display=True)

        assert outcome.succeeded
        assert runner.stdout == ("a", "b")


# =============================================================================
# Async / Sync Equivalence Tests
# =============================================================================


class TestAsyncEquivalence:
    """run() and run_async() produce the same outcome and buffers."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "command",
        [
            "echo Hello World",
            "nonexistent_command_xyz_123",
        ],
    )
    async def test_same_outcome(self, runner: ProcessRunner, command: str):
        sync_outcome = runner.run(command)
        sync_stdout, sync_stderr = runner.stdout, runner.stderr

        async_outcome = await runner.run_async(command)

        assert async_outcome == sync_outcome
        assert runner.stdout == sync_stdout
        assert runner.stderr == sync_stderr

    @posix_only
    @pytest.mark.asyncio
    async def test_same_outcome_mixed_streams(self, runner: ProcessRunner):
        command = "echo a; echo b >&2; echo c; exit 5"
        sync_outcome = runner.run(command)
        sync_stdout, sync_stderr = runner.stdout, runner.stderr

        async_outcome = await runner.run_async(command)

        assert async_outcome == sync_outcome
        assert async_outcome.exit_code == 5
        assert runner.stdout == sync_stdout == ("a", "c")
        assert runner.stderr == sync_stderr == ("b",)

    def test_try_run(self, runner: ProcessRunner):
        assert runner.try_run("echo ok") is True
        assert runner.stdout == ("ok",)
        assert runner.try_run("nonexistent_command_xyz_123") is False
        assert len(runner.stderr) > 0

    @pytest.mark.asyncio
    async def test_try_run_async(self, runner: ProcessRunner):
        assert await runner.try_run_async("echo ok") is True
        assert runner.stdout == ("ok",)
        assert await runner.try_run_async("nonexistent_command_xyz_123") is False


# =============================================================================
# Logging Tests
# =============================================================================


class TestLogging:
    """The runner reports lifecycle events to the injected logger."""

    def test_injected_logger(self, caplog: pytest.LogCaptureFixture):
        injected = logging.getLogger("tests.injected")
        caplog.set_level(logging.DEBUG, logger="tests.injected")

        runner = ProcessRunner(logger=injected)
        runner.run("echo logged")

        messages = [r.getMessage() for r in caplog.records if r.name == "tests.injected"]
        assert any("Running command" in m for m in messages)
        assert any("Successfully ran command" in m for m in messages)

    def test_failure_logged_as_error(self, caplog: pytest.LogCaptureFixture):
        injected = logging.getLogger("tests.injected.errors")
        caplog.set_level(logging.DEBUG, logger="tests.injected.errors")

        runner = ProcessRunner(logger=injected)
        runner.run("nonexistent_command_xyz_123")

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert any("exited with code" in r.getMessage() for r in errors)
