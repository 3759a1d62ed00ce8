"""Stream capture engine.

Spawns one child process, drains its redirected stdout/stderr into line
buffers and reports the exit status.

Key design points:
- When both streams are redirected they are drained concurrently. Reading
  one to EOF before the other can block the child forever on a full pipe.
- Draining starts before the process is waited on, never after.
- Sync variant: one reader thread per redirected stream.
- Async variant: one anyio task per redirected stream, joined by a task
  group before the exit wait.
- A stream that is not redirected is inherited from the parent and its
  buffer stays empty.
- No timeout or cancellation: both variants return only after exit.

Per-invocation states:
    NOT_STARTED -> SPAWNING -> (SPAWN_FAILED | RUNNING) -> DRAINING
    -> EXITED -> REPORTED
"""

from __future__ import annotations

import codecs
import subprocess
import sys
import threading
from collections.abc import Callable
from enum import Enum
from typing import IO

import anyio
from anyio.abc import ByteReceiveStream
from anyio.streams.text import TextReceiveStream

from ..logging_utils import LoggerLike, resolve_logger, trace
from ..types import CapturedOutput, LaunchSpec, ProcessOutcome

__all__ = [
    "CaptureState",
    "LineSink",
    "capture",
    "capture_async",
]

# Callback invoked once per captured line (without the line terminator)
LineSink = Callable[[str], None]

_CHUNK_SIZE = 65536


class CaptureState(Enum):
    """Lifecycle of one invocation."""

    NOT_STARTED = "not_started"
    SPAWNING = "spawning"
    SPAWN_FAILED = "spawn_failed"
    RUNNING = "running"
    DRAINING = "draining"
    EXITED = "exited"
    REPORTED = "reported"


class _LineSplitter:
    """Assembles decoded text chunks into whole lines.

    Splits on "\\n", drops one trailing "\\r", and emits an unterminated
    final line when the stream ends.
    """

    def __init__(self, emit: LineSink) -> None:
        self._emit = emit
        self._pending = ""

    def feed(self, text: str) -> None:
        if not text:
            return
        lines = (self._pending + text).split("\n")
        self._pending = lines.pop()
        for line in lines:
            self._emit(_strip_cr(line))

    def close(self) -> None:
        if self._pending:
            self._emit(_strip_cr(self._pending))
            self._pending = ""


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


def _echo_stdout(line: str) -> None:
    print(line, file=sys.stdout, flush=True)


def _echo_stderr(line: str) -> None:
    print(line, file=sys.stderr, flush=True)


def _make_sink(
    buffer: list[str],
    stream_name: str,
    external: LineSink | None,
    echo: LineSink | None,
    log: LoggerLike,
) -> LineSink:
    """Buffer append is always wired in; the external sink and echo are layered on top.

    The returned sink never raises, so a reader always drains to EOF. A
    failing echo (a closed console or an encoding error) is turned off for
    the rest of the run.
    """
    echoing = echo is not None

    def sink(line: str) -> None:
        nonlocal echoing
        buffer.append(line)
        trace(log, "%s : %s", stream_name, line)
        if external is not None:
            try:
                external(line)
            except Exception as e:
                log.warning(f"{stream_name} line callback failed: {e}")
        if echoing:
            try:
                echo(line)
            except Exception as e:
                echoing = False
                log.warning(f"{stream_name} console echo failed, echo disabled: {e}")

    return sink


def _build_sinks(
    output: CapturedOutput,
    on_stdout: LineSink | None,
    on_stderr: LineSink | None,
    display: bool,
    log: LoggerLike,
) -> tuple[LineSink, LineSink]:
    return (
        _make_sink(output.stdout, "STDOutput", on_stdout, _echo_stdout if display else None, log),
        _make_sink(output.stderr, "STDError", on_stderr, _echo_stderr if display else None, log),
    )


def _report(
    spec: LaunchSpec,
    exit_code: int,
    log: LoggerLike,
) -> ProcessOutcome:
    outcome = ProcessOutcome.from_exit_code(exit_code, spec.command)
    if outcome.succeeded:
        log.info(f"Successfully ran command: {spec.command}")
    else:
        log.error(f"Command exited with code {exit_code}: {spec.command}")
    trace(log, "state=%s", CaptureState.REPORTED.value)
    return outcome


def _spawn_failed(spec: LaunchSpec, error: BaseException, log: LoggerLike) -> ProcessOutcome:
    log.error(f"Process failed to start: {spec.command} ({error})")
    trace(log, "state=%s", CaptureState.SPAWN_FAILED.value)
    return ProcessOutcome.did_not_run(spec.command, error)


def _unknown_encoding(spec: LaunchSpec, log: LoggerLike) -> ProcessOutcome | None:
    """DID_NOT_RUN outcome when the output encoding is not a known codec."""
    try:
        codecs.lookup(spec.encoding)
    except LookupError as e:
        return _spawn_failed(spec, e, log)
    return None


# =============================================================================
# Synchronous variant
# =============================================================================


def _drain(stream: IO[bytes], sink: LineSink, encoding: str) -> None:
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    splitter = _LineSplitter(sink)
    read = getattr(stream, "read1", stream.read)
    while True:
        chunk = read(_CHUNK_SIZE)
        if not chunk:
            break
        splitter.feed(decoder.decode(chunk))
    splitter.feed(decoder.decode(b"", final=True))
    splitter.close()


def _start_reader(
    stream: IO[bytes],
    sink: LineSink,
    encoding: str,
    name: str,
) -> threading.Thread:
    reader = threading.Thread(
        target=_drain,
        args=(stream, sink, encoding),
        name=f"shellrun-{name}-reader",
        daemon=True,
    )
    reader.start()
    return reader


def capture(
    spec: LaunchSpec,
    output: CapturedOutput,
    *,
    on_stdout: LineSink | None = None,
    on_stderr: LineSink | None = None,
    display: bool = False,
    logger: LoggerLike | None = None,
) -> ProcessOutcome:
    """Spawn the process, drain its streams and block until it exits.

    Args:
        spec: Launch snapshot
        output: Buffers that receive the captured lines
        on_stdout: Optional per-line stdout callback (called from a reader thread)
        on_stderr: Optional per-line stderr callback (called from a reader thread)
        display: Echo captured lines to the console as they arrive
        logger: Optional injected logger

    Returns:
        ProcessOutcome; spawn failures are reported as DID_NOT_RUN
    """
    log = resolve_logger(logger, __name__)
    trace(log, "state=%s argv=%s cwd=%s", CaptureState.SPAWNING.value, spec.argv, spec.cwd)
    failed = _unknown_encoding(spec, log)
    if failed is not None:
        return failed

    try:
        process = subprocess.Popen(
            spec.argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE if spec.stdout_redirect else None,
            stderr=subprocess.PIPE if spec.stderr_redirect else None,
            cwd=spec.cwd,
        )
    except (OSError, ValueError) as e:
        return _spawn_failed(spec, e, log)

    log.debug(f"Started subprocess pid={process.pid} argv={spec.argv[0]} cwd={spec.cwd}")
    stdout_sink, stderr_sink = _build_sinks(output, on_stdout, on_stderr, display, log)

    with process:
        readers: list[threading.Thread] = []
        if process.stdout is not None:
            readers.append(_start_reader(process.stdout, stdout_sink, spec.encoding, "stdout"))
        if process.stderr is not None:
            readers.append(_start_reader(process.stderr, stderr_sink, spec.encoding, "stderr"))
        trace(log, "state=%s readers=%d", CaptureState.DRAINING.value, len(readers))

        for reader in readers:
            reader.join()
        exit_code = process.wait()

    log.debug(f"Subprocess completed pid={process.pid} returncode={exit_code}")
    trace(log, "state=%s", CaptureState.EXITED.value)
    return _report(spec, exit_code, log)


# =============================================================================
# Asynchronous variant
# =============================================================================


async def _drain_async(stream: ByteReceiveStream, sink: LineSink, encoding: str) -> None:
    splitter = _LineSplitter(sink)
    async for text in TextReceiveStream(stream, encoding=encoding, errors="replace"):
        splitter.feed(text)
    splitter.close()


async def capture_async(
    spec: LaunchSpec,
    output: CapturedOutput,
    *,
    on_stdout: LineSink | None = None,
    on_stderr: LineSink | None = None,
    display: bool = False,
    logger: LoggerLike | None = None,
) -> ProcessOutcome:
    """Async counterpart of capture() with the same observable results.

    Suspends at each stream read, at the join of both drain tasks, and at
    the final exit wait.
    """
    log = resolve_logger(logger, __name__)
    trace(log, "state=%s argv=%s cwd=%s", CaptureState.SPAWNING.value, spec.argv, spec.cwd)
    failed = _unknown_encoding(spec, log)
    if failed is not None:
        return failed

    try:
        process = await anyio.open_process(
            spec.argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE if spec.stdout_redirect else None,
            stderr=subprocess.PIPE if spec.stderr_redirect else None,
            cwd=spec.cwd,
        )
    except (OSError, ValueError) as e:
        return _spawn_failed(spec, e, log)

    log.debug(f"Started subprocess pid={process.pid} argv={spec.argv[0]} cwd={spec.cwd}")
    stdout_sink, stderr_sink = _build_sinks(output, on_stdout, on_stderr, display, log)

    async with process:
        async with anyio.create_task_group() as tg:
            if process.stdout is not None:
                tg.start_soon(_drain_async, process.stdout, stdout_sink, spec.encoding)
            if process.stderr is not None:
                tg.start_soon(_drain_async, process.stderr, stderr_sink, spec.encoding)
            trace(log, "state=%s", CaptureState.DRAINING.value)
        exit_code = await process.wait()

    log.debug(f"Subprocess completed pid={process.pid} returncode={exit_code}")
    trace(log, "state=%s", CaptureState.EXITED.value)
    return _report(spec, exit_code, log)
