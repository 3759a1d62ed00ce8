"""shellrun command-line entry point.

Usage:
    shellrun [--app NAME] [--cwd DIR] [--no-stdout-redirect]
             [--no-stderr-redirect] [--quiet] [--async] COMMAND...
    shellrun --check NAME

Exit status is the child's exit code. A process that could not be started
exits with 1; a runner that could not be constructed exits with 2.
"""

from __future__ import annotations

import argparse
import functools
import logging
import sys
from collections.abc import Sequence

import anyio

from . import __version__
from .config import Config, get_config
from .errors import ShellRunError
from .logging_utils import TRACE
from .runner import ProcessRunner
from .runtime.availability import is_available
from .types import ProcessStatus

__all__ = ["build_parser", "configure_logging", "main"]

logger = logging.getLogger(__name__)

EXIT_DID_NOT_RUN = 1
EXIT_CONSTRUCTION_ERROR = 2

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def build_parser(config: Config) -> argparse.ArgumentParser:
    """Argument parser whose defaults come from the environment config."""
    parser = argparse.ArgumentParser(
        prog="shellrun",
        description="Run a command through a shell and capture its output.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--app",
        default=config.application,
        help="Application kind (CMD, PowerShell, Bash, Sh), executable name or path",
    )
    parser.add_argument("--cwd", default=config.working_directory, help="Working directory")
    parser.add_argument(
        "--no-stdout-redirect",
        dest="stdout_redirect",
        action="store_false",
        default=config.stdout_redirect,
        help="Leave stdout attached to this console instead of capturing it",
    )
    parser.add_argument(
        "--no-stderr-redirect",
        dest="stderr_redirect",
        action="store_false",
        default=config.stderr_redirect,
        help="Leave stderr attached to this console instead of capturing it",
    )
    parser.add_argument("--quiet", action="store_true", help="Do not echo captured lines")
    parser.add_argument(
        "--async",
        dest="use_async",
        action="store_true",
        help="Use the asynchronous runner",
    )
    parser.add_argument("--check", metavar="NAME", help="Only check whether NAME is available")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command text")
    return parser


def configure_logging(config: Config) -> None:
    """Configure log output.

    LOG_DEBUG mode writes DEBUG records to a temp file; otherwise WARNING
    and above go to stderr. Only the shellrun namespace is raised above
    WARNING.
    """
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        log_handlers.append(stderr_handler)
        log_level = logging.WARNING

    if config.log_trace:
        log_level = TRACE

    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    logging.getLogger("shellrun").setLevel(log_level)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point. Returns the process exit status."""
    config = get_config()
    configure_logging(config)
    args = build_parser(config).parse_args(argv)

    if args.check:
        return 0 if is_available(args.check) else 1

    command_text = " ".join(args.command)
    try:
        runner = ProcessRunner(
            args.app,
            args.cwd,
            args.stdout_redirect,
            args.stderr_redirect,
            encoding=config.encoding,
        )
    except ShellRunError as e:
        print(f"shellrun: {e}", file=sys.stderr)
        return EXIT_CONSTRUCTION_ERROR

    logger.debug(f"Starting with {config} runner={runner!r}")
    display = not args.quiet
    if args.use_async:
        outcome = anyio.run(functools.partial(runner.run_async, command_text, display=display))
    else:
        outcome = runner.run(command_text, display=display)

    if outcome.status is ProcessStatus.DID_NOT_RUN:
        print(f"shellrun: {outcome.message}", file=sys.stderr)
        return EXIT_DID_NOT_RUN
    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
