"""Invocation builder.

Turns command text into the argument string a shell expects, and that
argument string into an argv list.

Quoting per kind:
- CMD:          /c {command}
- POWERSHELL:   -Command "{command}"
- BASH, SH:     -c "{command}"

The command text is inserted verbatim. Embedded quotes and shell
metacharacters are NOT escaped; callers are responsible for the safety of
the text they pass.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Protocol

from ..errors import UnsupportedApplicationError
from ..types import ApplicationKind, OSFamily
from .resolver import current_os_family

__all__ = [
    "InvocationStrategy",
    "ShellInvocation",
    "PassthroughInvocation",
    "build_arguments",
    "split_arguments",
    "strategy_for",
]


def build_arguments(kind: ApplicationKind, command_text: str) -> str:
    """Build the argument string for running `command_text` under `kind`.

    Pure: identical inputs always produce identical output.

    Raises:
        UnsupportedApplicationError: `kind` is not an ApplicationKind
    """
    if kind is ApplicationKind.CMD:
        return f"/c {command_text}"
    if kind is ApplicationKind.POWERSHELL:
        return f'-Command "{command_text}"'
    if kind is ApplicationKind.BASH or kind is ApplicationKind.SH:
        return f'-c "{command_text}"'
    raise UnsupportedApplicationError(kind, "has no invocation rule")


def split_arguments(arguments: str, family: OSFamily | None = None) -> list[str]:
    """Split an argument string into argv tokens.

    Double and single quotes group words and are removed, matching how the
    child would see its arguments. On Windows backslashes are kept literally
    so paths survive.

    Raises:
        ValueError: Unbalanced quotes
    """
    family = current_os_family() if family is None else family
    if family.is_posix:
        return shlex.split(arguments)

    lexer = shlex.shlex(arguments, posix=True)
    lexer.whitespace_split = True
    lexer.escape = ""
    lexer.commenters = ""
    return list(lexer)


class InvocationStrategy(Protocol):
    """Builds the argument string for one run."""

    def build(self, command_text: str) -> str: ...


@dataclass(frozen=True)
class ShellInvocation:
    """Wraps command text the way a known shell expects."""

    kind: ApplicationKind

    def build(self, command_text: str) -> str:
        return build_arguments(self.kind, command_text)


@dataclass(frozen=True)
class PassthroughInvocation:
    """Hands command text to an arbitrary application as its arguments."""

    def build(self, command_text: str) -> str:
        return command_text


def strategy_for(kind: ApplicationKind | None) -> InvocationStrategy:
    """Shell quoting for known kinds, passthrough otherwise."""
    if kind is None:
        return PassthroughInvocation()
    return ShellInvocation(kind)
