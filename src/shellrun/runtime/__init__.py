"""Runtime module for application resolution and process execution.

This module provides executable resolution, availability probing,
shell invocation building, and deadlock-free stream capture.
"""

from __future__ import annotations

from .availability import is_available, lookup_utility
from .capture import CaptureState, LineSink, capture, capture_async
from .invocation import (
    InvocationStrategy,
    PassthroughInvocation,
    ShellInvocation,
    build_arguments,
    split_arguments,
    strategy_for,
)
from .resolver import (
    ResolvedApplication,
    current_os_family,
    default_kind,
    executable_for,
    kind_from_executable,
    parse_kind,
    resolve,
)

__all__ = [
    "CaptureState",
    "InvocationStrategy",
    "LineSink",
    "PassthroughInvocation",
    "ResolvedApplication",
    "ShellInvocation",
    "build_arguments",
    "capture",
    "capture_async",
    "current_os_family",
    "default_kind",
    "executable_for",
    "is_available",
    "kind_from_executable",
    "lookup_utility",
    "parse_kind",
    "resolve",
    "split_arguments",
    "strategy_for",
]
