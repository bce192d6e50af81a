"""Debug output that goes to stderr unless a handler has been installed."""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

Handler = Callable[[str], None]


def _default_handler(message: str) -> None:
    print(f"DEBUG: {message}", file=sys.stderr)


@dataclass
class _DebugState:
    handler: Handler = _default_handler


_state = _DebugState()


def debug_str(message: str) -> None:
    """Pass a message to the current debug handler."""
    _state.handler(message)


def debug(fmt: str, *args: Any, **kwargs: Any) -> None:
    """Format with ``str.format`` and emit; does nothing when optimisations are on."""
    if __debug__:
        debug_str(fmt.format(*args, **kwargs))


def set_debug_handler(handler: Handler) -> None:
    """Route debug messages to ``handler``."""
    _state.handler = handler


def reset_debug_handler() -> None:
    """Send debug messages to stderr again."""
    _state.handler = _default_handler