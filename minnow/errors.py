"""Exceptions for failed system operations."""

from __future__ import annotations

import os
from typing import Optional, TypeVar

T = TypeVar("T")


class TaggedError(Exception):
    """An error code together with a description of what was being attempted."""

    def __init__(self, attempt: str, error_code: int, description: str) -> None:
        super().__init__(f"{attempt}: {description}")
        self.attempt = attempt
        self.error_code = error_code
        self.description = description


class UnixError(TaggedError):
    """A failed system call, described by its errno."""

    def __init__(self, attempt: str, errno_value: int) -> None:
        super().__init__(attempt, errno_value, os.strerror(errno_value))


def check_system_call(attempt: str, return_value: int) -> int:
    """Return a non-negative result; a negative one is taken as a negated errno and raised."""
    if return_value >= 0:
        return return_value
    raise UnixError(attempt, -return_value)


def not_null(context: str, value: Optional[T]) -> T:
    """Return ``value``, raising if it is None."""
    if value is None:
        raise RuntimeError(f"{context}: returned null pointer")
    return value