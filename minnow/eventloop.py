"""An event loop that polls file descriptors and runs callbacks for ready ones."""

from __future__ import annotations

import errno
import select
import socket
import sys
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from minnow.errors import UnixError
from minnow.file_descriptor import FileDescriptor

Callback = Callable[[], None]
Interest = Callable[[], bool]

MAX_CATEGORIES = 64
_MAX_ITERATIONS = 128
_ERROR_EVENTS = select.POLLERR | select.POLLHUP | select.POLLNVAL


def _always() -> bool:
    return True


def _nothing() -> None:
    return None


class Direction(Enum):
    """Whether a rule waits for its descriptor to be readable or writable."""

    IN = "in"
    OUT = "out"


class Result(Enum):
    """The outcome of one call to ``EventLoop.wait_next_event``."""

    SUCCESS = "success"  # a rule was served
    TIMEOUT = "timeout"  # nothing happened before the timeout
    EXIT = "exit"  # nothing is left to wait for


@dataclass(eq=False, kw_only=True)
class _Rule:
    category_id: int
    interest: Interest
    callback: Callback
    cancel_requested: bool = False


@dataclass(eq=False, kw_only=True)
class _FDRule(_Rule):
    fd: FileDescriptor
    direction: Direction
    on_cancel: Callback
    on_error: Callback

    def service_count(self) -> int:
        """How often the descriptor has been read or written, per the rule's direction."""
        if self.direction is Direction.IN:
            return self.fd.read_count()
        return self.fd.write_count()


class RuleHandle:
    """A weak handle on a rule, used to cancel it."""

    def __init__(self, rule: _Rule) -> None:
        self._rule = weakref.ref(rule)

    def cancel(self) -> None:
        """Ask the loop to drop the rule; its cancel callback is not run."""
        rule = self._rule()
        if rule is not None:
            rule.cancel_requested = True


def _socket_error(fd_num: int) -> Optional[int]:
    """The pending error of a socket, or None if the descriptor is not a socket."""
    try:
        sock = socket.socket(fileno=fd_num)
    except OSError as exc:
        if exc.errno == errno.ENOTSOCK:
            return None
        raise UnixError("getsockopt", exc.errno or 0) from exc
    try:
        return sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
    except OSError as exc:
        if exc.errno == errno.ENOTSOCK:
            return None
        raise UnixError("getsockopt", exc.errno or 0) from exc
    finally:
        sock.detach()


class EventLoop:
    """Runs callbacks for rules whose conditions hold, one rule per call."""

    def __init__(self) -> None:
        self._categories: list[str] = []
        self._rules: list[_Rule] = []
        self._fd_rules: list[_FDRule] = []

    def add_category(self, name: str) -> int:
        """Register a category name for rules and return its id."""
        if len(self._categories) >= MAX_CATEGORIES:
            raise RuntimeError("maximum categories reached")
        self._categories.append(name)
        return len(self._categories) - 1

    def _category_id(self, category: Union[int, str]) -> int:
        if isinstance(category, str):
            return self.add_category(category)
        if not 0 <= category < len(self._categories):
            raise IndexError("bad category_id")
        return category

    def _name(self, rule: _Rule) -> str:
        return self._categories[rule.category_id]

    def add_rule(
        self,
        category: Union[int, str],
        callback: Callback,
        interest: Interest = _always,
    ) -> RuleHandle:
        """Add a rule that runs ``callback`` whenever ``interest`` holds.

        ``category`` is a category id, or a name for a new category.
        """
        rule = _Rule(category_id=self._category_id(category), interest=interest, callback=callback)
        self._rules.append(rule)
        return RuleHandle(rule)

    def add_fd_rule(
        self,
        category: Union[int, str],
        fd: FileDescriptor,
        direction: Direction,
        callback: Callback,
        interest: Interest = _always,
        cancel: Callback = _nothing,
        error: Callback = _nothing,
    ) -> RuleHandle:
        """Add a rule that runs ``callback`` when ``fd`` is ready in ``direction``.

        ``cancel`` runs when the rule ends on its own (EOF, hangup, close);
        ``error`` runs first when the descriptor reports an error.
        """
        rule = _FDRule(
            category_id=self._category_id(category),
            interest=interest,
            callback=callback,
            fd=fd.duplicate(),
            direction=direction,
            on_cancel=cancel,
            on_error=error,
        )
        self._fd_rules.append(rule)
        return RuleHandle(rule)

    def _serve_plain_rules(self) -> bool:
        for rule in list(self._rules):
            if rule.cancel_requested:
                self._rules.remove(rule)
                continue
            fired = False
            iterations = 0
            while rule.interest():
                if iterations >= _MAX_ITERATIONS:
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        f"is still interested after {iterations + 1} iterations"
                    )
                iterations += 1
                fired = True
                rule.callback()
            if fired:
                return True
        return False

    def _report_error(self, rule: _FDRule) -> None:
        socket_error = _socket_error(rule.fd.fd_num())
        if socket_error is None:
            print(
                f'error on polled file descriptor for rule "{self._name(rule)}"',
                file=sys.stderr,
            )
        elif socket_error:
            print(
                f'error on polled socket for rule "{self._name(rule)}": '
                f"{UnixError('socket', socket_error).description}",
                file=sys.stderr,
            )

    def wait_next_event(self, timeout_ms: int) -> Result:
        """Serve at most one rule, waiting up to ``timeout_ms`` (negative: forever)."""
        if self._serve_plain_rules():
            return Result.SUCCESS

        polled: list[tuple[_FDRule, int]] = []
        something_to_poll = False
        for rule in list(self._fd_rules):
            if rule.cancel_requested:
                self._fd_rules.remove(rule)
                continue
            if (rule.direction is Direction.IN and rule.fd.eof()) or rule.fd.closed():
                rule.on_cancel()
                self._fd_rules.remove(rule)
                continue
            if rule.interest():
                events = select.POLLIN if rule.direction is Direction.IN else select.POLLOUT
                something_to_poll = True
            else:
                events = 0  # still wanted for errors
            polled.append((rule, events))

        if not something_to_poll:
            return Result.EXIT

        masks: dict[int, int] = {}
        for rule, events in polled:
            fd_num = rule.fd.fd_num()
            masks[fd_num] = masks.get(fd_num, 0) | events
        poller = select.poll()
        for fd_num, mask in masks.items():
            poller.register(fd_num, mask)
        try:
            ready = poller.poll(timeout_ms)
        except OSError as exc:
            raise UnixError("poll", exc.errno or 0) from exc
        if not ready:
            return Result.TIMEOUT
        revents_by_fd = dict(ready)

        for rule, events in polled:
            revents = revents_by_fd.get(rule.fd.fd_num(), 0) & (events | _ERROR_EVENTS)

            if revents & (select.POLLERR | select.POLLNVAL):
                self._report_error(rule)
                rule.on_error()
                rule.on_cancel()
                self._fd_rules.remove(rule)
                continue

            poll_ready = bool(revents & events)
            poll_hup = bool(revents & select.POLLHUP)
            if poll_hup and ((events and not poll_ready) or rule.direction is Direction.OUT):
                rule.on_cancel()
                self._fd_rules.remove(rule)
                continue

            if poll_ready:
                count_before = rule.service_count()
                rule.callback()
                if (
                    count_before == rule.service_count()
                    and not rule.fd.closed()
                    and rule.interest()
                ):
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        "did not read/write fd and is still interested"
                    )
                return Result.SUCCESS

        return Result.SUCCESS