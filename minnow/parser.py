"""Big-endian parsing from, and serialisation to, lists of byte buffers."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]
Buffers = Union[BytesLike, Iterable[BytesLike]]


def _as_buffers(data: Buffers) -> list[bytes]:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return [bytes(data)]
    return [bytes(chunk) for chunk in data]


class Parser:
    """Reads big-endian integers and byte strings from a sequence of buffers.

    Running out of input does not raise: it marks the parser as failed,
    and every later read returns zeros.
    """

    def __init__(self, buffers: Buffers) -> None:
        self._buffers: deque[bytes] = deque(chunk for chunk in _as_buffers(buffers) if chunk)
        self._size = sum(len(chunk) for chunk in self._buffers)
        self._error = False

    def __len__(self) -> int:
        return self._size

    def has_error(self) -> bool:
        return self._error

    def set_error(self) -> None:
        self._error = True

    def _check_size(self, size: int) -> None:
        if size > self._size:
            self._error = True

    def remove_prefix(self, n: int) -> None:
        """Discard up to ``n`` bytes from the front of the input."""
        while n > 0 and self._buffers:
            front = self._buffers[0]
            if n >= len(front):
                self._buffers.popleft()
                self._size -= len(front)
                n -= len(front)
            else:
                self._buffers[0] = front[n:]
                self._size -= n
                n = 0

    def truncate(self, length: int) -> None:
        """Keep only the first ``length`` bytes of the remaining input."""
        if self._size <= length:
            return
        kept: deque[bytes] = deque()
        total = 0
        for chunk in self._buffers:
            if total >= length:
                break
            take = min(len(chunk), length - total)
            kept.append(chunk[:take])
            total += take
        self._buffers = kept
        self._size = length

    def all_remaining(self) -> list[bytes]:
        """Take every remaining buffer, leaving the parser empty."""
        remaining = list(self._buffers)
        self._buffers.clear()
        self._size = 0
        return remaining

    def buffer(self) -> list[bytes]:
        """The remaining buffers, without consuming them."""
        return list(self._buffers)

    def _take(self, size: int) -> bytes:
        pieces = []
        while size > 0:
            front = self._buffers[0]
            piece = front[:size]
            pieces.append(piece)
            self.remove_prefix(len(piece))
            size -= len(piece)
        return b"".join(pieces)

    def string(self, size: int) -> bytes:
        """Read exactly ``size`` bytes (zeros if the input is too short)."""
        self._check_size(size)
        if self._error:
            return bytes(size)
        return self._take(size)

    def concatenate_all_remaining(self) -> bytes:
        return b"".join(self.all_remaining())

    def integer(self, width: int) -> int:
        """Read an unsigned big-endian integer of ``width`` bytes."""
        if width < 1:
            raise ValueError("integer width must be positive")
        self._check_size(width)
        if self._error:
            return 0
        return int.from_bytes(self._take(width), "big")


class Serializer:
    """Builds a list of byte buffers from integers and existing buffers."""

    def __init__(self) -> None:
        self._output: list[bytes] = []
        self._pending = bytearray()

    def _flush(self) -> None:
        if self._pending:
            self._output.append(bytes(self._pending))
            self._pending.clear()

    def integer(self, value: int, width: int) -> None:
        """Append ``value`` as a big-endian integer of ``width`` bytes (truncated to fit)."""
        if width < 1:
            raise ValueError("integer width must be positive")
        self._pending += (value % (1 << (8 * width))).to_bytes(width, "big")

    def buffer(self, data: Buffers) -> None:
        """Append a buffer, or each buffer of an iterable, as separate output buffers."""
        if isinstance(data, (bytes, bytearray, memoryview)):
            if data:
                self._flush()
                self._output.append(bytes(data))
            return
        for chunk in data:
            self.buffer(chunk)

    def finish(self) -> list[bytes]:
        self._flush()
        output, self._output = self._output, []
        return output