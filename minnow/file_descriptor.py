"""A shared, reference-counted handle to an operating-system file descriptor."""

from __future__ import annotations

import errno
import os
import sys
from collections.abc import Iterable, Sequence
from typing import Any, Callable, Optional, Union

from minnow.errors import UnixError

READ_BUFFER_SIZE = 16384

_WOULD_BLOCK = {errno.EAGAIN, errno.EWOULDBLOCK, errno.EINPROGRESS}

BytesLike = Union[bytes, bytearray, memoryview]


class _FDWrapper:
    """The kernel descriptor itself, with its state; closed when no longer referenced."""

    def __init__(self, fd: int) -> None:
        if fd < 0:
            raise ValueError(f"invalid fd number:{fd}")
        try:
            blocking = os.get_blocking(fd)
        except OSError as exc:
            raise UnixError("fcntl", exc.errno or 0) from exc
        self.fd = fd
        self.eof = False
        self.closed = False
        self.non_blocking = not blocking
        self.read_count = 0
        self.write_count = 0

    def close(self) -> None:
        try:
            os.close(self.fd)
        except OSError as exc:
            raise UnixError("close", exc.errno or 0) from exc
        self.eof = self.closed = True

    def __del__(self) -> None:
        if getattr(self, "closed", True):
            return
        try:
            self.close()
        except UnixError as exc:
            print(f"Exception destructing FDWrapper: {exc}", file=sys.stderr)


def _total_size(buffers: Sequence[BytesLike]) -> int:
    if not buffers:
        raise ValueError("buffer list is empty")
    total = 0
    for buf in buffers:
        if len(buf) == 0:
            raise ValueError("empty buffer in buffer list")
        total += len(buf)
    return total


class FileDescriptor:
    """A handle on a file descriptor, shared by every duplicate of it.

    The descriptor is closed explicitly, on leaving a ``with`` block, or when
    the last handle is garbage-collected.
    """

    def __init__(self, fd: Union[int, FileDescriptor]) -> None:
        if isinstance(fd, FileDescriptor):
            self._wrapper = fd._wrapper
        else:
            self._wrapper = _FDWrapper(fd)

    def __enter__(self) -> FileDescriptor:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if not self.closed():
            self.close()

    # state

    def fd_num(self) -> int:
        return self._wrapper.fd

    def eof(self) -> bool:
        return self._wrapper.eof

    def closed(self) -> bool:
        return self._wrapper.closed

    def blocking(self) -> bool:
        return not self._wrapper.non_blocking

    def read_count(self) -> int:
        return self._wrapper.read_count

    def write_count(self) -> int:
        return self._wrapper.write_count

    def _set_eof(self) -> None:
        self._wrapper.eof = True

    def _register_read(self) -> None:
        self._wrapper.read_count += 1

    def _register_write(self) -> None:
        self._wrapper.write_count += 1

    def _call(self, what: str, func: Callable[..., Any], *args: Any) -> Optional[Any]:
        """Run a system call; None if a non-blocking descriptor would have blocked."""
        try:
            return func(*args)
        except OSError as exc:
            if self._wrapper.non_blocking and exc.errno in _WOULD_BLOCK:
                return None
            raise UnixError(what, exc.errno or 0) from exc

    # operations

    def duplicate(self) -> FileDescriptor:
        """Another handle on the same descriptor."""
        return FileDescriptor(self)

    def close(self) -> None:
        self._wrapper.close()

    def read(self, size: int = 0) -> bytes:
        """Read up to ``size`` bytes (a default-sized read when 0)."""
        if size < 0:
            raise ValueError("read size must not be negative")
        size = size or READ_BUFFER_SIZE
        data = self._call("read", os.read, self.fd_num(), size)
        if data is None:
            data = b""
        elif not data:
            self._set_eof()
        self._register_read()
        if len(data) > size:
            raise RuntimeError("read() read more than requested")
        return data

    def read_buffers(self, sizes: Iterable[int]) -> list[bytes]:
        """Scatter one read over buffers of the given sizes; a final 0 means a default size.

        Returns one bytes object per buffer, trimmed to what was read into it.
        """
        sizes = list(sizes)
        if not sizes:
            raise ValueError("FileDescriptor.read_buffers called with no buffers")
        if sizes[-1] == 0:
            sizes[-1] = READ_BUFFER_SIZE
        buffers = [bytearray(size) for size in sizes]
        total = _total_size(buffers)

        count = self._call("readv", os.readv, self.fd_num(), buffers)
        if count is None:
            count = 0
        elif count == 0:
            self._set_eof()
        self._register_read()
        if count > total:
            raise RuntimeError("read() read more than requested")

        result = []
        remaining = count
        for buf in buffers:
            take = min(len(buf), remaining)
            result.append(bytes(buf[:take]))
            remaining -= take
        return result

    def write(self, data: BytesLike) -> int:
        """Write from ``data`` and return how many bytes were written."""
        written = self._call("write", os.write, self.fd_num(), data)
        written = written or 0
        self._register_write()
        if written == 0 and len(data) > 0:
            raise RuntimeError("write returned 0 given non-empty input buffer")
        if written > len(data):
            raise RuntimeError("write wrote more than length of input buffer")
        return written

    def write_buffers(self, buffers: Iterable[BytesLike]) -> int:
        """Gather-write the buffers and return how many bytes were written."""
        buffers = list(buffers)
        total = _total_size(buffers)
        written = self._call("writev", os.writev, self.fd_num(), buffers)
        written = written or 0
        self._register_write()
        if written == 0:
            raise RuntimeError("writev returned 0 given non-empty input buffer")
        if written > total:
            raise RuntimeError("writev wrote more than length of input buffer")
        return written

    def write_all(self, data: BytesLike) -> None:
        """Write all of ``data``; only allowed on a blocking descriptor."""
        if not self.blocking():
            raise RuntimeError("write_all requires a blocking file descriptor")
        view = memoryview(bytes(data))
        while view:
            view = view[self.write(view):]

    def set_blocking(self, blocking: bool) -> None:
        try:
            os.set_blocking(self.fd_num(), blocking)
        except OSError as exc:
            raise UnixError("fcntl", exc.errno or 0) from exc
        self._wrapper.non_blocking = not blocking