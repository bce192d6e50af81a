"""Network sockets built on the shared FileDescriptor handle."""

from __future__ import annotations

import socket
from collections.abc import Iterable
from typing import Any, Callable, Optional, TypeVar, Union

from minnow.address import Address
from minnow.errors import UnixError
from minnow.file_descriptor import READ_BUFFER_SIZE, FileDescriptor

T = TypeVar("T")

BytesLike = Union[bytes, bytearray, memoryview]

_SO_DOMAIN = getattr(socket, "SO_DOMAIN", 39)
_SO_PROTOCOL = getattr(socket, "SO_PROTOCOL", 38)
_SO_BINDTODEVICE = getattr(socket, "SO_BINDTODEVICE", 25)
_INTERNET_FAMILIES = (socket.AF_INET, socket.AF_INET6)


def _to_address(family: int, raw: Any, what: str) -> Address:
    if raw is None:
        raise RuntimeError(f"{what} gave invalid namelen")
    if isinstance(raw, tuple):
        return Address(int(family), raw)
    return Address(int(family), (raw,))


def _native(address: Address) -> Any:
    """The address in the form the socket module's calls expect."""
    if address.family in _INTERNET_FAMILIES or len(address.sockaddr) != 1:
        return address.sockaddr
    return address.sockaddr[0]


def _checked_buffers(buffers: Iterable[BytesLike]) -> tuple[list[BytesLike], int]:
    buffers = list(buffers)
    if not buffers:
        raise ValueError("buffer list is empty")
    total = 0
    for buf in buffers:
        if len(buf) == 0:
            raise ValueError("empty buffer in buffer list")
        total += len(buf)
    return buffers, total


class Socket(FileDescriptor):
    """A network socket; normally used through one of its subclasses.

    Without ``fd`` a new socket of the given domain, type and protocol is
    created. With ``fd`` the existing descriptor is taken over, after checking
    that it really is a socket of that domain, type and protocol.
    """

    def __init__(
        self,
        domain: int,
        sock_type: int,
        protocol: int = 0,
        fd: Optional[FileDescriptor] = None,
    ) -> None:
        if fd is None:
            try:
                sock = socket.socket(domain, sock_type, protocol)
            except OSError as exc:
                raise UnixError("socket", exc.errno or 0) from exc
            super().__init__(sock.detach())
            return

        super().__init__(fd)
        for option, expected, name in (
            (_SO_DOMAIN, domain, "domain"),
            (socket.SO_TYPE, sock_type, "type"),
            (_SO_PROTOCOL, protocol, "protocol"),
        ):
            actual = self._with_socket(
                "getsockopt", lambda s, opt=option: s.getsockopt(socket.SOL_SOCKET, opt)
            )
            if actual != expected:
                raise RuntimeError(f"socket {name} mismatch")

    def _with_socket(
        self,
        what: str,
        action: Callable[[socket.socket], T],
        tolerate_block: bool = False,
    ) -> Optional[T]:
        """Run ``action`` on a temporary socket object over this descriptor.

        With ``tolerate_block``, a non-blocking descriptor that would block
        gives None instead of an error.
        """
        try:
            sock = socket.socket(fileno=self.fd_num())
        except OSError as exc:
            raise UnixError(what, exc.errno or 0) from exc
        try:
            if tolerate_block:
                return self._call(what, action, sock)
            try:
                return action(sock)
            except OSError as exc:
                raise UnixError(what, exc.errno or 0) from exc
        finally:
            sock.detach()

    def bind(self, address: Address) -> None:
        """Bind to a local address, usually before listening."""
        self._with_socket("bind", lambda s: s.bind(_native(address)))

    def bind_to_device(self, device_name: str) -> None:
        self._with_socket(
            "setsockopt",
            lambda s: s.setsockopt(socket.SOL_SOCKET, _SO_BINDTODEVICE, device_name.encode()),
        )

    def connect(self, address: Address) -> None:
        """Connect to a peer; on a non-blocking socket this may still be in progress."""
        self._with_socket("connect", lambda s: s.connect(_native(address)), tolerate_block=True)

    def shutdown(self, how: int) -> None:
        """Shut down reading, writing or both (``socket.SHUT_RD``/``SHUT_WR``/``SHUT_RDWR``)."""
        self._with_socket("shutdown", lambda s: s.shutdown(how))
        if how == socket.SHUT_RD:
            self._register_read()
        elif how == socket.SHUT_WR:
            self._register_write()
        elif how == socket.SHUT_RDWR:
            self._register_read()
            self._register_write()
        else:
            raise ValueError("Socket.shutdown() called with invalid `how`")

    def local_address(self) -> Address:
        return self._with_socket(
            "getsockname", lambda s: _to_address(s.family, s.getsockname(), "getsockname")
        )

    def peer_address(self) -> Address:
        return self._with_socket(
            "getpeername", lambda s: _to_address(s.family, s.getpeername(), "getpeername")
        )

    def set_reuseaddr(self) -> None:
        """Allow the local address to be reused sooner, at some cost in robustness."""
        self._with_socket(
            "setsockopt", lambda s: s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        )

    def raise_if_error(self) -> None:
        """Raise the pending socket error, if any (as seen on non-blocking sockets)."""
        error = self._with_socket(
            "getsockopt", lambda s: s.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        )
        if error:
            raise UnixError("socket error", error)


class DatagramSocket(Socket):
    """A socket that sends and receives whole datagrams."""

    def recv(self, size: int = 0) -> tuple[Address, bytes]:
        """Receive one datagram of at most ``size`` bytes (a default size when 0).

        Returns the sender's address and the payload. A non-blocking socket
        with nothing to read gives an empty address and payload.
        """
        if size < 0:
            raise ValueError("receive size must not be negative")
        size = size or READ_BUFFER_SIZE
        buf = bytearray(size)
        result = self._with_socket(
            "recvfrom",
            lambda s: (s.family, *s.recvfrom_into(buf, size, socket.MSG_TRUNC)),
            tolerate_block=True,
        )
        self._register_read()
        if result is None:
            return Address(), b""
        family, length, raw_address = result
        if length > size:
            raise RuntimeError(f"recvfrom (oversized datagram of length {length})")
        return _to_address(family, raw_address, "recvfrom"), bytes(buf[:length])

    def recv_buffers(self, sizes: Iterable[int]) -> tuple[Address, list[bytes]]:
        """Receive one datagram scattered over buffers of the given sizes.

        A final size of 0 stands for a default size. Returns the sender's
        address and one bytes object per buffer, trimmed to what it received.
        """
        sizes = list(sizes)
        if not sizes:
            raise ValueError("DatagramSocket.recv_buffers called with no payload buffers")
        if sizes[-1] == 0:
            sizes[-1] = READ_BUFFER_SIZE
        buffers, total = _checked_buffers(bytearray(size) for size in sizes)

        result = self._with_socket(
            "recvmsg",
            lambda s: (s.family, s.recvmsg_into(buffers, 0, socket.MSG_TRUNC)),
            tolerate_block=True,
        )
        self._register_read()
        if result is None:
            return Address(), [b"" for _ in buffers]
        family, (length, _ancillary, flags, raw_address) = result
        if length > total:
            raise RuntimeError(f"recvmsg (oversized datagram of length {length})")
        if flags & socket.MSG_TRUNC:
            raise RuntimeError("recvmsg (oversized datagram indicated only by MSG_TRUNC)")
        address = _to_address(family, raw_address, "recvmsg")

        pieces = []
        remaining = length
        for buf in buffers:
            take = min(len(buf), remaining)
            pieces.append(bytes(buf[:take]))
            remaining -= take
        return address, pieces

    def send(self, payload: BytesLike, destination: Optional[Address] = None) -> None:
        """Send a datagram to ``destination``, or to the connected peer if None."""

        def action(s: socket.socket) -> int:
            if destination is None:
                return s.send(payload)
            return s.sendto(payload, _native(destination))

        sent = self._with_socket("sendto", action, tolerate_block=True) or 0
        self._register_write()
        if sent != len(payload):
            raise RuntimeError("sendto sent some length other than that of payload")

    def send_buffers(
        self, payloads: Iterable[BytesLike], destination: Optional[Address] = None
    ) -> None:
        """Send one datagram gathered from several buffers."""
        buffers, total = _checked_buffers(payloads)

        def action(s: socket.socket) -> int:
            if destination is None:
                return s.sendmsg(buffers)
            return s.sendmsg(buffers, (), 0, _native(destination))

        sent = self._with_socket("sendmsg", action, tolerate_block=True) or 0
        self._register_write()
        if sent != total:
            raise RuntimeError("sendmsg sent some length other than that of payload")


class UDPSocket(DatagramSocket):
    """An unbound, unconnected UDP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_DGRAM)


class TCPSocket(Socket):
    """A TCP socket; ``fd`` takes over an already-connected TCP descriptor."""

    def __init__(self, fd: Optional[FileDescriptor] = None) -> None:
        if fd is None:
            super().__init__(socket.AF_INET, socket.SOCK_STREAM)
        else:
            super().__init__(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP, fd=fd)

    def listen(self, backlog: int = 16) -> None:
        self._with_socket("listen", lambda s: s.listen(backlog))

    def accept(self) -> TCPSocket:
        """Wait for and return a new connection."""
        self._register_read()
        new_fd = self._with_socket("accept", lambda s: s.accept()[0].detach())
        return TCPSocket(FileDescriptor(new_fd))


class PacketSocket(DatagramSocket):
    """A packet socket (link-layer access)."""

    def __init__(self, sock_type: int, protocol: int) -> None:
        super().__init__(socket.AF_PACKET, sock_type, protocol)


class RawSocket(DatagramSocket):
    """A raw IPv4 socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_RAW)


class LocalStreamSocket(Socket):
    """A Unix-domain stream socket taken over from an existing descriptor."""

    def __init__(self, fd: FileDescriptor) -> None:
        super().__init__(socket.AF_UNIX, socket.SOCK_STREAM, fd=fd)


class LocalDatagramSocket(DatagramSocket):
    """An unbound, unconnected Unix-domain datagram socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_UNIX, socket.SOCK_DGRAM)