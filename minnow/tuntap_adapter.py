"""TCP over IPv4, read from and written to a TUN device."""

from __future__ import annotations

from typing import Optional

from minnow.file_descriptor import FileDescriptor
from minnow.helpers import parse, serialize
from minnow.ipv4 import IPv4Datagram
from minnow.tcp_config import FdAdapterConfig
from minnow.tcp_message import TCPMessage, TCPSegment
from minnow.tcp_over_ip import TCPOverIPv4Adapter

_IPV4_HEADER_LENGTH = 20  # without options


class TCPOverIPv4OverTunFdAdapter(TCPOverIPv4Adapter):
    """Exchanges TCP messages as IPv4 datagrams over a TUN device (or any datagram descriptor)."""

    def __init__(self, tun: FileDescriptor, config: Optional[FdAdapterConfig] = None) -> None:
        super().__init__(config)
        self._tun = tun

    def read(self) -> Optional[TCPMessage]:
        """Read one datagram; the TCP message in it, or None if invalid or unrelated."""
        buffers = self._tun.read_buffers([_IPV4_HEADER_LENGTH, TCPSegment.HEADER_LENGTH, 0])
        ip_dgram = IPv4Datagram()
        if parse(ip_dgram, buffers):
            return self.unwrap_tcp_in_ip(ip_dgram)
        return None

    def write(self, msg: TCPMessage) -> None:
        """Wrap ``msg`` in an IPv4 datagram and write it to the device."""
        self._tun.write_buffers(serialize(self.wrap_tcp_in_ip(msg)))

    def fd(self) -> FileDescriptor:
        """The underlying device descriptor."""
        return self._tun