"""Conversion between TCP messages and the IPv4 datagrams that carry them."""

from __future__ import annotations

from ipaddress import IPv4Address
from typing import Optional

from minnow.address import Address
from minnow.helpers import parse, serialize
from minnow.ipv4 import IPv4Datagram, IPv4Header
from minnow.tcp_config import FdAdapterConfig
from minnow.tcp_message import TCPMessage, TCPSegment, UserDatagramInfo


class FdAdapterBase:
    """State shared by datagram adapters: their configuration and listening flag."""

    def __init__(self, config: Optional[FdAdapterConfig] = None) -> None:
        self.config = config if config is not None else FdAdapterConfig()
        self.listening = False

    def tick(self, ms_since_last_tick: int) -> None:
        """Called as time passes; nothing to do by default."""


def _dotted(numeric: int) -> str:
    return str(IPv4Address(numeric & 0xFFFFFFFF))


class TCPOverIPv4Adapter(FdAdapterBase):
    """Wraps TCP messages in IPv4 datagrams and unwraps those meant for this connection."""

    def unwrap_tcp_in_ip(self, ip_dgram: IPv4Datagram) -> Optional[TCPMessage]:
        """The TCP message inside ``ip_dgram``, or None if invalid or unrelated.

        While listening, a SYN (without RST) fixes the peer's address and port
        and ends listening.
        """
        header = ip_dgram.header
        config = self.config

        if not self.listening and header.dst != config.source.ipv4_numeric():
            return None
        if not self.listening and header.src != config.destination.ipv4_numeric():
            return None
        if header.protocol != IPv4Header.PROTO_TCP:
            return None

        segment = TCPSegment()
        if not parse(segment, ip_dgram.payload, header.pseudo_checksum()):
            return None

        if segment.udinfo.dst_port != config.source.port():
            return None

        if self.listening:
            sender = segment.message.sender
            if not (sender.syn and not sender.rst):
                return None
            config.source = Address.from_ip(_dotted(header.dst), config.source.port())
            config.destination = Address.from_ip(_dotted(header.src), segment.udinfo.src_port)
            self.listening = False

        if segment.udinfo.src_port != config.destination.port():
            return None

        return segment.message

    def wrap_tcp_in_ip(self, msg: TCPMessage) -> IPv4Datagram:
        """An IPv4 datagram carrying ``msg``, with ports, lengths and checksums filled in."""
        config = self.config
        segment = TCPSegment(
            message=msg,
            udinfo=UserDatagramInfo(
                src_port=config.source.port(), dst_port=config.destination.port()
            ),
        )

        ip_dgram = IPv4Datagram()
        ip_dgram.header.src = config.source.ipv4_numeric()
        ip_dgram.header.dst = config.destination.ipv4_numeric()
        ip_dgram.header.total_length = (
            ip_dgram.header.header_length * 4 + TCPSegment.HEADER_LENGTH + len(msg.sender.payload)
        )

        segment.compute_checksum(ip_dgram.header.pseudo_checksum())
        ip_dgram.header.compute_checksum()
        ip_dgram.payload = serialize(segment)
        return ip_dgram