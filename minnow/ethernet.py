"""Ethernet addresses, headers and frames."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from minnow.parser import Parser, Serializer

ADDRESS_LENGTH = 6
ETHERNET_BROADCAST = b"\xff" * ADDRESS_LENGTH


def format_ethernet_address(address: bytes) -> str:
    """Colon-separated lower-case hex, e.g. ``ff:ff:ff:ff:ff:ff``."""
    return ":".join(f"{byte:02x}" for byte in address)


def _write_address(serializer: Serializer, address: bytes) -> None:
    if len(address) != ADDRESS_LENGTH:
        raise ValueError(f"Ethernet address must be {ADDRESS_LENGTH} bytes")
    serializer.integer(int.from_bytes(address, "big"), ADDRESS_LENGTH)


@dataclass
class EthernetHeader:
    """An Ethernet frame header: destination, source and type."""

    LENGTH: ClassVar[int] = 14
    TYPE_IPv4: ClassVar[int] = 0x800
    TYPE_ARP: ClassVar[int] = 0x806

    dst: bytes = bytes(ADDRESS_LENGTH)
    src: bytes = bytes(ADDRESS_LENGTH)
    type: int = 0

    def __str__(self) -> str:
        if self.type == self.TYPE_IPv4:
            kind = "IPv4"
        elif self.type == self.TYPE_ARP:
            kind = "ARP"
        else:
            kind = f"[unknown type {self.type:x}!]"
        return (
            f"dst={format_ethernet_address(self.dst)} "
            f"src={format_ethernet_address(self.src)} type={kind}"
        )

    def parse(self, parser: Parser) -> None:
        self.dst = parser.string(ADDRESS_LENGTH)
        self.src = parser.string(ADDRESS_LENGTH)
        self.type = parser.integer(2)

    def serialize(self, serializer: Serializer) -> None:
        _write_address(serializer, self.dst)
        _write_address(serializer, self.src)
        serializer.integer(self.type, 2)


@dataclass
class EthernetFrame:
    """An Ethernet header followed by its payload buffers."""

    header: EthernetHeader = field(default_factory=EthernetHeader)
    payload: list[bytes] = field(default_factory=list)

    def parse(self, parser: Parser) -> None:
        self.header.parse(parser)
        self.payload = parser.all_remaining()

    def serialize(self, serializer: Serializer) -> None:
        self.header.serialize(serializer)
        serializer.buffer(self.payload)