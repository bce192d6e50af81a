"""IPv4 headers (without options support) and datagrams."""

from __future__ import annotations

from dataclasses import dataclass, field
from ipaddress import IPv4Address
from typing import ClassVar

from minnow.checksum import InternetChecksum
from minnow.parser import Parser, Serializer

_MASK32 = 0xFFFFFFFF


@dataclass
class IPv4Header:
    """An IPv4 header; options are skipped when parsing and never written."""

    LENGTH: ClassVar[int] = 20
    DEFAULT_TTL: ClassVar[int] = 128
    PROTO_TCP: ClassVar[int] = 6

    version: int = 4
    header_length: int = 5  # in 32-bit words
    tos: int = 0
    total_length: int = 0
    identification: int = 0
    df: bool = True
    mf: bool = False
    offset: int = 0
    ttl: int = 128
    protocol: int = 6
    checksum: int = 0
    src: int = 0
    dst: int = 0

    def payload_length(self) -> int:
        return (self.total_length - 4 * self.header_length) & 0xFFFF

    def pseudo_checksum(self) -> int:
        """The pseudo-header's contribution to an encapsulated TCP checksum."""
        total = (self.src >> 16) + (self.src & 0xFFFF)
        total += (self.dst >> 16) + (self.dst & 0xFFFF)
        total += self.protocol
        total += self.payload_length()
        return total & _MASK32

    def compute_checksum(self) -> None:
        """Set the checksum field to the correct value for the other fields."""
        self.checksum = 0
        serializer = Serializer()
        self.serialize(serializer)
        check = InternetChecksum()
        check.add(serializer.finish())
        self.checksum = check.value()

    def parse(self, parser: Parser) -> None:
        first = parser.integer(1)
        self.version = first >> 4
        self.header_length = first & 0x0F
        self.tos = parser.integer(1)
        self.total_length = parser.integer(2)
        self.identification = parser.integer(2)
        flags_offset = parser.integer(2)
        self.df = bool(flags_offset & 0x4000)
        self.mf = bool(flags_offset & 0x2000)
        self.offset = flags_offset & 0x1FFF
        self.ttl = parser.integer(1)
        self.protocol = parser.integer(1)
        self.checksum = parser.integer(2)
        self.src = parser.integer(4)
        self.dst = parser.integer(4)

        if self.version != 4 or self.header_length < 5:
            parser.set_error()
        if parser.has_error():
            return

        parser.remove_prefix(self.header_length * 4 - self.LENGTH)

        given = self.checksum
        self.compute_checksum()
        if self.checksum != given:
            parser.set_error()

    def serialize(self, serializer: Serializer) -> None:
        """Write the header as it stands; the checksum is not recomputed."""
        if self.version != 4:
            raise ValueError("wrong IP version")
        serializer.integer((self.version << 4) | (self.header_length & 0x0F), 1)
        serializer.integer(self.tos, 1)
        serializer.integer(self.total_length, 2)
        serializer.integer(self.identification, 2)
        flags_offset = (
            (0x4000 if self.df else 0) | (0x2000 if self.mf else 0) | (self.offset & 0x1FFF)
        )
        serializer.integer(flags_offset, 2)
        serializer.integer(self.ttl, 1)
        serializer.integer(self.protocol, 1)
        serializer.integer(self.checksum, 2)
        serializer.integer(self.src, 4)
        serializer.integer(self.dst, 4)

    def __str__(self) -> str:
        return (
            f"IPv{self.version:x} len={self.total_length} proto={self.protocol} "
            f"ttl={self.ttl} src={IPv4Address(self.src & _MASK32)} "
            f"dst={IPv4Address(self.dst & _MASK32)}"
        )


@dataclass
class IPv4Datagram:
    """An IPv4 header followed by its payload buffers."""

    header: IPv4Header = field(default_factory=IPv4Header)
    payload: list[bytes] = field(default_factory=list)

    def parse(self, parser: Parser) -> None:
        self.header.parse(parser)
        parser.truncate(self.header.payload_length())
        self.payload = parser.all_remaining()

    def serialize(self, serializer: Serializer) -> None:
        self.header.serialize(serializer)
        serializer.buffer(self.payload)


InternetDatagram = IPv4Datagram