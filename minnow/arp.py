"""ARP messages for Ethernet/IPv4."""

from __future__ import annotations

from dataclasses import dataclass
from ipaddress import IPv4Address
from typing import ClassVar

from minnow.ethernet import ADDRESS_LENGTH, EthernetHeader, format_ethernet_address
from minnow.parser import Parser, Serializer

_IPV4_ADDRESS_LENGTH = 4


def _write_ethernet(serializer: Serializer, address: bytes) -> None:
    if len(address) != ADDRESS_LENGTH:
        raise ValueError(f"Ethernet address must be {ADDRESS_LENGTH} bytes")
    serializer.integer(int.from_bytes(address, "big"), ADDRESS_LENGTH)


@dataclass
class ARPMessage:
    """An ARP request or reply."""

    LENGTH: ClassVar[int] = 28
    TYPE_ETHERNET: ClassVar[int] = 1
    OPCODE_REQUEST: ClassVar[int] = 1
    OPCODE_REPLY: ClassVar[int] = 2

    hardware_type: int = 1
    protocol_type: int = EthernetHeader.TYPE_IPv4
    hardware_address_size: int = ADDRESS_LENGTH
    protocol_address_size: int = _IPV4_ADDRESS_LENGTH
    opcode: int = 0
    sender_ethernet_address: bytes = bytes(ADDRESS_LENGTH)
    sender_ip_address: int = 0
    target_ethernet_address: bytes = bytes(ADDRESS_LENGTH)
    target_ip_address: int = 0

    def supported(self) -> bool:
        """Is this an Ethernet/IPv4 request or reply?"""
        return (
            self.hardware_type == self.TYPE_ETHERNET
            and self.protocol_type == EthernetHeader.TYPE_IPv4
            and self.hardware_address_size == ADDRESS_LENGTH
            and self.protocol_address_size == _IPV4_ADDRESS_LENGTH
            and self.opcode in (self.OPCODE_REQUEST, self.OPCODE_REPLY)
        )

    def to_string(self) -> str:
        if self.opcode == self.OPCODE_REQUEST:
            kind = "REQUEST"
        elif self.opcode == self.OPCODE_REPLY:
            kind = "REPLY"
        else:
            kind = "(unknown type)"
        sender_ip = IPv4Address(self.sender_ip_address & 0xFFFFFFFF)
        target_ip = IPv4Address(self.target_ip_address & 0xFFFFFFFF)
        return (
            f"opcode={kind}, "
            f"sender={format_ethernet_address(self.sender_ethernet_address)}/{sender_ip}, "
            f"target={format_ethernet_address(self.target_ethernet_address)}/{target_ip}"
        )

    def __str__(self) -> str:
        return self.to_string()

    def parse(self, parser: Parser) -> None:
        self.hardware_type = parser.integer(2)
        self.protocol_type = parser.integer(2)
        self.hardware_address_size = parser.integer(1)
        self.protocol_address_size = parser.integer(1)
        self.opcode = parser.integer(2)

        if not self.supported():
            parser.set_error()
            return

        self.sender_ethernet_address = parser.string(ADDRESS_LENGTH)
        self.sender_ip_address = parser.integer(4)
        self.target_ethernet_address = parser.string(ADDRESS_LENGTH)
        self.target_ip_address = parser.integer(4)

    def serialize(self, serializer: Serializer) -> None:
        if not self.supported():
            raise ValueError(
                "ARPMessage: unsupported field combination "
                "(must be Ethernet/IP, and request or reply)"
            )
        serializer.integer(self.hardware_type, 2)
        serializer.integer(self.protocol_type, 2)
        serializer.integer(self.hardware_address_size, 1)
        serializer.integer(self.protocol_address_size, 1)
        serializer.integer(self.opcode, 2)
        _write_ethernet(serializer, self.sender_ethernet_address)
        serializer.integer(self.sender_ip_address, 4)
        _write_ethernet(serializer, self.target_ethernet_address)
        serializer.integer(self.target_ip_address, 4)