"""Conveniences for parsing, serialising and describing frames and datagrams."""

from __future__ import annotations

import copy
from collections.abc import Iterable
from typing import Any, TypeVar, Union

from minnow.arp import ARPMessage
from minnow.ethernet import EthernetFrame, EthernetHeader
from minnow.ipv4 import IPv4Datagram
from minnow.parser import Buffers, Parser, Serializer

T = TypeVar("T")


def serialize(obj: Any) -> list[bytes]:
    """Serialise any object that has a ``serialize(serializer)`` method."""
    serializer = Serializer()
    obj.serialize(serializer)
    return serializer.finish()


def parse(obj: Any, buffers: Buffers, *args: Any) -> bool:
    """Parse ``buffers`` into ``obj``; True when parsing succeeded."""
    parser = Parser(buffers)
    obj.parse(parser, *args)
    return not parser.has_error()


def concat(buffers: Iterable[Union[bytes, bytearray, memoryview]]) -> bytes:
    return b"".join(bytes(chunk) for chunk in buffers)


def pretty_print(data: Union[bytes, bytearray, str], max_length: int = 32) -> str:
    """Escape unprintable bytes and double quotes as ``\\xNN``, truncating with ``...``."""
    raw = data.encode("latin-1") if isinstance(data, str) else bytes(data)
    out = ""
    truncated = False
    for byte in raw:
        if len(out) >= max_length:
            truncated = True
            break
        if 0x20 <= byte < 0x7F and byte != ord('"'):
            out += chr(byte)
        else:
            out += f"\\x{byte:02x}"
    if truncated:
        out = out[:-3] + "..." if len(out) >= 3 else out + "..."
    return out


def summary(frame: EthernetFrame) -> str:
    """A one-line description of an Ethernet frame and what it carries."""
    out = f"{frame.header} payload: "
    if frame.header.type == EthernetHeader.TYPE_IPv4:
        dgram = IPv4Datagram()
        if parse(dgram, clone(frame).payload):
            out += f'{dgram.header} payload="{pretty_print(concat(dgram.payload))}"'
        else:
            out += "bad IPv4 datagram"
    elif frame.header.type == EthernetHeader.TYPE_ARP:
        arp = ARPMessage()
        if parse(arp, clone(frame).payload):
            out += arp.to_string()
        else:
            out += "bad ARP message"
    else:
        out += "unknown frame type"
    return out


def clone(obj: T) -> T:
    """An independent copy of a frame, datagram or other message."""
    return copy.deepcopy(obj)