"""TCP sender and receiver messages, and the complete TCP segment that carries them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Optional

from minnow.checksum import InternetChecksum
from minnow.helpers import pretty_print
from minnow.parser import Parser, Serializer

_FLAG_ACK = 0b0001_0000
_FLAG_RST = 0b0000_0100
_FLAG_SYN = 0b0000_0010
_FLAG_FIN = 0b0000_0001


@dataclass
class TCPSenderMessage:
    """What a TCP sender tells its receiver.

    ``seqno`` is the raw 32-bit sequence number of the SYN flag if set,
    otherwise of the first payload byte.
    """

    seqno: int = 0
    syn: bool = False
    payload: bytes = b""
    fin: bool = False
    rst: bool = False

    def sequence_length(self) -> int:
        """How many sequence numbers this message occupies."""
        return int(self.syn) + len(self.payload) + int(self.fin)


@dataclass
class TCPReceiverMessage:
    """What a TCP receiver tells its sender.

    ``ackno`` is the raw 32-bit next sequence number needed, or None before
    the initial sequence number has been received.
    """

    ackno: Optional[int] = None
    window_size: int = 0
    rst: bool = False


@dataclass
class UserDatagramInfo:
    """The UDP-like part of a TCP header: ports and checksum."""

    src_port: int = 0
    dst_port: int = 0
    cksum: int = 0


@dataclass
class TCPMessage:
    """A full message between TCP endpoints, without ports or checksum."""

    sender: TCPSenderMessage = field(default_factory=TCPSenderMessage)
    receiver: TCPReceiverMessage = field(default_factory=TCPReceiverMessage)


@dataclass
class TCPSegment:
    """A complete TCP segment: a message plus ports and checksum."""

    HEADER_LENGTH: ClassVar[int] = 20  # without options

    message: TCPMessage = field(default_factory=TCPMessage)
    udinfo: UserDatagramInfo = field(default_factory=UserDatagramInfo)

    def parse(self, parser: Parser, datagram_layer_pseudo_checksum: int) -> None:
        check = InternetChecksum(datagram_layer_pseudo_checksum)
        check.add(parser.buffer())
        if check.value():
            parser.set_error()
            return

        sender = self.message.sender
        receiver = self.message.receiver

        self.udinfo.src_port = parser.integer(2)
        self.udinfo.dst_port = parser.integer(2)
        sender.seqno = parser.integer(4)
        receiver.ackno = parser.integer(4)

        data_offset = parser.integer(1) >> 4

        flags = parser.integer(1)
        if not flags & _FLAG_ACK:
            receiver.ackno = None
        sender.rst = receiver.rst = bool(flags & _FLAG_RST)
        sender.syn = bool(flags & _FLAG_SYN)
        sender.fin = bool(flags & _FLAG_FIN)

        receiver.window_size = parser.integer(2)
        self.udinfo.cksum = parser.integer(2)
        parser.integer(2)  # urgent pointer

        if data_offset < self.HEADER_LENGTH >> 2:
            parser.set_error()
            return
        parser.remove_prefix(data_offset * 4 - self.HEADER_LENGTH)

        sender.payload = parser.concatenate_all_remaining()

    def serialize(self, serializer: Serializer) -> None:
        sender = self.message.sender
        receiver = self.message.receiver

        serializer.integer(self.udinfo.src_port, 2)
        serializer.integer(self.udinfo.dst_port, 2)
        serializer.integer(sender.seqno, 4)
        serializer.integer(receiver.ackno if receiver.ackno is not None else 0, 4)
        serializer.integer((self.HEADER_LENGTH >> 2) << 4, 1)  # data offset

        flags = 0
        if receiver.ackno is not None:
            flags |= _FLAG_ACK
        if sender.rst or receiver.rst:
            flags |= _FLAG_RST
        if sender.syn:
            flags |= _FLAG_SYN
        if sender.fin:
            flags |= _FLAG_FIN
        serializer.integer(flags, 1)

        serializer.integer(receiver.window_size, 2)
        serializer.integer(self.udinfo.cksum, 2)
        serializer.integer(0, 2)  # urgent pointer
        serializer.buffer(sender.payload)

    def compute_checksum(self, datagram_layer_pseudo_checksum: int) -> None:
        """Set the checksum field, including the datagram layer's pseudo-header."""
        self.udinfo.cksum = 0
        serializer = Serializer()
        self.serialize(serializer)
        check = InternetChecksum(datagram_layer_pseudo_checksum)
        check.add(serializer.finish())
        self.udinfo.cksum = check.value()

    def to_string(self) -> str:
        sender = self.message.sender
        receiver = self.message.receiver
        parts = ["TCP", f"seqno={sender.seqno & 0xFFFFFFFF}"]
        if sender.syn:
            parts.append("+SYN")
        if sender.payload:
            parts.append(f'payload="{pretty_print(sender.payload)}"')
        if sender.fin:
            parts.append("+FIN")
        if sender.rst or receiver.rst:
            parts.append("+RST")
        if receiver.ackno is not None:
            parts.append(f"ACK<{receiver.ackno & 0xFFFFFFFF}>")
        parts.append(f"winsize={receiver.window_size}")
        parts.append(f"src={self.udinfo.src_port}")
        parts.append(f"dst={self.udinfo.dst_port}")
        return " ".join(parts)

    def __str__(self) -> str:
        return self.to_string()