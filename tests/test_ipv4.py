import pytest

from minnow.checksum import InternetChecksum
from minnow.ipv4 import InternetDatagram, IPv4Datagram, IPv4Header
from minnow.parser import Parser, Serializer

SRC = 0xC0A80001
DST = 0xC0A800C7


def _serialize(obj):
    serializer = Serializer()
    obj.serialize(serializer)
    return serializer.finish()


def _header(payload_size, header_length=5):
    header = IPv4Header(
        header_length=header_length,
        total_length=4 * header_length + payload_size,
        src=SRC,
        dst=DST,
    )
    header.compute_checksum()
    return header


def test_known_checksum():
    header = IPv4Header(
        total_length=0x73, df=True, ttl=0x40, protocol=0x11, src=SRC, dst=DST
    )
    header.compute_checksum()
    assert header.checksum == 0xB861
    wire = b"".join(_serialize(header))
    assert wire[:4] == b"\x45\x00\x00\x73"
    assert len(wire) == IPv4Header.LENGTH


def test_serialized_header_verifies():
    check = InternetChecksum()
    check.add(_serialize(_header(10)))
    assert check.value() == 0


def test_header_round_trip():
    header = _header(3)
    header.mf = True
    header.offset = 7
    header.tos = 3
    header.compute_checksum()
    parsed = IPv4Header()
    parser = Parser(_serialize(header))
    parsed.parse(parser)
    assert not parser.has_error()
    assert parsed == header


def test_bad_checksum_is_error():
    header = _header(0)
    header.checksum ^= 1
    parser = Parser(_serialize(header))
    IPv4Header().parse(parser)
    assert parser.has_error()


def test_wrong_version_is_error_when_parsing():
    wire = bytearray(b"".join(_serialize(_header(0))))
    wire[0] = 0x65
    parser = Parser(bytes(wire))
    IPv4Header().parse(parser)
    assert parser.has_error()


def test_short_header_length_is_error():
    header = IPv4Header(header_length=4)
    header.compute_checksum()
    parser = Parser(_serialize(header))
    IPv4Header().parse(parser)
    assert parser.has_error()


def test_serialize_rejects_other_versions():
    with pytest.raises(ValueError, match="wrong IP version"):
        _serialize(IPv4Header(version=6))


def test_payload_length():
    assert _header(17).payload_length() == 17


def test_pseudo_checksum_is_symmetric_in_addresses():
    header = _header(5)
    swapped = IPv4Header(
        total_length=header.total_length, src=header.dst, dst=header.src
    )
    assert header.pseudo_checksum() == swapped.pseudo_checksum()


def test_str():
    header = IPv4Header(total_length=40, ttl=64, src=0x0A000001, dst=0x0A000002)
    assert str(header) == "IPv4 len=40 proto=6 ttl=64 src=10.0.0.1 dst=10.0.0.2"


def test_datagram_round_trip():
    datagram = IPv4Datagram(header=_header(8), payload=[b"abc", b"defgh"])
    parsed = InternetDatagram()
    parser = Parser(_serialize(datagram))
    parsed.parse(parser)
    assert not parser.has_error()
    assert parsed.header == datagram.header
    assert b"".join(parsed.payload) == b"abcdefgh"


def test_datagram_payload_truncated_to_total_length():
    header = _header(3)
    parser = Parser(_serialize(header) + [b"hello"])
    datagram = IPv4Datagram()
    datagram.parse(parser)
    assert not parser.has_error()
    assert datagram.payload == [b"hel"]


def test_datagram_options_are_skipped():
    header = _header(3, header_length=6)
    parser = Parser(_serialize(header) + [b"OPTS", b"abc"])
    datagram = IPv4Datagram()
    datagram.parse(parser)
    assert not parser.has_error()
    assert datagram.payload == [b"abc"]


def test_datagram_from_single_buffer():
    datagram = IPv4Datagram(header=_header(4), payload=[b"data"])
    parser = Parser(b"".join(_serialize(datagram)) + b"trailing")
    parsed = IPv4Datagram()
    parsed.parse(parser)
    assert not parser.has_error()
    assert parsed.payload == [b"data"]