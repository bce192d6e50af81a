import copy

from minnow.address import Address
from minnow.helpers import concat, parse, serialize
from minnow.ipv4 import IPv4Datagram, IPv4Header
from minnow.tcp_message import TCPMessage, TCPReceiverMessage, TCPSenderMessage
from minnow.tcp_over_ip import FdAdapterBase, TCPOverIPv4Adapter


def make_adapter(src_ip, src_port, dst_ip, dst_port):
    adapter = TCPOverIPv4Adapter()
    adapter.config.source = Address.from_ip(src_ip, src_port)
    adapter.config.destination = Address.from_ip(dst_ip, dst_port)
    return adapter


def sample_message(payload=b"hello"):
    return TCPMessage(
        sender=TCPSenderMessage(seqno=1234, payload=payload),
        receiver=TCPReceiverMessage(ackno=5678, window_size=1000),
    )


def pair():
    a = make_adapter("10.0.0.1", 1000, "10.0.0.2", 2000)
    b = make_adapter("10.0.0.2", 2000, "10.0.0.1", 1000)
    return a, b


def test_tick_leaves_config_alone():
    adapter = FdAdapterBase()
    before = copy.deepcopy(adapter.config)
    adapter.tick(10)
    assert adapter.config == before
    assert adapter.listening is False


def test_wrap_fills_in_header():
    a, _ = pair()
    msg = sample_message()
    dgram = a.wrap_tcp_in_ip(msg)
    assert dgram.header.src == Address.from_ip("10.0.0.1").ipv4_numeric()
    assert dgram.header.dst == Address.from_ip("10.0.0.2").ipv4_numeric()
    assert dgram.header.total_length == 20 + 20 + len(msg.sender.payload)
    assert dgram.header.protocol == IPv4Header.PROTO_TCP
    assert len(concat(dgram.payload)) == dgram.header.payload_length()


def test_wrapped_datagram_parses():
    a, _ = pair()
    dgram = a.wrap_tcp_in_ip(sample_message())
    reparsed = IPv4Datagram()
    assert parse(reparsed, serialize(dgram))
    assert reparsed.header == dgram.header


def test_round_trip_between_peers():
    a, b = pair()
    msg = sample_message()
    wire = serialize(a.wrap_tcp_in_ip(msg))
    dgram = IPv4Datagram()
    assert parse(dgram, wire)
    assert b.unwrap_tcp_in_ip(dgram) == msg


def test_wrong_destination_ip_is_ignored():
    a, _ = pair()
    other = make_adapter("10.0.0.3", 2000, "10.0.0.1", 1000)
    assert other.unwrap_tcp_in_ip(a.wrap_tcp_in_ip(sample_message())) is None


def test_wrong_source_ip_is_ignored():
    a, _ = pair()
    other = make_adapter("10.0.0.2", 2000, "10.0.0.9", 1000)
    assert other.unwrap_tcp_in_ip(a.wrap_tcp_in_ip(sample_message())) is None


def test_wrong_ports_are_ignored():
    a, _ = pair()
    wrong_dst = make_adapter("10.0.0.2", 2001, "10.0.0.1", 1000)
    wrong_src = make_adapter("10.0.0.2", 2000, "10.0.0.1", 1001)
    assert wrong_dst.unwrap_tcp_in_ip(a.wrap_tcp_in_ip(sample_message())) is None
    assert wrong_src.unwrap_tcp_in_ip(a.wrap_tcp_in_ip(sample_message())) is None


def test_non_tcp_protocol_is_ignored():
    a, b = pair()
    dgram = a.wrap_tcp_in_ip(sample_message())
    dgram.header.protocol = 17
    dgram.header.compute_checksum()
    assert b.unwrap_tcp_in_ip(dgram) is None


def test_corrupted_segment_is_ignored():
    a, b = pair()
    dgram = a.wrap_tcp_in_ip(sample_message())
    data = bytearray(concat(dgram.payload))
    data[-1] ^= 0xFF
    dgram.payload = [bytes(data)]
    assert b.unwrap_tcp_in_ip(dgram) is None


def test_listening_accepts_syn_and_records_peer():
    a, _ = pair()
    listener = TCPOverIPv4Adapter()
    listener.config.source = Address.from_ip("0", 2000)
    listener.listening = True
    syn = TCPMessage(sender=TCPSenderMessage(seqno=42, syn=True))
    result = listener.unwrap_tcp_in_ip(a.wrap_tcp_in_ip(syn))
    assert result == syn
    assert listener.listening is False
    assert listener.config.source == Address.from_ip("10.0.0.2", 2000)
    assert listener.config.destination == Address.from_ip("10.0.0.1", 1000)


def test_listening_ignores_non_syn():
    a, _ = pair()
    listener = TCPOverIPv4Adapter()
    listener.config.source = Address.from_ip("0", 2000)
    listener.listening = True
    assert listener.unwrap_tcp_in_ip(a.wrap_tcp_in_ip(sample_message())) is None
    assert listener.listening is True
    assert listener.config.source == Address.from_ip("0", 2000)


def test_listening_ignores_syn_with_rst():
    a, _ = pair()
    listener = TCPOverIPv4Adapter()
    listener.config.source = Address.from_ip("0", 2000)
    listener.listening = True
    msg = TCPMessage(sender=TCPSenderMessage(seqno=42, syn=True, rst=True))
    assert listener.unwrap_tcp_in_ip(a.wrap_tcp_in_ip(msg)) is None
    assert listener.listening is True