import pytest

from minnow.address import Address
from minnow.errors import TaggedError


def test_from_ip_to_string():
    assert Address.from_ip("18.243.0.1", 53).to_string() == "18.243.0.1:53"


def test_ip_and_port_accessors():
    addr = Address.from_ip("10.0.0.7", 8080)
    assert addr.ip() == "10.0.0.7"
    assert addr.port() == 8080
    assert addr.ip_port() == ("10.0.0.7", 8080)


def test_default_port_is_zero():
    assert Address.from_ip("1.1.1.1").port() == 0


def test_numeric_round_trip():
    addr = Address.from_ip("192.168.1.20", 0)
    assert Address.from_ipv4_numeric(addr.ipv4_numeric()) == addr


def test_from_ipv4_numeric_loopback():
    assert Address.from_ipv4_numeric(0x7F000001).ip() == "127.0.0.1"


def test_ipv4_numeric_value():
    assert Address.from_ip("0.0.1.2", 0).ipv4_numeric() == 0x0102


def test_equality_depends_on_port():
    assert Address.from_ip("1.2.3.4", 1) == Address.from_ip("1.2.3.4", 1)
    assert not (Address.from_ip("1.2.3.4", 1) == Address.from_ip("1.2.3.4", 2))


def test_resolve_numeric_service():
    assert Address.resolve("127.0.0.1", "80") == Address.from_ip("127.0.0.1", 80)


def test_invalid_ip_raises():
    with pytest.raises(TaggedError) as info:
        Address.from_ip("not an ip", 0)
    assert str(info.value).startswith("getaddrinfo(not an ip, 0)")


def test_port_out_of_range():
    with pytest.raises(ValueError):
        Address.from_ip("1.2.3.4", 70000)


def test_default_address_is_not_internet():
    addr = Address()
    assert addr.to_string() == "(non-Internet address)"
    with pytest.raises(ValueError):
        addr.ip_port()
    with pytest.raises(ValueError):
        addr.ipv4_numeric()


def test_str_matches_to_string():
    addr = Address.from_ip("8.8.8.8", 53)
    assert str(addr) == addr.to_string()