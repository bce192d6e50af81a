"""IPv4/IPv6 socket addresses and name resolution."""

from __future__ import annotations

import socket
from dataclasses import dataclass
from ipaddress import IPv4Address

from minnow.errors import TaggedError

_INTERNET_FAMILIES = (socket.AF_INET, socket.AF_INET6)


def _check_port(port: int) -> None:
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port out of range: {port}")


@dataclass(frozen=True)
class Address:
    """A socket address: its family and the address tuple used by the socket module.

    The default value is an empty, non-Internet address.
    """

    family: int = socket.AF_UNSPEC
    sockaddr: tuple = ()

    @classmethod
    def _lookup(cls, node: str, service: str, flags: int) -> Address:
        try:
            results = socket.getaddrinfo(node, service, socket.AF_INET, 0, 0, flags)
        except socket.gaierror as exc:
            code = exc.errno if exc.errno is not None else 0
            raise TaggedError(
                f"getaddrinfo({node}, {service})", code, exc.strerror or str(exc)
            ) from exc
        if not results:
            raise RuntimeError("getaddrinfo returned successfully but with no results")
        family, _type, _proto, _canonname, sockaddr = results[0]
        return cls(int(family), tuple(sockaddr))

    @classmethod
    def resolve(cls, hostname: str, service: str) -> Address:
        """Resolve a host name and a service name (or numeric port) to an IPv4 address."""
        return cls._lookup(hostname, service, getattr(socket, "AI_ALL", 0))

    @classmethod
    def from_ip(cls, ip: str, port: int = 0) -> Address:
        """Build from a dotted-quad string and a numeric port, without any lookup."""
        _check_port(port)
        return cls._lookup(ip, str(port), socket.AI_NUMERICHOST | socket.AI_NUMERICSERV)

    @classmethod
    def from_ipv4_numeric(cls, ip_address: int) -> Address:
        """Build from a 32-bit numeric IPv4 address (port 0)."""
        return cls(socket.AF_INET, (str(IPv4Address(ip_address & 0xFFFFFFFF)), 0))

    def _is_internet(self) -> bool:
        return self.family in _INTERNET_FAMILIES and len(self.sockaddr) >= 2

    def ip_port(self) -> tuple[str, int]:
        if not self._is_internet():
            raise ValueError("Address.ip_port() called on non-Internet address")
        return str(self.sockaddr[0]), int(self.sockaddr[1])

    def ip(self) -> str:
        return self.ip_port()[0]

    def port(self) -> int:
        return self.ip_port()[1]

    def ipv4_numeric(self) -> int:
        if self.family != socket.AF_INET or len(self.sockaddr) != 2:
            raise ValueError("ipv4_numeric called on non-IPV4 address")
        return int(IPv4Address(self.sockaddr[0]))

    def to_string(self) -> str:
        if self._is_internet():
            ip, port = self.ip_port()
            return f"{ip}:{port}"
        return "(non-Internet address)"

    def __str__(self) -> str:
        return self.to_string()