"""IPv4/IPv6 socket endpoint."""

from __future__ import annotations

import socket
import struct
import sys

_ANY4 = bytes(4)
_LOOPBACK4 = bytes((127, 0, 0, 1))
_ANY6 = bytes(16)
_LOOPBACK6 = bytes(15) + b"\x01"
_V4_MAPPED_PREFIX = bytes(10) + b"\xff\xff"


def _is_private_v4(value: int) -> bool:
    return (
        0x0A000000 <= value <= 0x0AFFFFFF
        or 0xAC100000 <= value <= 0xAC1FFFFF
        or 0xC0A80000 <= value <= 0xC0A8FFFF
        or value == 0x7F000001
    )


def _check_port(port: int) -> int:
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port out of range: {port}")
    return port


class InetAddress:
    """An IP address and port, either IPv4 or IPv6."""

    def __init__(self, port: int = 0, loopback_only: bool = False, ipv6: bool = False):
        self._ipv6 = ipv6
        if ipv6:
            self._packed = _LOOPBACK6 if loopback_only else _ANY6
        else:
            self._packed = _LOOPBACK4 if loopback_only else _ANY4
        self._port = _check_port(port)
        self._flowinfo = 0
        self._scope_id = 0
        self._unspecified = False

    @classmethod
    def from_ip(cls, ip: str, port: int, ipv6: bool = False) -> "InetAddress":
        """Build an endpoint from an IP string; an unparsable IP leaves it unspecified."""
        addr = cls(port, ipv6=ipv6)
        try:
            addr._packed = socket.inet_pton(addr.family(), ip)
        except (OSError, ValueError):
            addr._unspecified = True
        return addr

    @classmethod
    def from_sockaddr(cls, sockaddr: tuple, ipv6: bool | None = None) -> "InetAddress":
        """Build an endpoint from a socket-module address tuple."""
        host, port, *rest = sockaddr
        host = host.split("%", 1)[0]
        if ipv6 is None:
            ipv6 = bool(rest) or ":" in host
        addr = cls(port, ipv6=ipv6)
        try:
            addr._packed = socket.inet_pton(addr.family(), host)
        except (OSError, ValueError) as exc:
            raise ValueError(f"invalid address: {host!r}") from exc
        if ipv6 and len(rest) >= 2:
            addr._flowinfo, addr._scope_id = rest[0], rest[1]
        return addr

    def family(self) -> int:
        return socket.AF_INET6 if self._ipv6 else socket.AF_INET

    def is_ipv6(self) -> bool:
        return self._ipv6

    def is_unspecified(self) -> bool:
        """True if the address was never given a valid IP."""
        return self._unspecified

    def to_ip(self) -> str:
        return socket.inet_ntop(self.family(), self._packed)

    def to_ip_port(self) -> str:
        return f"{self.to_ip()}:{self._port}"

    def to_port(self) -> int:
        return self._port

    def is_intranet_ip(self) -> bool:
        """True for private, link-local, site-local and loopback addresses."""
        if not self._ipv6:
            return _is_private_v4(int.from_bytes(self._packed, "big"))
        if self._packed == _LOOPBACK6:
            return True
        prefix = int.from_bytes(self._packed[:4], "big") & 0xFFC00000
        if prefix in (0xFEC00000, 0xFE800000):
            return True
        if self._packed[:12] == _V4_MAPPED_PREFIX:
            return _is_private_v4(int.from_bytes(self._packed[12:], "big"))
        return False

    def is_loopback_ip(self) -> bool:
        if not self._ipv6:
            return self._packed == _LOOPBACK4
        return self._packed in (_LOOPBACK6, _V4_MAPPED_PREFIX + _LOOPBACK4)

    def ip_net_endian(self) -> int:
        """The IPv4 address as a host integer holding network-order bytes."""
        return int.from_bytes(self._packed[:4], sys.byteorder)

    def ip6_net_endian(self) -> tuple[int, int, int, int]:
        """The IPv6 address (IPv4-mapped for IPv4) as four network-order words."""
        packed = self._packed if self._ipv6 else _V4_MAPPED_PREFIX + self._packed
        return tuple(
            int.from_bytes(packed[offset:offset + 4], sys.byteorder)
            for offset in range(0, 16, 4)
        )

    def port_net_endian(self) -> int:
        """The port as a host integer holding network-order bytes."""
        return int.from_bytes(struct.pack("!H", self._port), sys.byteorder)

    def set_port_net_endian(self, port: int) -> None:
        self._port = struct.unpack("!H", port.to_bytes(2, sys.byteorder))[0]

    def sockaddr(self) -> tuple:
        """An address tuple usable with the socket module."""
        if self._ipv6:
            return (self.to_ip(), self._port, self._flowinfo, self._scope_id)
        return (self.to_ip(), self._port)

    def _key(self) -> tuple:
        return (self._ipv6, self._packed, self._port, self._unspecified)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InetAddress):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"InetAddress({self.to_ip_port()!r}, ipv6={self._ipv6})"