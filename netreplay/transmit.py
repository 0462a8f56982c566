"""Owned datagram transmissions and their size on the wire."""

from __future__ import annotations

import enum
import ipaddress
from dataclasses import dataclass
from typing import Optional, Tuple, Union

UDP_OVERHEAD = 8
IPV4_OVERHEAD = 20
IPV6_OVERHEAD = 40

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class EcnCodepoint(enum.IntEnum):
    """Explicit congestion notification codepoints (the two ECN bits)."""

    ECT0 = 0b10
    ECT1 = 0b01
    CE = 0b11


@dataclass
class OwnedTransmit:
    """A datagram, or a batch of equally sized datagrams, bound for one socket."""

    destination: Tuple[IpAddress, int]
    contents: bytes
    ecn: Optional[EcnCodepoint] = None
    segment_size: Optional[int] = None

    def __post_init__(self) -> None:
        host, port = self.destination
        port = int(port)
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"invalid port number: {port}")
        self.destination = (ipaddress.ip_address(host), port)
        self.contents = bytes(self.contents)
        if self.ecn is not None:
            self.ecn = EcnCodepoint(self.ecn)

    @property
    def destination_ip(self) -> IpAddress:
        return self.destination[0]

    def packet_size(self) -> int:
        """Size of the packet including the UDP and IP headers."""
        ip_overhead = IPV4_OVERHEAD if self.destination_ip.version == 4 else IPV6_OVERHEAD
        return UDP_OVERHEAD + ip_overhead + len(self.contents)