"""Description of a simulated network and the events that change it."""

from __future__ import annotations

import enum
import ipaddress
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Union

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IpNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


class NodeKind(enum.Enum):
    ROUTER = "router"
    HOST = "host"


@dataclass
class Route:
    """A route towards a range of addresses, through a next hop."""

    destination: IpNetwork
    next: IpAddress
    cost: int

    def __post_init__(self) -> None:
        self.destination = ipaddress.ip_network(self.destination, strict=False)
        self.next = ipaddress.ip_address(self.next)


@dataclass
class NetworkInterface:
    addresses: List[ipaddress.IPv4Interface] = field(default_factory=list)
    routes: List[Route] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.addresses = [ipaddress.IPv4Interface(a) for a in self.addresses]


@dataclass
class NetworkNodeSpec:
    id: str
    kind: NodeKind
    buffer_size_bytes: int
    interfaces: List[NetworkInterface] = field(default_factory=list)
    packet_loss_ratio: float = 0.0
    packet_duplication_ratio: float = 0.0

    def __post_init__(self) -> None:
        self.kind = NodeKind(self.kind)


@dataclass
class NetworkLinkSpec:
    id: str
    source: IpAddress
    target: IpAddress
    delay_ns: int
    bandwidth_bps: int
    congestion_event_ratio: float = 0.0
    extra_delay_ns: int = 0
    extra_delay_ratio: float = 0.0

    def __post_init__(self) -> None:
        self.source = ipaddress.ip_address(self.source)
        self.target = ipaddress.ip_address(self.target)


@dataclass
class NetworkSpec:
    nodes: List[NetworkNodeSpec] = field(default_factory=list)
    links: List[NetworkLinkSpec] = field(default_factory=list)


class UpdateLinkStatus(enum.Enum):
    UP = "up"
    DOWN = "down"

    def __str__(self) -> str:
        return self.value


_INT_FIELDS = ("bandwidth_bps", "delay_ns", "extra_delay_ns")
_RATIO_FIELDS = (
    "extra_delay_ratio",
    "packet_duplication_ratio",
    "packet_loss_ratio",
    "congestion_event_ratio",
)


@dataclass
class NetworkEventPayload:
    """A change applied to a link; fields left as None stay unchanged."""

    link_id: str
    status: Optional[UpdateLinkStatus] = None
    bandwidth_bps: Optional[int] = None
    delay_ns: Optional[int] = None
    extra_delay_ns: Optional[int] = None
    extra_delay_ratio: Optional[float] = None
    packet_duplication_ratio: Optional[float] = None
    packet_loss_ratio: Optional[float] = None
    congestion_event_ratio: Optional[float] = None

    def __post_init__(self) -> None:
        if self.status is not None:
            self.status = UpdateLinkStatus(self.status)

    def to_dict(self) -> dict:
        out: dict = {
            "link_id": self.link_id,
            "status": None if self.status is None else self.status.value,
        }
        for name in _INT_FIELDS + _RATIO_FIELDS:
            out[name] = getattr(self, name)
        return out

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "NetworkEventPayload":
        if not isinstance(data, Mapping):
            raise ValueError("network event payload must be an object")
        link_id = data.get("link_id")
        if not isinstance(link_id, str):
            raise ValueError("network event payload needs a string `link_id`")

        kwargs: dict = {"link_id": link_id}
        status = data.get("status")
        if status is not None:
            try:
                kwargs["status"] = UpdateLinkStatus(status)
            except ValueError:
                raise ValueError(f"unknown link status `{status}`") from None

        for name in _INT_FIELDS:
            value = data.get(name)
            if value is not None:
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    raise ValueError(f"`{name}` must be a non-negative integer")
                kwargs[name] = value

        for name in _RATIO_FIELDS:
            value = data.get(name)
            if value is not None:
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ValueError(f"`{name}` must be a number")
                kwargs[name] = float(value)

        return NetworkEventPayload(**kwargs)


@dataclass
class NetworkEvent:
    """A payload applied at a moment relative to the simulation start."""

    relative_time_ns: int
    payload: NetworkEventPayload