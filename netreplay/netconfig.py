"""JSON network graphs, network events and per-host QUIC settings."""

from __future__ import annotations

import copy
import enum
import ipaddress
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from netreplay.spec import (
    NetworkEvent,
    NetworkEventPayload,
    NetworkInterface,
    NetworkLinkSpec,
    NetworkNodeSpec,
    NetworkSpec,
    NodeKind,
    Route,
    UpdateLinkStatus,
)

_NS_PER_MS = 1_000_000
_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1


class CongestionControlAlgorithm(enum.Enum):
    """Congestion controller used by a QUIC endpoint."""

    CUBIC = "cubic"
    NEW_RENO = "new_reno"
    # Fixed window equal to the initial congestion window
    NO_CC = "no_cc"
    # NewReno variant that reacts to ECN only, never to packet loss
    ECN_RENO = "ecn_reno"


@dataclass
class QuinnConfig:
    """QUIC transport settings of one host."""

    initial_rtt_ms: int
    maximum_idle_timeout_ms: int
    packet_threshold: int
    mtu_discovery: bool
    maximize_send_and_receive_windows: bool
    ack_eliciting_threshold: int
    max_ack_delay_ms: int
    congestion_controller: CongestionControlAlgorithm
    initial_congestion_window_packets: Optional[int] = None


@dataclass
class NetworkGraph:
    """A parsed network graph: the network itself plus QUIC settings per host."""

    nodes: List[NetworkNodeSpec] = field(default_factory=list)
    links: List[NetworkLinkSpec] = field(default_factory=list)
    quic: Dict[str, QuinnConfig] = field(default_factory=dict)

    def quic_configs(self) -> Dict[str, QuinnConfig]:
        """QUIC settings keyed by host node id."""
        return dict(self.quic)

    def to_spec(self) -> NetworkSpec:
        """An independent copy of the graph as a network spec."""
        return NetworkSpec(nodes=copy.deepcopy(self.nodes), links=copy.deepcopy(self.links))


def _object(what: str, data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return data


def _field(data: Mapping[str, Any], key: str, what: str) -> Any:
    if key not in data:
        raise ValueError(f"{what}: missing field `{key}`")
    return data[key]


def _uint(key: str, value: Any, maximum: int = _U64_MAX) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise ValueError(f"`{key}` must be an integer between 0 and {maximum}")
    return value


def _float(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"`{key}` must be a number")
    return float(value)


def _bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"`{key}` must be a boolean")
    return value


def _str(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"`{key}` must be a string")
    return value


def _list(key: str, value: Any) -> list:
    if not isinstance(value, list):
        raise ValueError(f"`{key}` must be an array")
    return value


def _ip(key: str, value: Any):
    text = _str(key, value)
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        raise ValueError(f"`{key}` is not a valid IP address: {text!r}") from None


def parse_quinn_config(data: Any) -> QuinnConfig:
    """Parse the `quic` object of a host node."""
    what = "quic config"
    data = _object(what, data)
    algorithm_name = _field(data, "congestion_controller", what)
    try:
        algorithm = CongestionControlAlgorithm(algorithm_name)
    except ValueError:
        raise ValueError(f"unknown congestion controller `{algorithm_name}`") from None

    window = data.get("initial_congestion_window_packets")
    return QuinnConfig(
        initial_rtt_ms=_uint("initial_rtt_ms", _field(data, "initial_rtt_ms", what)),
        maximum_idle_timeout_ms=_uint(
            "maximum_idle_timeout_ms", _field(data, "maximum_idle_timeout_ms", what)
        ),
        packet_threshold=_uint(
            "packet_threshold", _field(data, "packet_threshold", what), _U32_MAX
        ),
        mtu_discovery=_bool("mtu_discovery", _field(data, "mtu_discovery", what)),
        maximize_send_and_receive_windows=_bool(
            "maximize_send_and_receive_windows",
            _field(data, "maximize_send_and_receive_windows", what),
        ),
        ack_eliciting_threshold=_uint(
            "ack_eliciting_threshold", _field(data, "ack_eliciting_threshold", what), _U32_MAX
        ),
        max_ack_delay_ms=_uint("max_ack_delay_ms", _field(data, "max_ack_delay_ms", what)),
        congestion_controller=algorithm,
        initial_congestion_window_packets=(
            None if window is None else _uint("initial_congestion_window_packets", window)
        ),
    )


def _parse_route(data: Any) -> Route:
    what = "route"
    data = _object(what, data)
    destination = _str("destination", _field(data, "destination", what))
    try:
        network = ipaddress.ip_network(destination, strict=False)
    except ValueError:
        raise ValueError(f"`destination` is not a valid IP range: {destination!r}") from None
    return Route(
        destination=network,
        next=_ip("next", _field(data, "next", what)),
        cost=_uint("cost", _field(data, "cost", what)),
    )


def _parse_address(data: Any) -> ipaddress.IPv4Interface:
    data = _object("address", data)
    text = _str("address", _field(data, "address", "address"))
    try:
        return ipaddress.IPv4Interface(text)
    except ValueError:
        raise ValueError(f"`address` is not a valid IPv4 CIDR: {text!r}") from None


def _parse_interface(data: Any) -> NetworkInterface:
    what = "interface"
    data = _object(what, data)
    return NetworkInterface(
        addresses=[_parse_address(a) for a in _list("addresses", _field(data, "addresses", what))],
        routes=[_parse_route(r) for r in _list("routes", _field(data, "routes", what))],
    )


def _parse_node(data: Any):
    what = "node"
    data = _object(what, data)
    node_id = _str("id", _field(data, "id", what))
    buffer_size = _uint("bufferSizeBytes", _field(data, "bufferSizeBytes", what))

    tag = _field(data, "type", what)
    quic: Optional[QuinnConfig] = None
    if tag == "router":
        kind = NodeKind.ROUTER
    elif tag == "host":
        kind = NodeKind.HOST
        quic = parse_quinn_config(_field(data, "quic", what))
    else:
        raise ValueError(f"unknown node type `{tag}`")

    interfaces = [
        _parse_interface(i) for i in _list("interfaces", _field(data, "interfaces", what))
    ]
    duplication = (
        _float("packetDuplicationRatio", data["packetDuplicationRatio"])
        if "packetDuplicationRatio" in data
        else 0.0
    )
    loss = (
        _float("packetLossRatio", data["packetLossRatio"]) if "packetLossRatio" in data else 0.0
    )
    node = NetworkNodeSpec(
        id=node_id,
        kind=kind,
        buffer_size_bytes=buffer_size,
        interfaces=interfaces,
        packet_loss_ratio=loss,
        packet_duplication_ratio=duplication,
    )
    return node, quic


def _parse_link(data: Any) -> NetworkLinkSpec:
    what = "link"
    data = _object(what, data)
    extra_delay_ms = _uint("extra_delay_ms", data["extra_delay_ms"]) if "extra_delay_ms" in data else 0
    return NetworkLinkSpec(
        id=_str("id", _field(data, "id", what)),
        source=_ip("source", _field(data, "source", what)),
        target=_ip("target", _field(data, "target", what)),
        delay_ns=_uint("delay_ms", _field(data, "delay_ms", what)) * _NS_PER_MS,
        bandwidth_bps=_uint("bandwidth_bps", _field(data, "bandwidth_bps", what)),
        congestion_event_ratio=(
            _float("congestion_event_ratio", data["congestion_event_ratio"])
            if "congestion_event_ratio" in data
            else 0.0
        ),
        extra_delay_ns=extra_delay_ms * _NS_PER_MS,
        extra_delay_ratio=(
            _float("extra_delay_ratio", data["extra_delay_ratio"])
            if "extra_delay_ratio" in data
            else 0.0
        ),
    )


def parse_network_graph(data: Any) -> NetworkGraph:
    """Parse a network graph document (`nodes` and `links`)."""
    what = "network graph"
    data = _object(what, data)
    graph = NetworkGraph()
    for raw_node in _list("nodes", _field(data, "nodes", what)):
        node, quic = _parse_node(raw_node)
        graph.nodes.append(node)
        if quic is not None:
            graph.quic[node.id] = quic
    graph.links = [_parse_link(l) for l in _list("links", _field(data, "links", what))]
    return graph


def _optional(data: Mapping[str, Any], key: str, parse) -> Any:
    value = data.get(key)
    return None if value is None else parse(key, value)


def _parse_event(data: Any) -> NetworkEvent:
    what = "network event"
    data = _object(what, data)
    relative_time_ms = _uint("relative_time_ms", _field(data, "relative_time_ms", what))
    link = _object("link", _field(data, "link", what))

    status_name = link.get("status")
    status: Optional[UpdateLinkStatus] = None
    if status_name is not None:
        try:
            status = UpdateLinkStatus(status_name)
        except ValueError:
            raise ValueError(f"unknown link status `{status_name}`") from None

    delay_ms = _optional(link, "delay_ms", _uint)
    extra_delay_ms = _optional(link, "extra_delay_ms", _uint)
    payload = NetworkEventPayload(
        link_id=_str("id", _field(link, "id", "link")),
        status=status,
        bandwidth_bps=_optional(link, "bandwidth_bps", _uint),
        delay_ns=None if delay_ms is None else delay_ms * _NS_PER_MS,
        extra_delay_ns=None if extra_delay_ms is None else extra_delay_ms * _NS_PER_MS,
        extra_delay_ratio=_optional(link, "extra_delay_ratio", _float),
        packet_duplication_ratio=_optional(link, "packet_duplication_ratio", _float),
        packet_loss_ratio=_optional(link, "packet_loss_ratio", _float),
        congestion_event_ratio=_optional(link, "congestion_event_ratio", _float),
    )
    return NetworkEvent(relative_time_ns=relative_time_ms * _NS_PER_MS, payload=payload)


def parse_network_events(data: Any) -> List[NetworkEvent]:
    """Parse a network events document (an object holding `events`)."""
    what = "network events"
    data = _object(what, data)
    return [_parse_event(e) for e in _list("events", _field(data, "events", what))]