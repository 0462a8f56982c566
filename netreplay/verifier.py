"""Replays a recorded simulation against its network spec and checks it."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set

from netreplay.errors import (
    DisconnectedPacketReceive,
    DisconnectedPacketSend,
    FatalError,
    InvalidSimulation,
    LinkBandwidthExceeded,
    MissingLink,
    MissingLostPacket,
    MissingNode,
    NodeExceedsBufferSize,
    NonFatalError,
    OfflinePacketReceive,
    OfflinePacketSend,
    PacketCreatedByRouterNode,
    TooFastPacketReceive,
)
from netreplay.replay import ReplayedLink, ReplayedNode
from netreplay.spec import NetworkSpec, NodeKind
from netreplay.stats import LinkStats, NodeStats
from netreplay.steps import SimulationStep, StepType


@dataclass
class SimulationStats:
    """Statistics gathered while replaying, keyed by node and link id."""

    stats_by_node: Dict[str, NodeStats] = field(default_factory=dict)
    stats_by_link: Dict[str, LinkStats] = field(default_factory=dict)


@dataclass
class VerifiedSimulation:
    """Outcome of a replay that met no fatal error."""

    stats: SimulationStats
    non_fatal_errors: List[NonFatalError] = field(default_factory=list)


@dataclass(frozen=True)
class _LinkMetadata:
    source_node_id: str
    target_node_id: str
    delay_ns: int
    bandwidth_bps: int


@dataclass
class _InFlightPacket:
    size_bytes: int
    sent_at_ns: int
    extra_delay_ns: int
    link_id: str


class SimulationVerifier:
    """Checks recorded steps for consistency with a network spec."""

    def __init__(self, steps: Iterable[SimulationStep], network_spec: NetworkSpec) -> None:
        self._steps: List[SimulationStep] = sorted(steps, key=lambda s: s.relative_time_ns)
        self._buffer_sizes: Dict[str, int] = {}
        self._host_nodes: Set[str] = set()
        self._link_metadata: Dict[str, _LinkMetadata] = {}

        ip_to_node: Dict[object, str] = {}
        for node in network_spec.nodes:
            if node.kind is NodeKind.HOST:
                self._host_nodes.add(node.id)
            self._buffer_sizes[node.id] = int(node.buffer_size_bytes)
            for interface in node.interfaces:
                for addr in interface.addresses:
                    existing = ip_to_node.get(addr.ip)
                    ip_to_node[addr.ip] = node.id
                    if existing is not None and existing != node.id:
                        raise ValueError(
                            f"address `{addr}` is mapped to at least two nodes: "
                            f"`{node.id}` and `{existing}`"
                        )

        for link in network_spec.links:
            source_id = ip_to_node.get(link.source)
            if source_id is None:
                raise ValueError(
                    f"no corresponding node found for link `{link.id}` (source address "
                    f"`{link.source}` is not used by any node)"
                )
            target_id = ip_to_node.get(link.target)
            if target_id is None:
                raise ValueError(
                    f"no corresponding node found for link `{link.id}` (target address "
                    f"`{link.target}` is not used by any node)"
                )
            self._link_metadata[link.id] = _LinkMetadata(
                source_node_id=source_id,
                target_node_id=target_id,
                delay_ns=int(link.delay_ns),
                bandwidth_bps=int(link.bandwidth_bps),
            )

    def verify(self) -> VerifiedSimulation:
        """Replay all steps; raise InvalidSimulation on the first fatal error."""
        replay = _Replay(self._buffer_sizes, self._host_nodes, self._link_metadata)
        return replay.run(self._steps)


class _Replay:
    """Mutable state of a single verification run."""

    def __init__(
        self,
        buffer_sizes: Dict[str, int],
        host_nodes: Set[str],
        link_metadata: Dict[str, _LinkMetadata],
    ) -> None:
        self.buffer_sizes = buffer_sizes
        self.host_nodes = host_nodes
        self.link_metadata = link_metadata
        self.nodes: Dict[str, ReplayedNode] = {node_id: ReplayedNode() for node_id in buffer_sizes}
        self.links: Dict[str, ReplayedLink] = {link_id: ReplayedLink() for link_id in link_metadata}
        self.in_flight: Dict[uuid.UUID, _InFlightPacket] = {}
        self.errors: List[NonFatalError] = []
        self.stats_by_link: Dict[str, LinkStats] = {}
        self.handlers: Dict[StepType, Callable[[SimulationStep], None]] = {
            StepType.PACKET_IN_NODE: self._packet_in_node,
            StepType.PACKET_DUPLICATED: self._packet_duplicated,
            StepType.PACKET_DROPPED: self._packet_dropped,
            StepType.PACKET_LOST_IN_TRANSIT: self._packet_lost_in_transit,
            StepType.PACKET_IN_TRANSIT: self._packet_in_transit,
            StepType.PACKET_CONGESTION_EVENT: self._packet_congestion_event,
            StepType.PACKET_DELIVERED_TO_APPLICATION: self._packet_delivered,
            StepType.PACKET_EXTRA_DELAY: self._packet_extra_delay,
            StepType.NETWORK_EVENT: self._network_event,
        }

    def run(self, steps: Iterable[SimulationStep]) -> VerifiedSimulation:
        last_step_time = 0
        last_buffer_usage_update: Optional[int] = None
        for step in steps:
            if step.relative_time_ns != last_step_time:
                self._update_max_buffer_usage()
                last_buffer_usage_update = last_step_time
                last_step_time = step.relative_time_ns
            try:
                self.handlers[step.kind](step)
            except FatalError as exc:
                raise InvalidSimulation(exc, self.errors) from exc

        if last_buffer_usage_update != last_step_time:
            self._update_max_buffer_usage()

        stats_by_node = {node_id: node.stats for node_id, node in self.nodes.items()}
        for link_id, link in self.links.items():
            stats = self.stats_by_link.setdefault(link_id, LinkStats())
            stats.max_used_bandwidth_bps = link.max_bandwidth_usage_bps

        return VerifiedSimulation(
            stats=SimulationStats(stats_by_node=stats_by_node, stats_by_link=self.stats_by_link),
            non_fatal_errors=self.errors,
        )

    def _update_max_buffer_usage(self) -> None:
        for node_id, node in self.nodes.items():
            max_usage = node.update_max_buffer_usage()
            buffer_size = self.buffer_sizes[node_id]
            if buffer_size < max_usage:
                self.errors.append(
                    NodeExceedsBufferSize(
                        node_id=node_id,
                        buffer_size_bytes=buffer_size,
                        max_buffer_usage=max_usage,
                    )
                )
                return

    def _node(self, node_id: str) -> ReplayedNode:
        node = self.nodes.get(node_id)
        if node is None:
            raise MissingNode(node_id=node_id)
        return node

    def _link(self, link_id: str) -> ReplayedLink:
        link = self.links.get(link_id)
        if link is None:
            raise MissingLink(link_id=link_id)
        return link

    def _packet_in_node(self, step: SimulationStep) -> None:
        s = step.data
        in_flight = self.in_flight.pop(s.packet_id, None)
        if in_flight is None:
            # Not in flight, so it must have just been created at a host
            if s.node_id not in self.host_nodes:
                self.errors.append(
                    PacketCreatedByRouterNode(node_id=s.node_id, packet_id=s.packet_id)
                )
            self._node(s.node_id).packet_created(s)
            return

        metadata = self.link_metadata[in_flight.link_id]
        if s.node_id != metadata.target_node_id:
            self.errors.append(
                DisconnectedPacketReceive(node_id=s.node_id, link_id=in_flight.link_id)
            )

        time_in_flight = step.relative_time_ns - in_flight.sent_at_ns
        if time_in_flight < metadata.delay_ns + in_flight.extra_delay_ns:
            self.errors.append(TooFastPacketReceive(node_id=s.node_id, link_id=in_flight.link_id))

        link = self._link(in_flight.link_id)
        last_down = link.last_down_ns
        if last_down is not None and last_down >= in_flight.sent_at_ns:
            self.errors.append(
                OfflinePacketReceive(
                    node_id=s.node_id,
                    link_id=in_flight.link_id,
                    packet_sent_ns=in_flight.sent_at_ns,
                    link_last_down_ns=last_down,
                )
            )

        self._node(s.node_id).packet_received(s)

    def _packet_duplicated(self, step: SimulationStep) -> None:
        self._node(step.data.node_id).packet_duplicated(step.data)

    def _packet_dropped(self, step: SimulationStep) -> None:
        self._node(step.data.node_id).packet_dropped(step.data)

    def _packet_lost_in_transit(self, step: SimulationStep) -> None:
        s = step.data
        packet = self.in_flight.pop(s.packet_id, None)
        if packet is None:
            self.errors.append(MissingLostPacket(packet_id=s.packet_id))
            return
        stats = self.stats_by_link.setdefault(s.link_id, LinkStats())
        stats.dropped_in_transit.track_one(packet.size_bytes)

    def _packet_in_transit(self, step: SimulationStep) -> None:
        s = step.data
        packet = self._node(s.node_id).packet_sent(s.packet_id)

        metadata = self.link_metadata.get(s.link_id)
        if metadata is None:
            raise MissingLink(link_id=s.link_id)
        if s.node_id != metadata.source_node_id:
            self.errors.append(DisconnectedPacketSend(node_id=s.node_id, link_id=s.link_id))

        link = self._link(s.link_id)
        if not link.is_up():
            self.errors.append(OfflinePacketSend(node_id=s.node_id, link_id=s.link_id))

        used_bps = link.packet_sent(step.relative_time_ns, packet.size_bytes, metadata.bandwidth_bps)
        if metadata.bandwidth_bps < used_bps:
            self.errors.append(
                LinkBandwidthExceeded(
                    node_id=s.node_id,
                    link_id=s.link_id,
                    packet_id=s.packet_id,
                    max_bps=metadata.bandwidth_bps,
                    observed_bps=used_bps,
                )
            )

        self.in_flight[s.packet_id] = _InFlightPacket(
            size_bytes=packet.size_bytes,
            sent_at_ns=step.relative_time_ns,
            extra_delay_ns=packet.extra_delay_ns,
            link_id=s.link_id,
        )

    def _packet_congestion_event(self, step: SimulationStep) -> None:
        self._node(step.data.node_id).packet_ecn(step.data)

    def _packet_delivered(self, step: SimulationStep) -> None:
        self._node(step.data.node_id).packet_delivered(step.data.packet_id)

    def _packet_extra_delay(self, step: SimulationStep) -> None:
        s = step.data
        self._node(s.node_id).packet_has_extra_delay(s.packet_id, s.extra_delay_ns)

    def _network_event(self, step: SimulationStep) -> None:
        payload = step.data
        if payload.status is not None:
            self._link(payload.link_id).set_status(payload.status, step.relative_time_ns)