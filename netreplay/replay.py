"""State of nodes and links while a recorded simulation is replayed."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional, Tuple
import uuid

from netreplay.errors import MissingPacket, PacketAlreadyReceived
from netreplay.spec import UpdateLinkStatus
from netreplay.stats import NodeStats
from netreplay.steps import GenericPacketEvent, PacketDropped

_NS_PER_SECOND = 1_000_000_000

# The MTU once IPv6 and UDP headers are counted; slower links get a longer window.
_MTU_BYTES = 9984


@dataclass
class ReplayedPacket:
    size_bytes: int
    extra_delay_ns: int = 0


class ReplayedLink:
    """Status and bandwidth usage of one link during replay."""

    def __init__(self) -> None:
        self.status = UpdateLinkStatus.UP
        self.last_down_ns: Optional[int] = None
        self.max_bandwidth_usage_bps = 0
        self._bandwidth_usage_bits = 0
        self._window: Deque[Tuple[int, int]] = deque()

    def is_up(self) -> bool:
        return self.status is UpdateLinkStatus.UP

    def set_status(self, status: UpdateLinkStatus, timestamp_ns: int) -> None:
        status = UpdateLinkStatus(status)
        if status is UpdateLinkStatus.DOWN:
            self.last_down_ns = timestamp_ns
        self.status = status

    def packet_sent(self, sent_at_ns: int, packet_size_bytes: int, link_bandwidth_bps: int) -> int:
        """Account for a sent packet and return the bandwidth in use, in bps."""
        window_seconds = 10 if link_bandwidth_bps < _MTU_BYTES else 1
        window_ns = window_seconds * _NS_PER_SECOND

        while self._window and self._window[0][0] + window_ns < sent_at_ns:
            _, bits = self._window.popleft()
            self._bandwidth_usage_bits -= bits

        bits = packet_size_bytes * 8
        self._window.append((sent_at_ns, bits))
        self._bandwidth_usage_bits += bits

        usage = self._bandwidth_usage_bits // window_seconds
        self.max_bandwidth_usage_bps = max(self.max_bandwidth_usage_bps, usage)
        return usage


class ReplayedNode:
    """Buffered packets and traffic counters of one node during replay."""

    def __init__(self) -> None:
        self.packets: Dict[uuid.UUID, ReplayedPacket] = {}
        self.highest_received = 0
        self.buffer_usage = 0
        self.stats = NodeStats()

    def packet_created(self, event: GenericPacketEvent) -> None:
        self._add_to_buffer(event.packet_id, event.packet_size_bytes)

    def packet_received(self, event: GenericPacketEvent) -> None:
        if self.highest_received > event.packet_number:
            self.stats.received_out_of_order.track_one(event.packet_size_bytes)
        self.highest_received = max(self.highest_received, event.packet_number)
        self.stats.received.track_one(event.packet_size_bytes)
        self._add_to_buffer(event.packet_id, event.packet_size_bytes)

    def packet_duplicated(self, event: GenericPacketEvent) -> None:
        self.stats.duplicates.track_one(event.packet_size_bytes)
        self._add_to_buffer(event.packet_id, event.packet_size_bytes)

    def packet_sent(self, packet_id: uuid.UUID) -> ReplayedPacket:
        packet = self._remove_from_buffer(packet_id)
        self.stats.sent.track_one(packet.size_bytes)
        return packet

    def packet_delivered(self, packet_id: uuid.UUID) -> ReplayedPacket:
        return self._remove_from_buffer(packet_id)

    def packet_dropped(self, event: PacketDropped) -> None:
        packet = self._remove_from_buffer(event.packet_id)
        if event.injected:
            self.stats.dropped_injected.track_one(packet.size_bytes)
        else:
            self.stats.dropped_buffer_full.track_one(packet.size_bytes)

    def packet_ecn(self, event: GenericPacketEvent) -> None:
        self.stats.congestion_experienced.track_one(event.packet_size_bytes)

    def packet_has_extra_delay(self, packet_id: uuid.UUID, delay_ns: int) -> None:
        packet = self.packets.get(packet_id)
        if packet is None:
            raise MissingPacket(packet_id=packet_id)
        packet.extra_delay_ns = delay_ns

    def update_max_buffer_usage(self) -> int:
        """Fold the current buffer usage into the maximum and return the maximum."""
        self.stats.max_buffer_usage = max(self.buffer_usage, self.stats.max_buffer_usage)
        return self.stats.max_buffer_usage

    def _add_to_buffer(self, packet_id: uuid.UUID, size_bytes: int) -> None:
        already_exists = packet_id in self.packets
        self.packets[packet_id] = ReplayedPacket(size_bytes)
        if already_exists:
            raise PacketAlreadyReceived(packet_id=packet_id)
        self.buffer_usage += size_bytes

    def _remove_from_buffer(self, packet_id: uuid.UUID) -> ReplayedPacket:
        packet = self.packets.pop(packet_id, None)
        if packet is None:
            raise MissingPacket(packet_id=packet_id)
        if packet.size_bytes > self.buffer_usage:
            raise RuntimeError("buffer usage went below zero")
        self.buffer_usage -= packet.size_bytes
        return packet