"""Packet counters collected per node and per link."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class PacketStats:
    """Number of packets and their total size in bytes."""

    packets: int = 0
    bytes: int = 0

    def track_one(self, size_bytes: int) -> None:
        self.packets += 1
        self.bytes += size_bytes


@dataclass
class NodeStats:
    """Traffic statistics for a single network node."""

    sent: PacketStats = field(default_factory=PacketStats)
    received: PacketStats = field(default_factory=PacketStats)
    dropped_injected: PacketStats = field(default_factory=PacketStats)
    dropped_buffer_full: PacketStats = field(default_factory=PacketStats)
    duplicates: PacketStats = field(default_factory=PacketStats)
    received_out_of_order: PacketStats = field(default_factory=PacketStats)
    congestion_experienced: PacketStats = field(default_factory=PacketStats)
    max_buffer_usage: int = 0


@dataclass
class LinkStats:
    """Traffic statistics for a single network link."""

    dropped_in_transit: PacketStats = field(default_factory=PacketStats)
    max_used_bandwidth_bps: int = 0