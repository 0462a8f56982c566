"""Console reports of verified simulations, and a cooperative cancellation token."""

from __future__ import annotations

import asyncio
import math
from typing import Mapping

from netreplay.verifier import VerifiedSimulation


def print_max_buffer_usage_per_node(verified: VerifiedSimulation) -> None:
    """Print every node's peak buffer usage, largest first."""
    print("--- Max buffer usage per node ---")
    ordered = sorted(
        verified.stats.stats_by_node.items(),
        key=lambda item: (-item[1].max_buffer_usage, item[0]),
    )
    for node_id, stats in ordered:
        print(
            f"* {node_id}: {stats.max_buffer_usage} bytes "
            f"({stats.dropped_buffer_full.packets} packets dropped due to buffer being full)"
        )


def _format_ratio(used_bps: int, bandwidth_bps: int) -> str:
    if bandwidth_bps == 0:
        ratio = math.nan if used_bps == 0 else math.inf
    else:
        ratio = used_bps / bandwidth_bps * 100.0
    if math.isnan(ratio):
        return "NaN"
    return f"{ratio:.2f}"


def print_link_stats(verified: VerifiedSimulation, link_bandwidths: Mapping[str, int]) -> None:
    """Print losses and peak bandwidth use per link, ordered by link id.

    `link_bandwidths` maps each link id to its bandwidth in bits per second.
    """
    if verified.stats.stats_by_link:
        print("--- Link stats ---")
    for link_id, stats in sorted(verified.stats.stats_by_link.items()):
        print(f"* {link_id}:")
        print(
            f"|-> Lost in transit {stats.dropped_in_transit.packets} packets "
            f"({stats.dropped_in_transit.bytes} bytes)"
        )
        ratio = _format_ratio(stats.max_used_bandwidth_bps, link_bandwidths[link_id])
        print(
            f"|-> Max used bandwidth (bps): {stats.max_used_bandwidth_bps} "
            f"({ratio}% of the link's bandwidth)"
        )


def print_node_stats(verified: VerifiedSimulation, server_node_id: str, client_node_id: str) -> None:
    """Print traffic statistics of the client and the server node."""
    for role, name in (("client", client_node_id), ("server", server_node_id)):
        stats = verified.stats.stats_by_node[name]
        print(f"* {name} ({role})")
        print(f"  * Sent packets: {stats.sent.packets} ({stats.sent.bytes} bytes)")
        print(
            f"    | {stats.duplicates.packets} packets duplicated in transit "
            f"({stats.duplicates.bytes} bytes)"
        )
        print(
            f"    | {stats.congestion_experienced.packets} packets marked with the CE ECN "
            f"codepoint in transit ({stats.congestion_experienced.bytes} bytes)"
        )
        dropped_packets = stats.dropped_injected.packets + stats.dropped_buffer_full.packets
        dropped_bytes = stats.dropped_injected.bytes + stats.dropped_buffer_full.bytes
        print(f"    | {dropped_packets} packets dropped in transit ({dropped_bytes} bytes)")
        print(f"  * Received packets: {stats.received.packets} ({stats.received.bytes} bytes)")
        print(
            f"    | {stats.received_out_of_order.packets} packets received out of order "
            f"({stats.received_out_of_order.bytes} bytes)"
        )


class CancellationToken:
    """A flag that tasks can poll or wait on until it is set."""

    def __init__(self) -> None:
        self._cancelled = False
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._cancelled = True
        self._event.set()

    async def cancelled(self) -> None:
        """Return once the token has been cancelled."""
        if not self._cancelled:
            await self._event.wait()

    def is_cancelled(self) -> bool:
        return self._cancelled