"""Records simulation steps as packets move through the network."""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, List, Set

from netreplay.spec import NetworkEventPayload, NetworkSpec
from netreplay.stepper import SimulationStepper
from netreplay.steps import (
    GenericPacketEvent,
    PacketDropped,
    PacketHasExtraDelay,
    PacketInTransit,
    PacketLostInTransit,
    SimulationStep,
    StepPayload,
    StepType,
)
from netreplay.transmit import OwnedTransmit
from netreplay.verifier import SimulationVerifier


@dataclass
class InTransitPacket:
    """A packet travelling through the simulated network."""

    id: uuid.UUID
    number: int
    source_id: str
    transmit: OwnedTransmit

    @property
    def size_bytes(self) -> int:
        return self.transmit.packet_size()


class SimulationStepTracer:
    """Thread-safe recorder of steps, timed relative to its creation."""

    def __init__(self, spec: NetworkSpec, clock: Callable[[], int] = time.monotonic_ns) -> None:
        self._clock = clock
        self._start_ns = clock()
        self._network_spec = spec
        self._lock = threading.Lock()
        self._stepper = SimulationStepper()
        self._warned_dropped_from_buffer: Set[str] = set()

    def _elapsed_ns(self) -> int:
        return self._clock() - self._start_ns

    def _elapsed_secs(self) -> float:
        return self._elapsed_ns() / 1e9

    def is_fresh(self) -> bool:
        return self._elapsed_ns() == 0

    def stepper(self) -> SimulationStepper:
        """A snapshot of the steps recorded so far."""
        with self._lock:
            return SimulationStepper(self._stepper.steps())

    def steps(self) -> List[SimulationStep]:
        with self._lock:
            return self._stepper.steps()

    def verifier(self) -> SimulationVerifier:
        return SimulationVerifier(self.steps(), self._network_spec)

    def _record(self, kind: StepType, data: StepPayload) -> None:
        with self._lock:
            self._stepper.record(SimulationStep(self._elapsed_ns(), kind, data))

    def _generic(self, packet: InTransitPacket, node_id: str) -> GenericPacketEvent:
        return GenericPacketEvent(
            packet_id=packet.id,
            packet_number=packet.number,
            packet_size_bytes=packet.size_bytes,
            node_id=node_id,
        )

    def track_link_event(self, event: NetworkEventPayload) -> None:
        self._record(StepType.NETWORK_EVENT, event)

    def track_packet_in_node(self, node_id: str, packet: InTransitPacket) -> None:
        self._record(StepType.PACKET_IN_NODE, self._generic(packet, node_id))

    def track_packet_in_transit(self, node_id: str, link_id: str, packet: InTransitPacket) -> None:
        self._record(
            StepType.PACKET_IN_TRANSIT,
            PacketInTransit(packet_id=packet.id, node_id=node_id, link_id=link_id),
        )

    def track_dropped_randomly(self, packet: InTransitPacket, node_id: str) -> None:
        self._record(
            StepType.PACKET_DROPPED,
            PacketDropped(packet_id=packet.id, node_id=node_id, injected=True),
        )
        print(f"{self._elapsed_secs():.2f}s WARN {packet.source_id} packet lost (#{packet.number})!")

    def track_dropped_from_buffer(self, packet: InTransitPacket, node_id: str) -> None:
        self._record(
            StepType.PACKET_DROPPED,
            PacketDropped(packet_id=packet.id, node_id=node_id, injected=False),
        )
        with self._lock:
            first_dropped = node_id not in self._warned_dropped_from_buffer
            self._warned_dropped_from_buffer.add(node_id)
        if first_dropped:
            print(
                f"{self._elapsed_secs():.2f}s WARN packet #{packet.number} dropped by node "
                f"`{node_id}` because its outbound buffer is full! (Note: further warnings for "
                "this link will be omitted to avoid cluttering the output)"
            )

    def track_lost_in_transit(self, packet: InTransitPacket, link_id: str) -> None:
        self._record(
            StepType.PACKET_LOST_IN_TRANSIT,
            PacketLostInTransit(packet_id=packet.id, link_id=link_id),
        )

    def track_injected_failures(
        self,
        packet: InTransitPacket,
        duplicate: bool,
        extra_delay_ns: int,
        congestion_experienced: bool,
        node_id: str,
    ) -> None:
        if extra_delay_ns:
            self._record(
                StepType.PACKET_EXTRA_DELAY,
                PacketHasExtraDelay(
                    packet_id=packet.id, node_id=node_id, extra_delay_ns=extra_delay_ns
                ),
            )

        if duplicate:
            self._record(StepType.PACKET_DUPLICATED, self._generic(packet, node_id))
            print(
                f"{self._elapsed_secs():.2f}s WARN {node_id} sent duplicate packet "
                f"(#{packet.number})!"
            )

        if congestion_experienced:
            self._record(StepType.PACKET_CONGESTION_EVENT, self._generic(packet, node_id))
            print(
                f"{self._elapsed_secs():.2f}s WARN {node_id} marked packet with CE ECN "
                f"(#{packet.number})!"
            )

    def track_read_by_host(self, host_id: str, packet: InTransitPacket) -> None:
        self._record(StepType.PACKET_DELIVERED_TO_APPLICATION, self._generic(packet, host_id))