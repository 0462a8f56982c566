"""In-order record of simulation steps with per-packet queries."""

from __future__ import annotations

import uuid
from typing import Iterable, List, Optional, Tuple

from netreplay.steps import SimulationStep, StepType


class SimulationStepper:
    """Collects steps as they are recorded."""

    def __init__(self, steps: Iterable[SimulationStep] = ()) -> None:
        self._steps: List[SimulationStep] = list(steps)

    def __len__(self) -> int:
        return len(self._steps)

    def record(self, step: SimulationStep) -> None:
        self._steps.append(step)

    def steps(self) -> List[SimulationStep]:
        """A copy of the recorded steps, in recording order."""
        return list(self._steps)

    def _in_node_steps(self, packet_id: uuid.UUID):
        for step in self._steps:
            if step.kind is StepType.PACKET_IN_NODE and step.data.packet_id == packet_id:
                yield step

    def get_packet_hops(self, packet_id: uuid.UUID) -> List[Tuple[int, str]]:
        """Times (ns) and node ids at which the packet was present in a node."""
        return [(s.relative_time_ns, s.data.node_id) for s in self._in_node_steps(packet_id)]

    def get_packet_path(self, packet_id: uuid.UUID) -> List[str]:
        return [node_id for _, node_id in self.get_packet_hops(packet_id)]

    def get_packet_arrived_at(self, packet_id: uuid.UUID, node_id: str) -> Optional[int]:
        """First time (ns) the packet was seen in the given node, if ever."""
        return next(
            (s.relative_time_ns for s in self._in_node_steps(packet_id) if s.data.node_id == node_id),
            None,
        )