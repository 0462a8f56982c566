"""Recorded steps of a simulation and their JSON replay-log form."""

from __future__ import annotations

import enum
import json
import uuid
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Iterable, List, Mapping, Union

from netreplay.spec import NetworkEventPayload


class StepType(enum.Enum):
    """What happened to a packet or to the network during a step."""

    PACKET_IN_NODE = "packetInNode"
    PACKET_DROPPED = "packetDropped"
    PACKET_LOST_IN_TRANSIT = "packetLostInTransit"
    PACKET_DUPLICATED = "packetDuplicated"
    PACKET_EXTRA_DELAY = "packetExtraDelay"
    PACKET_CONGESTION_EVENT = "packetCongestionEvent"
    PACKET_IN_TRANSIT = "packetInTransit"
    PACKET_DELIVERED_TO_APPLICATION = "packetDeliveredToApplication"
    NETWORK_EVENT = "networkEvent"


@dataclass
class GenericPacketEvent:
    packet_id: uuid.UUID
    packet_number: int
    packet_size_bytes: int
    node_id: str


@dataclass
class PacketDropped:
    packet_id: uuid.UUID
    node_id: str
    injected: bool


@dataclass
class PacketHasExtraDelay:
    packet_id: uuid.UUID
    node_id: str
    extra_delay_ns: int


@dataclass
class PacketInTransit:
    packet_id: uuid.UUID
    node_id: str
    link_id: str


@dataclass
class PacketLostInTransit:
    packet_id: uuid.UUID
    link_id: str


StepPayload = Union[
    GenericPacketEvent,
    PacketDropped,
    PacketHasExtraDelay,
    PacketInTransit,
    PacketLostInTransit,
    NetworkEventPayload,
]

_PAYLOAD_TYPES: Dict[StepType, type] = {
    StepType.PACKET_IN_NODE: GenericPacketEvent,
    StepType.PACKET_DROPPED: PacketDropped,
    StepType.PACKET_LOST_IN_TRANSIT: PacketLostInTransit,
    StepType.PACKET_DUPLICATED: GenericPacketEvent,
    StepType.PACKET_EXTRA_DELAY: PacketHasExtraDelay,
    StepType.PACKET_CONGESTION_EVENT: GenericPacketEvent,
    StepType.PACKET_IN_TRANSIT: PacketInTransit,
    StepType.PACKET_DELIVERED_TO_APPLICATION: GenericPacketEvent,
    StepType.NETWORK_EVENT: NetworkEventPayload,
}


def _parse_uuid(name: str, value: Any) -> uuid.UUID:
    if not isinstance(value, str):
        raise ValueError(f"`{name}` must be a string")
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ValueError(f"`{name}` is not a valid UUID: {value!r}") from None


def _parse_str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"`{name}`: expected a string")
    return value


def _parse_uint(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"`{name}` must be a non-negative integer")
    return value


def _parse_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"`{name}` must be a boolean")
    return value


_FIELD_PARSERS: Dict[str, Callable[[str, Any], Any]] = {
    "packet_id": _parse_uuid,
    "node_id": _parse_str,
    "link_id": _parse_str,
    "packet_number": _parse_uint,
    "packet_size_bytes": _parse_uint,
    "extra_delay_ns": _parse_uint,
    "injected": _parse_bool,
}


def _payload_to_dict(payload: StepPayload) -> dict:
    if isinstance(payload, NetworkEventPayload):
        return payload.to_dict()
    out = {}
    for f in fields(payload):
        value = getattr(payload, f.name)
        out[f.name] = str(value) if isinstance(value, uuid.UUID) else value
    return out


def _payload_from_dict(cls: type, data: Any) -> StepPayload:
    if cls is NetworkEventPayload:
        return NetworkEventPayload.from_dict(data)
    if not isinstance(data, Mapping):
        raise ValueError("step data must be an object")
    kwargs = {}
    for f in fields(cls):
        if f.name not in data:
            raise ValueError(f"missing field `{f.name}`")
        kwargs[f.name] = _FIELD_PARSERS[f.name](f.name, data[f.name])
    return cls(**kwargs)


@dataclass
class SimulationStep:
    """One recorded event, stamped with nanoseconds since the simulation start."""

    relative_time_ns: int
    kind: StepType
    data: StepPayload

    def __post_init__(self) -> None:
        self.kind = StepType(self.kind)
        expected = _PAYLOAD_TYPES[self.kind]
        if not isinstance(self.data, expected):
            raise TypeError(
                f"step of type `{self.kind.value}` needs {expected.__name__} data, "
                f"got {type(self.data).__name__}"
            )

    def to_dict(self) -> dict:
        return {
            "relative_time_ns": self.relative_time_ns,
            "type": self.kind.value,
            "data": _payload_to_dict(self.data),
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "SimulationStep":
        if not isinstance(data, Mapping):
            raise ValueError("simulation step must be an object")
        for key in ("relative_time_ns", "type", "data"):
            if key not in data:
                raise ValueError(f"missing field `{key}`")
        relative_time_ns = _parse_uint("relative_time_ns", data["relative_time_ns"])
        try:
            kind = StepType(data["type"])
        except ValueError:
            raise ValueError(f"unknown step type `{data['type']}`") from None
        payload = _payload_from_dict(_PAYLOAD_TYPES[kind], data["data"])
        return SimulationStep(relative_time_ns, kind, payload)


def steps_to_json(steps: Iterable[SimulationStep]) -> str:
    """Render steps as a pretty-printed JSON array."""
    return json.dumps([step.to_dict() for step in steps], indent=2)


def steps_from_json(text: Union[str, bytes]) -> List[SimulationStep]:
    """Parse a JSON array of steps, as written by steps_to_json."""
    parsed = json.loads(text)
    if not isinstance(parsed, list):
        raise ValueError("replay log must be a JSON array")
    return [SimulationStep.from_dict(item) for item in parsed]