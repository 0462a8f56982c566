import uuid

from netreplay.stepper import SimulationStepper
from netreplay.steps import GenericPacketEvent, PacketInTransit, SimulationStep, StepType

P1 = uuid.UUID(int=1)
P2 = uuid.UUID(int=2)


def _in_node(t, pid, node):
    return SimulationStep(
        t,
        StepType.PACKET_IN_NODE,
        GenericPacketEvent(packet_id=pid, packet_number=0, packet_size_bytes=10, node_id=node),
    )


def _stepper():
    stepper = SimulationStepper()
    stepper.record(_in_node(10, P1, "a"))
    stepper.record(SimulationStep(11, StepType.PACKET_IN_TRANSIT, PacketInTransit(P1, "a", "l")))
    stepper.record(_in_node(15, P2, "a"))
    stepper.record(_in_node(20, P1, "b"))
    stepper.record(_in_node(30, P1, "c"))
    return stepper


def test_packet_hops_in_order():
    assert _stepper().get_packet_hops(P1) == [(10, "a"), (20, "b"), (30, "c")]


def test_packet_path():
    assert _stepper().get_packet_path(P1) == ["a", "b", "c"]
    assert _stepper().get_packet_path(P2) == ["a"]


def test_unknown_packet_has_no_hops():
    assert _stepper().get_packet_hops(uuid.UUID(int=99)) == []


def test_arrived_at_returns_first_match():
    stepper = _stepper()
    stepper.record(_in_node(40, P1, "b"))
    assert stepper.get_packet_arrived_at(P1, "b") == 20


def test_arrived_at_missing_is_none():
    assert _stepper().get_packet_arrived_at(P2, "c") is None


def test_steps_returns_copy():
    stepper = _stepper()
    steps = stepper.steps()
    steps.clear()
    assert len(stepper.steps()) == 5


def test_constructed_from_existing_steps():
    original = _stepper()
    copy = SimulationStepper(original.steps())
    copy.record(_in_node(50, P2, "z"))
    assert len(original) == 5
    assert copy.get_packet_path(P2) == ["a", "z"]