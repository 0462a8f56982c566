import uuid

import pytest

from netreplay.errors import (
    DisconnectedPacketReceive,
    DisconnectedPacketSend,
    InvalidSimulation,
    LinkBandwidthExceeded,
    MissingLink,
    MissingLostPacket,
    MissingNode,
    MissingPacket,
    NodeExceedsBufferSize,
    OfflinePacketReceive,
    OfflinePacketSend,
    PacketAlreadyReceived,
    PacketCreatedByRouterNode,
    TooFastPacketReceive,
)
from netreplay.spec import (
    NetworkEventPayload,
    NetworkInterface,
    NetworkLinkSpec,
    NetworkNodeSpec,
    NetworkSpec,
    NodeKind,
    UpdateLinkStatus,
)
from netreplay.stats import PacketStats
from netreplay.steps import (
    GenericPacketEvent,
    PacketDropped,
    PacketHasExtraDelay,
    PacketInTransit,
    PacketLostInTransit,
    SimulationStep,
    StepType,
)
from netreplay.verifier import SimulationVerifier

MS = 1_000_000
SIZE = 500


def make_spec(router_buffer=10_000, bandwidth=1_000_000_000, delay_ns=MS):
    nodes = [
        NetworkNodeSpec("A", NodeKind.HOST, 10_000, [NetworkInterface(["10.0.0.1/24"])]),
        NetworkNodeSpec(
            "R", NodeKind.ROUTER, router_buffer, [NetworkInterface(["10.0.0.2/24", "10.0.1.2/24"])]
        ),
        NetworkNodeSpec("B", NodeKind.HOST, 10_000, [NetworkInterface(["10.0.1.1/24"])]),
    ]
    links = [
        NetworkLinkSpec("l1", "10.0.0.1", "10.0.0.2", delay_ns, bandwidth),
        NetworkLinkSpec("l2", "10.0.1.2", "10.0.1.1", delay_ns, bandwidth),
    ]
    return NetworkSpec(nodes, links)


def in_node(t, pid, node, number=0, size=SIZE):
    return SimulationStep(t, StepType.PACKET_IN_NODE, GenericPacketEvent(pid, number, size, node))


def transit(t, pid, node, link):
    return SimulationStep(t, StepType.PACKET_IN_TRANSIT, PacketInTransit(pid, node, link))


def delivered(t, pid, node, size=SIZE):
    return SimulationStep(
        t, StepType.PACKET_DELIVERED_TO_APPLICATION, GenericPacketEvent(pid, 0, size, node)
    )


def link_event(t, link, status):
    return SimulationStep(t, StepType.NETWORK_EVENT, NetworkEventPayload(link, status))


def happy_path(pid):
    return [
        in_node(0, pid, "A"),
        transit(0, pid, "A", "l1"),
        in_node(MS, pid, "R"),
        transit(MS, pid, "R", "l2"),
        in_node(2 * MS, pid, "B"),
        delivered(2 * MS, pid, "B"),
    ]


def verify(steps, **spec_kwargs):
    return SimulationVerifier(steps, make_spec(**spec_kwargs)).verify()


def test_clean_run_has_no_errors_and_counts_traffic():
    pid = uuid.uuid4()
    result = verify(happy_path(pid))
    assert result.non_fatal_errors == []
    nodes = result.stats.stats_by_node
    assert nodes["A"].sent == PacketStats(1, SIZE)
    assert nodes["R"].received == PacketStats(1, SIZE)
    assert nodes["R"].sent == PacketStats(1, SIZE)
    assert nodes["B"].received == PacketStats(1, SIZE)
    assert nodes["B"].sent == PacketStats()
    assert set(result.stats.stats_by_link) == {"l1", "l2"}
    links = result.stats.stats_by_link
    assert links["l1"].max_used_bandwidth_bps == links["l2"].max_used_bandwidth_bps
    assert links["l1"].max_used_bandwidth_bps > 0


def test_unsorted_steps_are_ordered_by_time():
    pid = uuid.uuid4()
    steps = happy_path(pid)
    shuffled = steps[4:] + steps[:2] + steps[2:4]
    result = verify(shuffled)
    assert result.non_fatal_errors == []
    assert result.stats.stats_by_node["B"].received == PacketStats(1, SIZE)


def test_verify_is_repeatable():
    pid = uuid.uuid4()
    verifier = SimulationVerifier(happy_path(pid), make_spec())
    first = verifier.verify()
    second = verifier.verify()
    assert first.stats == second.stats


def test_empty_trace_yields_zero_stats():
    result = verify([])
    assert result.non_fatal_errors == []
    assert result.stats.stats_by_node["R"].received == PacketStats()
    assert result.stats.stats_by_link["l1"].dropped_in_transit == PacketStats()


def test_too_fast_receive():
    pid = uuid.uuid4()
    steps = [in_node(0, pid, "A"), transit(0, pid, "A", "l1"), in_node(MS // 2, pid, "R")]
    assert verify(steps).non_fatal_errors == [TooFastPacketReceive("R", "l1")]


def test_extra_delay_is_added_to_required_flight_time():
    pid = uuid.uuid4()
    steps = [
        in_node(0, pid, "A"),
        SimulationStep(0, StepType.PACKET_EXTRA_DELAY, PacketHasExtraDelay(pid, "A", MS)),
        transit(0, pid, "A", "l1"),
        in_node(MS, pid, "R"),
    ]
    assert verify(steps).non_fatal_errors == [TooFastPacketReceive("R", "l1")]


def test_offline_send():
    pid = uuid.uuid4()
    steps = [
        link_event(0, "l1", UpdateLinkStatus.DOWN),
        in_node(0, pid, "A"),
        transit(0, pid, "A", "l1"),
    ]
    assert verify(steps).non_fatal_errors == [OfflinePacketSend("A", "l1")]


def test_offline_receive_when_link_flapped_in_flight():
    pid = uuid.uuid4()
    steps = [
        in_node(0, pid, "A"),
        transit(0, pid, "A", "l1"),
        link_event(MS // 4, "l1", UpdateLinkStatus.DOWN),
        link_event(MS // 2, "l1", UpdateLinkStatus.UP),
        in_node(MS, pid, "R"),
    ]
    assert verify(steps).non_fatal_errors == [OfflinePacketReceive("R", "l1", 0, MS // 4)]


def test_disconnected_send():
    pid = uuid.uuid4()
    steps = [in_node(0, pid, "B"), transit(0, pid, "B", "l1")]
    assert verify(steps).non_fatal_errors == [DisconnectedPacketSend("B", "l1")]


def test_disconnected_receive():
    pid = uuid.uuid4()
    steps = [in_node(0, pid, "A"), transit(0, pid, "A", "l1"), in_node(MS, pid, "B")]
    assert verify(steps).non_fatal_errors == [DisconnectedPacketReceive("B", "l1")]


def test_router_creating_packet():
    pid = uuid.uuid4()
    assert verify([in_node(0, pid, "R")]).non_fatal_errors == [PacketCreatedByRouterNode("R", pid)]


def test_lost_packet_not_in_transit():
    pid = uuid.uuid4()
    steps = [SimulationStep(0, StepType.PACKET_LOST_IN_TRANSIT, PacketLostInTransit(pid, "l1"))]
    assert verify(steps).non_fatal_errors == [MissingLostPacket(pid)]


def test_lost_in_transit_counts_for_link():
    pid = uuid.uuid4()
    steps = [
        in_node(0, pid, "A"),
        transit(0, pid, "A", "l1"),
        SimulationStep(MS, StepType.PACKET_LOST_IN_TRANSIT, PacketLostInTransit(pid, "l1")),
    ]
    result = verify(steps)
    assert result.non_fatal_errors == []
    assert result.stats.stats_by_link["l1"].dropped_in_transit == PacketStats(1, SIZE)


def test_bandwidth_exceeded():
    pid = uuid.uuid4()
    steps = [in_node(0, pid, "A", size=2000), transit(0, pid, "A", "l1")]
    errors = verify(steps, bandwidth=10_000).non_fatal_errors
    assert len(errors) == 1
    error = errors[0]
    assert isinstance(error, LinkBandwidthExceeded)
    assert error.max_bps == 10_000
    assert error.observed_bps > error.max_bps
    assert error.packet_id == pid


def test_dropped_packets_are_split_by_cause():
    p1, p2 = uuid.uuid4(), uuid.uuid4()
    steps = [
        in_node(0, p1, "A"),
        in_node(0, p2, "A"),
        SimulationStep(MS, StepType.PACKET_DROPPED, PacketDropped(p1, "A", True)),
        SimulationStep(MS, StepType.PACKET_DROPPED, PacketDropped(p2, "A", False)),
    ]
    stats = verify(steps).stats.stats_by_node["A"]
    assert stats.dropped_injected == PacketStats(1, SIZE)
    assert stats.dropped_buffer_full == PacketStats(1, SIZE)
    assert stats.max_buffer_usage == 2 * SIZE


def test_out_of_order_reception():
    p1, p2 = uuid.uuid4(), uuid.uuid4()
    steps = [
        in_node(0, p2, "A", number=2),
        transit(0, p2, "A", "l1"),
        in_node(0, p1, "A", number=1),
        transit(0, p1, "A", "l1"),
        in_node(MS, p2, "R", number=2),
        in_node(MS, p1, "R", number=1),
    ]
    stats = verify(steps).stats.stats_by_node["R"]
    assert stats.received == PacketStats(2, 2 * SIZE)
    assert stats.received_out_of_order == PacketStats(1, SIZE)


def test_congestion_event_is_counted():
    pid = uuid.uuid4()
    steps = [
        in_node(0, pid, "A"),
        SimulationStep(
            0, StepType.PACKET_CONGESTION_EVENT, GenericPacketEvent(pid, 0, SIZE, "A")
        ),
    ]
    assert verify(steps).stats.stats_by_node["A"].congestion_experienced == PacketStats(1, SIZE)


def test_missing_node_is_fatal_and_keeps_earlier_errors():
    pid = uuid.uuid4()
    with pytest.raises(InvalidSimulation) as info:
        verify([in_node(0, pid, "Z")])
    assert info.value.fatal_error == MissingNode("Z")
    assert info.value.non_fatal_errors == [PacketCreatedByRouterNode("Z", pid)]


def test_missing_link_is_fatal():
    pid = uuid.uuid4()
    with pytest.raises(InvalidSimulation) as info:
        verify([in_node(0, pid, "A"), transit(0, pid, "A", "nope")])
    assert info.value.fatal_error == MissingLink("nope")


def test_sending_unknown_packet_is_fatal():
    pid = uuid.uuid4()
    with pytest.raises(InvalidSimulation) as info:
        verify([transit(0, pid, "A", "l1")])
    assert info.value.fatal_error == MissingPacket(pid)


def test_packet_received_twice_is_fatal():
    pid = uuid.uuid4()
    with pytest.raises(InvalidSimulation) as info:
        verify([in_node(0, pid, "A"), in_node(0, pid, "A")])
    assert info.value.fatal_error == PacketAlreadyReceived(pid)


def test_address_shared_by_two_nodes_is_rejected():
    spec = make_spec()
    spec.nodes[2].interfaces = [NetworkInterface(["10.0.0.1/24"])]
    with pytest.raises(ValueError, match="mapped to at least two nodes"):
        SimulationVerifier([], spec)


def test_link_with_unknown_address_is_rejected():
    spec = make_spec()
    spec.links.append(NetworkLinkSpec("l3", "192.168.5.5", "10.0.0.1", MS, 1000))
    with pytest.raises(ValueError, match="no corresponding node found for link `l3`"):
        SimulationVerifier([], spec)