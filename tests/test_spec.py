import ipaddress

import pytest

from netreplay.spec import (
    NetworkEvent,
    NetworkEventPayload,
    NetworkInterface,
    NetworkLinkSpec,
    NetworkNodeSpec,
    NodeKind,
    Route,
    UpdateLinkStatus,
)


def test_payload_round_trip():
    payload = NetworkEventPayload(
        link_id="link-1",
        status=UpdateLinkStatus.DOWN,
        bandwidth_bps=1000,
        delay_ns=5_000_000,
        packet_loss_ratio=0.25,
    )
    assert NetworkEventPayload.from_dict(payload.to_dict()) == payload


def test_payload_to_dict_uses_status_value():
    data = NetworkEventPayload(link_id="l", status=UpdateLinkStatus.UP).to_dict()
    assert data["status"] == "up"
    assert data["link_id"] == "l"
    assert data["bandwidth_bps"] is None


def test_payload_from_dict_defaults_missing_fields():
    payload = NetworkEventPayload.from_dict({"link_id": "l"})
    assert payload == NetworkEventPayload(link_id="l")


def test_payload_unknown_status_rejected():
    with pytest.raises(ValueError):
        NetworkEventPayload.from_dict({"link_id": "l", "status": "sideways"})


def test_payload_missing_link_id_rejected():
    with pytest.raises(ValueError):
        NetworkEventPayload.from_dict({"status": "up"})


def test_payload_negative_delay_rejected():
    with pytest.raises(ValueError):
        NetworkEventPayload.from_dict({"link_id": "l", "delay_ns": -1})


def test_status_str():
    status = NetworkEventPayload.from_dict({"link_id": "l", "status": "down"}).status
    assert status is UpdateLinkStatus.DOWN
    assert str(status) == "down"


def test_interface_addresses_are_parsed():
    interface = NetworkInterface(addresses=["10.0.0.1/24"])
    assert interface.addresses[0].ip == ipaddress.IPv4Address("10.0.0.1")


def test_route_parses_addresses():
    route = Route(destination="10.0.0.0/24", next="10.0.0.254", cost=1)
    assert ipaddress.IPv4Address("10.0.0.7") in route.destination
    assert route.next == ipaddress.IPv4Address("10.0.0.254")


def test_node_kind_is_converted():
    node = NetworkNodeSpec(id="n", kind="host", buffer_size_bytes=10)
    assert node.kind is NodeKind.HOST


def test_link_spec_parses_endpoints():
    link = NetworkLinkSpec(id="l", source="10.0.0.1", target="10.0.0.2", delay_ns=1, bandwidth_bps=8)
    assert link.target == ipaddress.IPv4Address("10.0.0.2")
    assert link.extra_delay_ns == 0


def test_network_event_holds_payload():
    event = NetworkEvent(relative_time_ns=3, payload=NetworkEventPayload(link_id="x"))
    assert event.payload.link_id == "x"