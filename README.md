# netreplay

netreplay records what happens to every packet in a simulated network and
checks afterwards that the recorded history is physically possible.

A simulation reports a trace of steps: a packet appears in a node, it is put
on a link, it is dropped, duplicated, delayed, marked with a congestion
codepoint, lost in transit, or handed to an application; links go up and down.
netreplay stores those steps and turns them into a JSON replay log and back.
It replays them against the network description and reports per-node and
per-link statistics. It also flags anything that could not have happened.

The package has no third-party dependencies.

## What gets checked

While replaying a trace, `SimulationVerifier` tracks every node's buffer and
every link's state. It reports, as `netreplay.errors.NonFatalError`
subclasses:

* `NodeExceedsBufferSize`: a node's buffer usage grew beyond its configured
  buffer size,
* `PacketCreatedByRouterNode`: a packet appeared out of nowhere at a router
  (only hosts create packets),
* `OfflinePacketSend` / `DisconnectedPacketSend`: a packet was sent over a link
  that was down, or over a link whose source is another node,
* `DisconnectedPacketReceive`: a packet was received over a link whose target
  is another node,
* `TooFastPacketReceive`: a packet arrived sooner than the link's delay plus
  any injected extra delay allows,
* `OfflinePacketReceive`: the link went down while the packet was in flight,
* `LinkBandwidthExceeded`: a link carried more bits per second than its
  bandwidth (measured over a 1 s window, or 10 s for links slower than
  9984 bps),
* `MissingLostPacket`: a packet was reported lost in transit but was not in
  transit.

These problems are collected and the replay continues. Some inconsistencies
make the rest of the trace meaningless (`netreplay.errors.FatalError`
subclasses): `MissingNode`, `MissingLink`, `MissingPacket` (a packet that is
not where the trace says it is) and `PacketAlreadyReceived`. Those stop the
replay with `InvalidSimulation`, which carries `fatal_error` together with
`non_fatal_errors`, every problem found before it.

Building a verifier raises `ValueError` when the network description itself
is inconsistent: an address used by two nodes, or a link whose source or
target address belongs to no node.

## Modules

* `netreplay.steps`: `SimulationStep` (a `relative_time_ns`, a `StepType` and
  its data), the data classes `GenericPacketEvent`, `PacketDropped`,
  `PacketHasExtraDelay`, `PacketInTransit`, `PacketLostInTransit`, and
  `steps_to_json` / `steps_from_json` for the replay-log format. All times are
  in nanoseconds.
* `netreplay.stepper`: `SimulationStepper`, an in-order record of steps with
  helpers to follow one packet: `get_packet_hops`, `get_packet_path` and
  `get_packet_arrived_at`.
* `netreplay.tracer`: `SimulationStepTracer`, the thread-safe recorder a
  simulation calls as packets move (`track_packet_in_node`,
  `track_packet_in_transit`, `track_dropped_randomly`,
  `track_dropped_from_buffer`, `track_lost_in_transit`,
  `track_injected_failures`, `track_read_by_host`, `track_link_event`), and
  `InTransitPacket`. Steps are stamped relative to the tracer's creation; the
  clock can be passed in (it defaults to `time.monotonic_ns`).
* `netreplay.verifier`: `SimulationVerifier`, whose `verify()` returns a
  `VerifiedSimulation` holding `SimulationStats` (`stats_by_node`,
  `stats_by_link`) and the non-fatal errors.
* `netreplay.replay`: the per-node and per-link replay state
  (`ReplayedNode`, `ReplayedLink`, `ReplayedPacket`).
* `netreplay.stats`: `PacketStats`, `NodeStats` and `LinkStats`.
* `netreplay.errors`: every error the verifier can report.
* `netreplay.spec`: the network model (`NetworkSpec`, `NetworkNodeSpec`,
  `NetworkLinkSpec`, `NetworkInterface`, `Route`, `NodeKind`) and network
  events (`NetworkEvent`, `NetworkEventPayload`, `UpdateLinkStatus`).
* `netreplay.netconfig`: `parse_network_graph`, `parse_network_events` and
  `parse_quinn_config` for the JSON documents described below. A
  `NetworkGraph` gives its `to_spec()` and per-host `quic_configs()`
  (`QuinnConfig`, `CongestionControlAlgorithm`).
* `netreplay.transmit`: `OwnedTransmit` and `EcnCodepoint`;
  `packet_size()` adds the UDP header and the IPv4 or IPv6 header to the
  payload length.
* `netreplay.cli`: `parse_args`, which parses the `quic`, `ping`,
  `throughput` and `rt` command lines into `(command, options)` (`QuicOpt`,
  `PingOpt`, `ThroughputOpt`, each with a `NetworkOpt`; `None` for `rt`),
  `load_json`, and `load_network_config`, which loads the graph and events
  files named by a `NetworkOpt` into a `NetworkConfig`.
* `netreplay.report`: `print_node_stats`, `print_max_buffer_usage_per_node`
  and `print_link_stats` (which takes a mapping from link id to bandwidth in
  bps), plus `CancellationToken` for stopping asyncio tasks.
* `netreplay.congestion`: the fixed-window controller `NoCC` (built from
  `NoCCConfig`), the `EcnCc` wrapper that ignores congestion events caused by
  packet loss (built through `EcnCcFactory`), and
  `NoConnectionIdGenerator`, which produces zero-length connection ids.

## Example

Load a network graph, record a trace, verify it and print the statistics:

```python
from pathlib import Path

from netreplay.cli import load_json
from netreplay.errors import InvalidSimulation
from netreplay.netconfig import parse_network_graph
from netreplay.report import print_max_buffer_usage_per_node, print_node_stats
from netreplay.tracer import SimulationStepTracer

graph = parse_network_graph(load_json(Path("network-graph.json")))
spec = graph.to_spec()

tracer = SimulationStepTracer(spec)
# ... a simulation reports into `tracer` ...

try:
    verified = tracer.verifier().verify()
except InvalidSimulation as exc:
    print(exc)
else:
    print_node_stats(verified, server_node_id="Server", client_node_id="Client")
    print_max_buffer_usage_per_node(verified)
    for error in verified.non_fatal_errors:
        print(f"* {error}")
```

A replay log written with `steps_to_json` can be read back and inspected:

```python
import uuid
from pathlib import Path

from netreplay.stepper import SimulationStepper
from netreplay.steps import steps_from_json

stepper = SimulationStepper(steps_from_json(Path("replay-log.json").read_text()))
packet_id = uuid.UUID("00000000-0000-4000-8000-000000000001")
print(stepper.get_packet_path(packet_id))
```

## Network graph format

The network graph is a JSON object with `nodes` and `links`.

Each node has an `id`, a `type` (`router` or `host`), a `bufferSizeBytes`, and
`interfaces`. An interface holds `addresses`, a list of objects whose
`address` is an IPv4 address in CIDR notation, and `routes`, each with a
`destination` range, a `next` hop address and a `cost`. A node may also set
`packetDuplicationRatio` and `packetLossRatio` (default 0).

Hosts also carry a `quic` object with `initial_rtt_ms`,
`maximum_idle_timeout_ms`, `packet_threshold`, `mtu_discovery`,
`maximize_send_and_receive_windows`, `ack_eliciting_threshold`,
`max_ack_delay_ms`, `congestion_controller` (`cubic`, `new_reno`, `no_cc` or
`ecn_reno`) and optionally `initial_congestion_window_packets`.

Each link has an `id`, a `source` and `target` IP address, `bandwidth_bps` and
`delay_ms`, and may set `extra_delay_ms`, `extra_delay_ratio` and
`congestion_event_ratio`.

Network events are a JSON object with an `events` list. Each event has a
`relative_time_ms` and a `link` update: the link `id` plus any of `status`
(`up` or `down`), `bandwidth_bps`, `delay_ms`, `extra_delay_ms`,
`extra_delay_ratio`, `packet_duplication_ratio`, `packet_loss_ratio` and
`congestion_event_ratio`. Millisecond values are stored in nanoseconds once
parsed.

Malformed documents raise `ValueError` naming the offending field.

## What the package does not do

netreplay records, replays and checks traces; it does not simulate a network.
There is no in-memory network that moves packets between nodes, no QUIC
client or server, no UDP ping or throughput runner and no pcap export.
`parse_args` parses the `quic`, `ping`, `throughput` and `rt` command lines,
but nothing in the package runs them, and the package installs no command.
The congestion controllers are plain Python objects with the controller
interface; they are not wired into any QUIC implementation.