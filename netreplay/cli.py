"""Command-line options and loading of the network configuration files."""

from __future__ import annotations

import argparse
import ipaddress
import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from netreplay.netconfig import NetworkGraph, parse_network_events, parse_network_graph
from netreplay.spec import NetworkEvent

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass
class NetworkOpt:
    """Options shared by every simulation command."""

    client_ip_address: IpAddress
    server_ip_address: IpAddress
    network_graph: Path
    network_events: Path
    non_deterministic: bool = False
    quinn_rng_seed: int = 0
    network_rng_seed: int = 42


@dataclass
class QuicOpt:
    network: NetworkOpt
    requests: int = 10
    concurrent_connections: int = 1
    concurrent_streams_per_connection: int = 1
    response_size: int = 1024
    schc_observer: bool = False
    schc_rules: Optional[Path] = None
    schc_nodes: Optional[List[str]] = None
    schc_debug: bool = False
    schc_compress: bool = False
    schc_compress_nodes: Optional[List[str]] = None
    schc_dynamic_quic_rules: bool = False


@dataclass
class PingOpt:
    duration_ms: int
    interval_ms: int
    network: NetworkOpt
    deadline_ms: int = 10_000


@dataclass
class ThroughputOpt:
    duration_ms: int
    network: NetworkOpt
    send_bps: Optional[int] = None


@dataclass
class NetworkConfig:
    network_graph: NetworkGraph
    network_events: List[NetworkEvent] = field(default_factory=list)


Options = Union[QuicOpt, PingOpt, ThroughputOpt]


def _uint(bits: int) -> Callable[[str], int]:
    maximum = 2**bits - 1

    def parse(text: str) -> int:
        try:
            value = int(text, 10)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid digit found in string: {text!r}") from None
        if not 0 <= value <= maximum:
            raise argparse.ArgumentTypeError(f"{text} is not in 0..={maximum}")
        return value

    parse.__name__ = f"u{bits}"
    return parse


def _comma_list(text: str) -> List[str]:
    return text.split(",")


def _add_network_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--client-ip-address", type=ipaddress.ip_address, required=True,
                        help="The IP address of the node used as a client")
    parser.add_argument("--server-ip-address", type=ipaddress.ip_address, required=True,
                        help="The IP address of the node used as a server")
    parser.add_argument("--non-deterministic", action="store_true",
                        help="Use a non-constant seed for the random number generators")
    parser.add_argument("--quinn-rng-seed", type=_uint(64), default=0,
                        help="Random seed of the QUIC endpoints")
    parser.add_argument("--network-rng-seed", type=_uint(64), default=42,
                        help="Random seed of the simulated network")
    parser.add_argument("--network-graph", type=Path, required=True,
                        help="Path to the JSON file containing the network graph")
    parser.add_argument("--network-events", type=Path, required=True,
                        help="Path to the JSON file containing the network events")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="netreplay")
    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    quic = commands.add_parser("quic", help="Run the QUIC simulation")
    quic.add_argument("--requests", type=_uint(32), default=10)
    quic.add_argument("--concurrent-connections", type=_uint(8), default=1)
    quic.add_argument("--concurrent-streams-per-connection", type=_uint(32), default=1)
    quic.add_argument("--response-size", type=_uint(64), default=1024)
    quic.add_argument("--schc-observer", action="store_true")
    quic.add_argument("--schc-rules", type=Path, default=None)
    quic.add_argument("--schc-nodes", type=_comma_list, action="extend", default=None)
    quic.add_argument("--schc-debug", action="store_true")
    quic.add_argument("--schc-compress", action="store_true")
    quic.add_argument("--schc-compress-nodes", type=_comma_list, action="extend", default=None)
    quic.add_argument("--schc-dynamic-quic-rules", action="store_true")
    _add_network_args(quic)

    ping = commands.add_parser("ping", help="Run a ping simulation at the UDP level")
    ping.add_argument("--duration-ms", type=_uint(64), required=True)
    ping.add_argument("--interval-ms", type=_uint(64), required=True)
    ping.add_argument("--deadline-ms", type=_uint(64), default=10_000)
    _add_network_args(ping)

    throughput = commands.add_parser(
        "throughput", help="Run a throughput simulation at the UDP level"
    )
    throughput.add_argument("--duration-ms", type=_uint(64), required=True)
    throughput.add_argument("--send-bps", type=_uint(64), default=None)
    _add_network_args(throughput)

    commands.add_parser("rt", help="Return the identifier of the async runtime used")
    return parser


_COMMANDS = {"quic": QuicOpt, "ping": PingOpt, "throughput": ThroughputOpt}


def parse_args(argv: Optional[Sequence[str]] = None) -> Tuple[str, Optional[Options]]:
    """Parse the command line into the command name and its options.

    The `rt` command takes no options and yields None.
    """
    namespace = _build_parser().parse_args(argv)
    if namespace.command == "rt":
        return "rt", None

    network = NetworkOpt(**{f.name: getattr(namespace, f.name) for f in fields(NetworkOpt)})
    cls = _COMMANDS[namespace.command]
    kwargs = {f.name: getattr(namespace, f.name) for f in fields(cls) if f.name != "network"}
    return namespace.command, cls(network=network, **kwargs)


def load_json(path: Union[str, Path]) -> Any:
    """Read and parse a JSON file."""
    path = Path(path)
    try:
        with path.open("rb") as handle:
            raw = handle.read()
    except OSError as exc:
        raise OSError(exc.errno, f"unable to open file at `{path}`") from exc
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ValueError(f"error parsing JSON from `{path}`: {exc}") from exc


def _load(path: Path, parse: Callable[[Any], Any]) -> Any:
    data = load_json(path)
    try:
        return parse(data)
    except ValueError as exc:
        raise ValueError(f"error parsing JSON from `{path}`: {exc}") from exc


def load_network_config(options: NetworkOpt) -> NetworkConfig:
    """Load the network graph and network events named by the options."""
    return NetworkConfig(
        network_graph=_load(options.network_graph, parse_network_graph),
        network_events=_load(options.network_events, parse_network_events),
    )