"""Custom congestion controllers and a connection id generator for QUIC endpoints."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Optional, Protocol

_U64_MAX = 2**64 - 1


class Controller(Protocol):
    """Interface of a congestion controller."""

    def on_sent(self, now: Any, bytes_sent: int, last_packet_number: int) -> None: ...

    def on_ack(self, now: Any, sent: Any, bytes_acked: int, app_limited: bool, rtt: Any) -> None: ...

    def on_end_acks(
        self, now: Any, in_flight: int, app_limited: bool, largest_packet_num_acked: Optional[int]
    ) -> None: ...

    def on_congestion_event(
        self, now: Any, sent: Any, is_persistent_congestion: bool, lost_bytes: int
    ) -> None: ...

    def on_mtu_update(self, new_mtu: int) -> None: ...

    def window(self) -> int: ...

    def initial_window(self) -> int: ...

    def clone(self) -> "Controller": ...


class ControllerFactory(Protocol):
    def build(self, now: Any, current_mtu: int) -> Controller: ...


@dataclass(frozen=True)
class NoCCConfig:
    """Configuration of the controller without congestion control."""

    # Largest possible value, i.e. practically unbounded
    initial_window: int = _U64_MAX

    def build(self, now: Any, current_mtu: int) -> "NoCC":
        return NoCC(self, now, current_mtu)


class NoCC:
    """No congestion control: a fixed window that never changes.

    Events are only counted for inspection; none of them affects the window.
    """

    def __init__(self, config: NoCCConfig, now: Any = None, current_mtu: int = 0) -> None:
        self._config = config
        self._window = config.initial_window
        self.mtu = current_mtu
        self.bytes_sent = 0
        self.bytes_acked = 0
        self.in_flight = 0
        self.congestion_events = 0

    def on_sent(self, now: Any, bytes_sent: int, last_packet_number: int) -> None:
        self.bytes_sent += bytes_sent

    def on_ack(self, now: Any, sent: Any, bytes_acked: int, app_limited: bool, rtt: Any) -> None:
        self.bytes_acked += bytes_acked

    def on_end_acks(
        self, now: Any, in_flight: int, app_limited: bool, largest_packet_num_acked: Optional[int]
    ) -> None:
        self.in_flight = in_flight

    def on_congestion_event(
        self, now: Any, sent: Any, is_persistent_congestion: bool, lost_bytes: int
    ) -> None:
        self.congestion_events += 1

    def on_mtu_update(self, new_mtu: int) -> None:
        self.mtu = new_mtu

    def window(self) -> int:
        return self._window

    def initial_window(self) -> int:
        return self._config.initial_window

    def clone(self) -> "NoCC":
        return copy.copy(self)


class EcnCc:
    """Wraps a controller and hides congestion events caused by packet loss."""

    def __init__(self, inner: Controller) -> None:
        self._inner = inner

    def on_sent(self, now: Any, bytes_sent: int, last_packet_number: int) -> None:
        self._inner.on_sent(now, bytes_sent, last_packet_number)

    def on_ack(self, now: Any, sent: Any, bytes_acked: int, app_limited: bool, rtt: Any) -> None:
        self._inner.on_ack(now, sent, bytes_acked, app_limited, rtt)

    def on_end_acks(
        self, now: Any, in_flight: int, app_limited: bool, largest_packet_num_acked: Optional[int]
    ) -> None:
        self._inner.on_end_acks(now, in_flight, app_limited, largest_packet_num_acked)

    def on_congestion_event(
        self, now: Any, sent: Any, is_persistent_congestion: bool, lost_bytes: int
    ) -> None:
        # Only ECN-triggered events (no lost bytes) are forwarded
        if lost_bytes == 0:
            self._inner.on_congestion_event(now, sent, is_persistent_congestion, lost_bytes)

    def on_mtu_update(self, new_mtu: int) -> None:
        self._inner.on_mtu_update(new_mtu)

    def window(self) -> int:
        return self._inner.window()

    def initial_window(self) -> int:
        return self._inner.initial_window()

    def clone(self) -> "EcnCc":
        return EcnCc(self._inner.clone())


class EcnCcFactory:
    """Factory holding the controller factory it delegates to."""

    def __init__(self, factory: ControllerFactory) -> None:
        self._factory = factory

    def build(self, now: Any, current_mtu: int) -> Controller:
        return self._factory.build(now, current_mtu)


@dataclass(frozen=True)
class NoConnectionIdGenerator:
    """Generates zero-length connection ids; by default they never expire."""

    lifetime: Optional[float] = None

    def generate_cid(self) -> bytes:
        return b""

    def cid_len(self) -> int:
        return len(self.generate_cid())

    def cid_lifetime(self) -> Optional[float]:
        return self.lifetime