"""Problems found while replaying and checking a recorded simulation."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple


class _DescribedError(Exception):
    """An error with named fields and a message built from them."""

    _fields: Tuple[str, ...] = ()
    _template = ""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        if len(args) > len(self._fields):
            raise TypeError(
                f"{type(self).__name__} takes at most {len(self._fields)} arguments"
            )
        values: Dict[str, Any] = dict(zip(self._fields, args))
        for name, value in kwargs.items():
            if name not in self._fields:
                raise TypeError(f"{type(self).__name__} got an unexpected field `{name}`")
            if name in values:
                raise TypeError(f"{type(self).__name__} got field `{name}` twice")
            values[name] = value
        missing = [name for name in self._fields if name not in values]
        if missing:
            raise TypeError(f"{type(self).__name__} is missing fields: {', '.join(missing)}")
        for name in self._fields:
            setattr(self, name, values[name])
        super().__init__(self._template.format(**values))

    def _values(self) -> Tuple[Any, ...]:
        return tuple(getattr(self, name) for name in self._fields)

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self._values() == other._values()  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self), self._values()))

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}={getattr(self, name)!r}" for name in self._fields)
        return f"{type(self).__name__}({inner})"


class NonFatalError(_DescribedError):
    """An inconsistency that does not stop verification."""


class NodeExceedsBufferSize(NonFatalError):
    _fields = ("node_id", "buffer_size_bytes", "max_buffer_usage")
    _template = (
        "network node `{node_id}` is storing {max_buffer_usage} bytes, "
        "but its buffer is of {buffer_size_bytes} bytes"
    )


class PacketCreatedByRouterNode(NonFatalError):
    _fields = ("node_id", "packet_id")
    _template = "network node `{node_id}` created a packet out of thin air (packet `{packet_id}`)"


class MissingLostPacket(NonFatalError):
    _fields = ("packet_id",)
    _template = (
        "packet `{packet_id}` was marked as lost in transit, but according to the trace "
        "the packet was not in transit at that moment"
    )


class OfflinePacketSend(NonFatalError):
    _fields = ("node_id", "link_id")
    _template = (
        "network node `{node_id}` sent a packet through link `{link_id}`, "
        "but said link was offline at this point in time"
    )


class DisconnectedPacketSend(NonFatalError):
    _fields = ("node_id", "link_id")
    _template = (
        "network node `{node_id}` sent a packet through link `{link_id}`, but according to "
        "the network graph the node is not connected to that link as a sender"
    )


class DisconnectedPacketReceive(NonFatalError):
    _fields = ("node_id", "link_id")
    _template = (
        "network node `{node_id}` received a packet through link `{link_id}`, but according to "
        "the network graph the node is not connected to that link as a receiver"
    )


class TooFastPacketReceive(NonFatalError):
    _fields = ("node_id", "link_id")
    _template = (
        "network node `{node_id}` received a packet through link `{link_id}` "
        "faster than the link's delay allows"
    )


class OfflinePacketReceive(NonFatalError):
    _fields = ("node_id", "link_id", "packet_sent_ns", "link_last_down_ns")
    _template = (
        "network node `{node_id}` received a packet through link `{link_id}`, but said link "
        "became unavailable while the packet was in flight (packet sent at {packet_sent_ns} ns, "
        "link was last down at {link_last_down_ns} ns)"
    )


class LinkBandwidthExceeded(NonFatalError):
    _fields = ("node_id", "link_id", "packet_id", "max_bps", "observed_bps")
    _template = (
        "network node `{node_id}` sent packet `{packet_id}` through link `{link_id}`, but the "
        "link didn't have enough available bandwidth (link bandwidth is {max_bps} bps, but used "
        "bandwidth was {observed_bps} bps)"
    )


class FatalError(_DescribedError):
    """An inconsistency after which the replay cannot continue."""


class MissingNode(FatalError):
    _fields = ("node_id",)
    _template = "network node `{node_id}` was referenced but does not exist"


class MissingLink(FatalError):
    _fields = ("link_id",)
    _template = "network link `{link_id}` was referenced but does not exist"


class MissingPacket(FatalError):
    _fields = ("packet_id",)
    _template = (
        "network node references packet `{packet_id}`, but according to the trace "
        "the packet is not present in the node at this moment"
    )


class PacketAlreadyReceived(FatalError):
    _fields = ("packet_id",)
    _template = "network node received packet with id `{packet_id}` multiple times"


class InvalidSimulation(Exception):
    """Verification failed; carries the fatal error and what was found before it."""

    def __init__(
        self,
        fatal_error: Optional[FatalError] = None,
        non_fatal_errors: Iterable[NonFatalError] = (),
    ) -> None:
        self.fatal_error = fatal_error
        self.non_fatal_errors: List[NonFatalError] = list(non_fatal_errors)
        super().__init__(self._render())

    def _render(self) -> str:
        parts: List[str] = []
        if self.fatal_error is not None:
            parts.append("Fatal error:\n")
            parts.append(str(self.fatal_error))
        if self.non_fatal_errors:
            parts.append("\nOther errors:\n")
        for error in self.non_fatal_errors:
            parts.append(f"* {error}\n")
        return "".join(parts)

    def __str__(self) -> str:
        return self._render()