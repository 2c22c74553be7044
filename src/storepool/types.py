"""Core data types and interface protocols for the library."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol, Self, TypeAlias, runtime_checkable

from storepool.constants import DEFAULT_PORT

__all__: list[str] = [
    "Address",
    "Channel",
    "ChannelFactory",
    "Credentials",
    "Endpoint",
    "FailureKind",
    "OperationArgs",
    "SessionState",
    "Timeout",
    "Timestamp",
    "TransportMode",
]


Address: TypeAlias = tuple[str, int]
Credentials: TypeAlias = Mapping[str, str]
OperationArgs: TypeAlias = Sequence[Any]
Timeout: TypeAlias = float | None
Timestamp: TypeAlias = float


@runtime_checkable
class Channel(Protocol):
    """A protocol for an established RPC channel to one endpoint."""

    @property
    def is_closed(self) -> bool:
        """Return True if the channel has been closed."""
        ...

    async def close(self) -> None:
        """Close the channel and release the underlying transport."""
        ...

    async def invoke(self, *, name: str, args: OperationArgs) -> Any:
        """Invoke a named remote procedure with positional arguments."""
        ...


ChannelFactory: TypeAlias = Callable[..., Awaitable[Channel]]


@dataclass(frozen=True, slots=True)
class Endpoint:
    """An addressable instance of the remote service."""

    host: str
    port: int = DEFAULT_PORT

    @classmethod
    def parse(cls, value: str) -> Self:
        """Parse a 'host', 'host:port' or '[v6-host]:port' descriptor."""
        if not isinstance(value, str):
            raise ValueError(f"Endpoint must be a string, got {type(value).__name__}")

        text = value.strip()
        port_text: str | None = None
        if text.startswith("["):
            host, sep, rest = text[1:].partition("]")
            if not sep:
                raise ValueError(f"Unterminated IPv6 address in endpoint '{value}'")
            if rest:
                if not rest.startswith(":"):
                    raise ValueError(f"Unexpected text after IPv6 address in endpoint '{value}'")
                port_text = rest[1:]
        elif text.count(":") == 1:
            host, port_text = text.split(":")
        else:
            host = text

        if not host:
            raise ValueError(f"Endpoint '{value}' has an empty host")
        if port_text is None:
            return cls(host=host)

        try:
            port = int(port_text)
        except ValueError:
            raise ValueError(f"Endpoint '{value}' has a non-integer port") from None
        if not (1 <= port <= 65535):
            raise ValueError(f"Endpoint '{value}' port must be between 1 and 65535")
        return cls(host=host, port=port)

    @property
    def address(self) -> Address:
        """Get the (host, port) tuple for socket APIs."""
        return (self.host, self.port)

    def __str__(self) -> str:
        """Render the endpoint as a 'host:port' descriptor."""
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


class FailureKind(StrEnum):
    """Classification of failures that drives pool behavior."""

    TRANSIENT = "transient"
    INCOMPATIBLE = "incompatible"
    OTHER = "other"


class SessionState(StrEnum):
    """Enumeration of session states."""

    OPEN = "open"
    CLOSED = "closed"


class TransportMode(StrEnum):
    """Enumeration of channel framing modes."""

    FRAMED = "framed"
    BUFFERED = "buffered"
