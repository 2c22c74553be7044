"""A validated, exclusive session to one storage endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import Any, Self

from storepool.constants import LOWEST_COMPATIBLE_VERSION
from storepool.exceptions import IncompatibleAPIError, TransportError
from storepool.transport.channel import RpcChannel
from storepool.types import (
    Channel,
    ChannelFactory,
    Credentials,
    Endpoint,
    OperationArgs,
    SessionState,
    Timeout,
    TransportMode,
)
from storepool.utils import get_logger, get_timestamp

__all__: list[str] = ["Session", "SessionDiagnostics"]

logger = get_logger(name=__name__)


@dataclass(kw_only=True)
class SessionDiagnostics:
    """A snapshot of session diagnostics."""

    endpoint: str
    keyspace: str
    op_count: int
    state: SessionState
    created_at: float


class Session:
    """An established, authenticated channel bound to a single endpoint."""

    keyspace: str
    channel: Channel
    endpoint: str
    op_count: int

    def __init__(self, *, keyspace: str, channel: Channel, endpoint: str) -> None:
        """Initialize the session handle around an established channel."""
        self.keyspace = keyspace
        self.channel = channel
        self.endpoint = endpoint
        self.op_count = 0
        self._created_at = get_timestamp()
        self._state = SessionState.OPEN

    @classmethod
    async def establish(
        cls,
        *,
        keyspace: str,
        endpoint: str,
        credentials: Credentials | None = None,
        framed_transport: bool = True,
        send_timeout: Timeout = None,
        recv_timeout: Timeout = None,
        channel_factory: ChannelFactory | None = None,
    ) -> Self:
        """Open, validate and prepare a session, or raise without leaving one behind."""
        try:
            target = Endpoint.parse(endpoint)
        except ValueError as e:
            raise TransportError(f"Invalid endpoint: {e}", endpoint=endpoint) from e

        factory = channel_factory if channel_factory is not None else RpcChannel.connect
        mode = TransportMode.FRAMED if framed_transport else TransportMode.BUFFERED
        channel = await factory(endpoint=target, mode=mode, send_timeout=send_timeout, recv_timeout=recv_timeout)

        try:
            await _check_api_version(channel=channel)
            await channel.invoke(name="set_keyspace", args=[keyspace])
            if credentials:
                await channel.invoke(name="login", args=[{"credentials": dict(credentials)}])
        except BaseException:
            await channel.close()
            raise

        logger.debug("Session established to %s for keyspace '%s'", endpoint, keyspace)
        return cls(keyspace=keyspace, channel=channel, endpoint=endpoint)

    @property
    def created_at(self) -> float:
        """Get the timestamp at which the session was established."""
        return self._created_at

    @property
    def is_closed(self) -> bool:
        """Return True if the session or its channel is closed."""
        return self._state == SessionState.CLOSED or self.channel.is_closed

    @property
    def state(self) -> SessionState:
        """Get the current state of the session."""
        return SessionState.CLOSED if self.is_closed else SessionState.OPEN

    async def __aenter__(self) -> Self:
        """Enter async context."""
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        """Exit async context, closing the session."""
        await self.close()

    async def close(self) -> None:
        """Close the session's channel."""
        self._state = SessionState.CLOSED
        await self.channel.close()
        logger.debug("Session to %s closed after %d operations", self.endpoint, self.op_count)

    def diagnostics(self) -> SessionDiagnostics:
        """Get diagnostic information about the session."""
        return SessionDiagnostics(
            endpoint=self.endpoint,
            keyspace=self.keyspace,
            op_count=self.op_count,
            state=self.state,
            created_at=self._created_at,
        )

    async def invoke(self, operation: str, args: OperationArgs = ()) -> Any:
        """Invoke a named remote procedure on the session's channel."""
        return await self.channel.invoke(name=operation, args=args)

    def __repr__(self) -> str:
        """Provide a developer-friendly representation."""
        return (
            f"<Session endpoint={self.endpoint} keyspace={self.keyspace} "
            f"op_count={self.op_count} state={self.state}>"
        )


async def _check_api_version(*, channel: Channel) -> None:
    """Reject servers whose API major version is below the supported minimum."""
    version = await channel.invoke(name="describe_version", args=[])
    major_text = str(version).split(".", 1)[0]
    try:
        major = int(major_text)
    except ValueError:
        raise IncompatibleAPIError(
            f"Could not parse the server's API version '{version}'",
            server_version=str(version),
            required_version=LOWEST_COMPATIBLE_VERSION,
        ) from None

    if major < LOWEST_COMPATIBLE_VERSION:
        raise IncompatibleAPIError(
            f"The server's API version is too low to be compatible (server: {major}, "
            f"lowest compatible version: {LOWEST_COMPATIBLE_VERSION})",
            server_version=str(version),
            required_version=LOWEST_COMPATIBLE_VERSION,
        )
