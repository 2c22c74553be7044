"""A client-side session pool for multi-endpoint storage RPC services."""

from .config import PoolConfig
from .constants import ErrorCodes
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    IncompatibleAPIError,
    MaxRetriesExceededError,
    NoSessionAvailableError,
    PoolClosedError,
    ProtocolError,
    RemoteError,
    SerializationError,
    StorePoolError,
    TimedOutError,
    TransportError,
    UnavailableError,
)
from .monitor import PoolMonitor
from .pool import PoolDiagnostics, SessionPool
from .session import Session, SessionDiagnostics
from .transport import RpcChannel
from .types import Channel, Endpoint, FailureKind, SessionState, TransportMode
from .version import __version__

__all__: list[str] = [
    "AuthenticationError",
    "Channel",
    "ConfigurationError",
    "Endpoint",
    "ErrorCodes",
    "FailureKind",
    "IncompatibleAPIError",
    "MaxRetriesExceededError",
    "NoSessionAvailableError",
    "PoolClosedError",
    "PoolConfig",
    "PoolDiagnostics",
    "PoolMonitor",
    "ProtocolError",
    "RemoteError",
    "RpcChannel",
    "SerializationError",
    "Session",
    "SessionDiagnostics",
    "SessionPool",
    "SessionState",
    "StorePoolError",
    "TimedOutError",
    "TransportError",
    "TransportMode",
    "UnavailableError",
    "__version__",
]
