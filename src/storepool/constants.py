"""Protocol constants and library-wide defaults."""

from __future__ import annotations

from enum import IntEnum
from typing import Any

__all__: list[str] = [
    "BASE_BACKOFF",
    "BUFFERED_READ_SIZE",
    "BUFFERED_WRITE_SIZE",
    "DEFAULT_CREDENTIALS",
    "DEFAULT_FRAMED_TRANSPORT",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_MONITORING_INTERVAL",
    "DEFAULT_PORT",
    "DEFAULT_RECV_TIMEOUT",
    "DEFAULT_RECYCLE",
    "DEFAULT_SEND_TIMEOUT",
    "DEFAULT_SERVERS",
    "ErrorCodes",
    "FRAME_HEADER_FORMAT",
    "FRAME_HEADER_SIZE",
    "HIGH_FAILURE_RATIO",
    "LOWEST_COMPATIBLE_VERSION",
    "MAX_FRAME_SIZE",
    "MIN_POOL_SIZE",
    "get_default_pool_config",
]

BASE_BACKOFF: float = 0.1
BUFFERED_READ_SIZE: int = 1024
BUFFERED_WRITE_SIZE: int = 1024
FRAME_HEADER_FORMAT: str = "!I"
FRAME_HEADER_SIZE: int = 4
HIGH_FAILURE_RATIO: float = 0.5
LOWEST_COMPATIBLE_VERSION: int = 17
MAX_FRAME_SIZE: int = 16384000
MIN_POOL_SIZE: int = 5

DEFAULT_CREDENTIALS: dict[str, str] | None = None
DEFAULT_FRAMED_TRANSPORT: bool = True
DEFAULT_MAX_RETRIES: int = 5
DEFAULT_MONITORING_INTERVAL: float = 15.0
DEFAULT_PORT: int = 9160
DEFAULT_RECV_TIMEOUT: float = 1.0
DEFAULT_RECYCLE: int = 10000
DEFAULT_SEND_TIMEOUT: float = 1.0
DEFAULT_SERVERS: tuple[str, ...] = ("localhost:9160",)


class ErrorCodes(IntEnum):
    """Library error codes carried by every StorePoolError."""

    NO_ERROR = 0x0
    INTERNAL_ERROR = 0x1
    CONFIGURATION_ERROR = 0x2
    TRANSPORT_ERROR = 0x10
    PROTOCOL_ERROR = 0x11
    SERIALIZATION_ERROR = 0x12
    INCOMPATIBLE_API = 0x20
    AUTHENTICATION_FAILED = 0x21
    REMOTE_ERROR = 0x30
    REMOTE_TIMED_OUT = 0x31
    REMOTE_UNAVAILABLE = 0x32
    NO_SESSION_AVAILABLE = 0x40
    POOL_CLOSED = 0x41
    MAX_RETRIES_EXCEEDED = 0x42


_DEFAULT_POOL_CONFIG: dict[str, Any] = {
    "credentials": DEFAULT_CREDENTIALS,
    "framed_transport": DEFAULT_FRAMED_TRANSPORT,
    "max_retries": DEFAULT_MAX_RETRIES,
    "monitoring_interval": DEFAULT_MONITORING_INTERVAL,
    "recv_timeout": DEFAULT_RECV_TIMEOUT,
    "recycle": DEFAULT_RECYCLE,
    "send_timeout": DEFAULT_SEND_TIMEOUT,
    "servers": list(DEFAULT_SERVERS),
}


def get_default_pool_config() -> dict[str, Any]:
    """Return a copy of the default pool configuration."""
    config = _DEFAULT_POOL_CONFIG.copy()
    config["servers"] = list(DEFAULT_SERVERS)
    return config
