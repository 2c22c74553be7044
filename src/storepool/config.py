"""Structured configuration objects for the session pool."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Self

from storepool.constants import (
    DEFAULT_CREDENTIALS,
    DEFAULT_FRAMED_TRANSPORT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MONITORING_INTERVAL,
    DEFAULT_RECV_TIMEOUT,
    DEFAULT_RECYCLE,
    DEFAULT_SEND_TIMEOUT,
    DEFAULT_SERVERS,
)
from storepool.exceptions import ConfigurationError
from storepool.types import Credentials, Endpoint, Timeout, TransportMode

__all__: list[str] = ["PoolConfig"]


@dataclass(kw_only=True)
class PoolConfig:
    """Configuration for a session pool and the sessions it establishes."""

    servers: list[str] = field(default_factory=lambda: list(DEFAULT_SERVERS))
    max_retries: int = DEFAULT_MAX_RETRIES
    send_timeout: Timeout = DEFAULT_SEND_TIMEOUT
    recv_timeout: Timeout = DEFAULT_RECV_TIMEOUT
    recycle: int = DEFAULT_RECYCLE
    credentials: Credentials | None = DEFAULT_CREDENTIALS
    framed_transport: bool = DEFAULT_FRAMED_TRANSPORT
    monitoring_interval: float = DEFAULT_MONITORING_INTERVAL

    @classmethod
    def from_dict(cls, *, config_dict: dict[str, Any]) -> Self:
        """Create a configuration from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        filtered = {key: value for key, value in config_dict.items() if key in known}
        return cls(**filtered)

    def __post_init__(self) -> None:
        """Normalize and validate the configuration."""
        if isinstance(self.servers, str):
            self.servers = [self.servers]
        else:
            self.servers = list(self.servers) if self.servers is not None else []
        if self.credentials is not None and isinstance(self.credentials, Mapping):
            self.credentials = dict(self.credentials)
        self.validate()

    @property
    def endpoints(self) -> list[Endpoint]:
        """Get the parsed endpoint list in configured order."""
        return [Endpoint.parse(server) for server in self.servers]

    @property
    def transport_mode(self) -> TransportMode:
        """Get the channel framing mode."""
        return TransportMode.FRAMED if self.framed_transport else TransportMode.BUFFERED

    def copy(self) -> Self:
        """Create a deep copy of the configuration."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert the configuration to a dictionary."""
        return asdict(self)

    def update(self, **kwargs: Any) -> Self:
        """Create a new config with updated values."""
        new_config = self.copy()
        for key, value in kwargs.items():
            if not hasattr(new_config, key):
                raise ConfigurationError(f"Unknown configuration key: '{key}'", config_key=key)
            setattr(new_config, key, value)
        new_config.__post_init__()
        return new_config

    def validate(self) -> None:
        """Validate the integrity and correctness of the configuration values."""
        if not self.servers:
            raise ConfigurationError("servers cannot be empty", config_key="servers")
        for server in self.servers:
            try:
                Endpoint.parse(server)
            except ValueError as e:
                raise ConfigurationError(f"Invalid server '{server}': {e}", config_key="servers") from e

        _validate_positive_int(value=self.max_retries, key="max_retries")
        _validate_positive_int(value=self.recycle, key="recycle")
        _validate_timeout(value=self.send_timeout, key="send_timeout")
        _validate_timeout(value=self.recv_timeout, key="recv_timeout")
        if self.monitoring_interval is None:
            raise ConfigurationError("Timeout must be a number: monitoring_interval", config_key="monitoring_interval")
        _validate_timeout(value=self.monitoring_interval, key="monitoring_interval")

        if not isinstance(self.framed_transport, bool):
            raise ConfigurationError("framed_transport must be a boolean", config_key="framed_transport")

        if self.credentials is not None:
            if not isinstance(self.credentials, Mapping):
                raise ConfigurationError("credentials must be a mapping", config_key="credentials")
            for key, value in self.credentials.items():
                if not isinstance(key, str) or not isinstance(value, str):
                    raise ConfigurationError("credentials keys and values must be strings", config_key="credentials")


def _validate_positive_int(*, value: Any, key: str) -> None:
    """Validate that a value is a positive integer."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{key} must be an integer", config_key=key)
    if value < 1:
        raise ConfigurationError(f"{key} must be positive", config_key=key)


def _validate_timeout(*, value: Any, key: str) -> None:
    """Validate a timeout value, allowing None to disable it."""
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"Timeout must be a number: {key}", config_key=key)
    if value <= 0:
        raise ConfigurationError(f"Timeout must be positive: {key}", config_key=key)
