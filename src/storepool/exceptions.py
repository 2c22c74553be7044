"""Structured exception hierarchy for the library."""

from __future__ import annotations

import re
from typing import Any, ClassVar

from storepool.constants import ErrorCodes
from storepool.types import FailureKind

__all__: list[str] = [
    "AuthenticationError",
    "ConfigurationError",
    "IncompatibleAPIError",
    "MaxRetriesExceededError",
    "NoSessionAvailableError",
    "PoolClosedError",
    "ProtocolError",
    "RemoteError",
    "SerializationError",
    "StorePoolError",
    "TimedOutError",
    "TransportError",
    "UnavailableError",
    "classify_failure",
]

_FATAL_ERROR_CODES: frozenset[int] = frozenset(
    {ErrorCodes.INTERNAL_ERROR, ErrorCodes.CONFIGURATION_ERROR, ErrorCodes.INCOMPATIBLE_API}
)
_RETRIABLE_ERROR_CODES: frozenset[int] = frozenset({ErrorCodes.REMOTE_TIMED_OUT, ErrorCodes.REMOTE_UNAVAILABLE})


class StorePoolError(Exception):
    """Base exception for all library errors."""

    _default_code: ClassVar[int] = ErrorCodes.INTERNAL_ERROR
    _fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self, message: str, *, error_code: int | None = None, details: dict[str, Any] | None = None) -> None:
        """Initialize the error."""
        super().__init__(message)
        self.message = message
        self.error_code = error_code if error_code is not None else self._default_code
        self.details = details or {}

    @property
    def category(self) -> str:
        """Get the error category derived from the class name."""
        name = self.__class__.__name__
        if name.endswith("Error") and name != "Error":
            name = name[: -len("Error")]
        return re.sub(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])", "_", name).lower()

    @property
    def is_fatal(self) -> bool:
        """Return True if the error can never succeed on retry."""
        return self.error_code in _FATAL_ERROR_CODES

    @property
    def is_retriable(self) -> bool:
        """Return True if the error is eligible for a pool-level retry."""
        return self.error_code in _RETRIABLE_ERROR_CODES

    def to_dict(self) -> dict[str, Any]:
        """Convert the error to a dictionary for logging or serialization."""
        data: dict[str, Any] = {
            "type": self.__class__.__name__,
            "category": self.category,
            "message": self.message,
            "error_code": self.error_code,
            "is_fatal": self.is_fatal,
            "is_retriable": self.is_retriable,
            "details": self.details,
        }
        for field in self._fields:
            data[field] = getattr(self, field)
        return data

    def __repr__(self) -> str:
        """Provide a developer-friendly representation."""
        parts = [f"message={self.message!r}", f"error_code={hex(self.error_code)}"]
        for field in self._fields:
            value = getattr(self, field)
            if value is not None:
                parts.append(f"{field}={value!r}")
        if self.details:
            parts.append(f"details={self.details!r}")
        return f"{self.__class__.__name__}({', '.join(parts)})"

    def __str__(self) -> str:
        """Return a string representation of the error."""
        return f"[{hex(self.error_code)}] {self.message}"


class ConfigurationError(StorePoolError):
    """Raised for invalid configuration values."""

    _default_code = ErrorCodes.CONFIGURATION_ERROR
    _fields = ("config_key",)

    def __init__(self, message: str, *, config_key: str | None = None, **kwargs: Any) -> None:
        """Initialize the configuration error."""
        super().__init__(message, **kwargs)
        self.config_key = config_key


class TransportError(StorePoolError):
    """Raised when a channel cannot be opened or its I/O fails."""

    _default_code = ErrorCodes.TRANSPORT_ERROR
    _fields = ("endpoint",)

    def __init__(self, message: str, *, endpoint: str | None = None, **kwargs: Any) -> None:
        """Initialize the transport error."""
        super().__init__(message, **kwargs)
        self.endpoint = endpoint

    def __str__(self) -> str:
        """Return a string representation including the endpoint."""
        base = super().__str__()
        return f"{base} (endpoint={self.endpoint})" if self.endpoint else base


class IncompatibleAPIError(StorePoolError):
    """Raised when the server's API version is below the supported minimum."""

    _default_code = ErrorCodes.INCOMPATIBLE_API
    _fields = ("server_version", "required_version")

    def __init__(
        self, message: str, *, server_version: str | None = None, required_version: int | None = None, **kwargs: Any
    ) -> None:
        """Initialize the incompatible API error."""
        super().__init__(message, **kwargs)
        self.server_version = server_version
        self.required_version = required_version


class ProtocolError(StorePoolError):
    """Raised when a reply or frame violates the wire protocol."""

    _default_code = ErrorCodes.PROTOCOL_ERROR


class SerializationError(StorePoolError):
    """Raised when a message cannot be encoded or decoded."""

    _default_code = ErrorCodes.SERIALIZATION_ERROR
    _fields = ("original_exception",)

    def __init__(self, message: str, *, original_exception: BaseException | None = None, **kwargs: Any) -> None:
        """Initialize the serialization error."""
        super().__init__(message, **kwargs)
        self.original_exception = original_exception

    def to_dict(self) -> dict[str, Any]:
        """Convert the error to a dictionary, rendering the cause as text."""
        data = super().to_dict()
        if self.original_exception is not None:
            data["original_exception"] = str(self.original_exception)
        return data


class RemoteError(StorePoolError):
    """Raised when the remote service reports an application error."""

    _default_code = ErrorCodes.REMOTE_ERROR
    _fields = ("operation", "error_type")

    def __init__(
        self, message: str, *, operation: str | None = None, error_type: str | None = None, **kwargs: Any
    ) -> None:
        """Initialize the remote error."""
        super().__init__(message, **kwargs)
        self.operation = operation
        self.error_type = error_type


class AuthenticationError(RemoteError):
    """Raised when the remote service rejects the supplied credentials."""

    _default_code = ErrorCodes.AUTHENTICATION_FAILED


class TimedOutError(RemoteError):
    """Raised when a remote call times out."""

    _default_code = ErrorCodes.REMOTE_TIMED_OUT


class UnavailableError(RemoteError):
    """Raised when the remote service reports it cannot serve the request."""

    _default_code = ErrorCodes.REMOTE_UNAVAILABLE


class NoSessionAvailableError(StorePoolError):
    """Raised when the pool's ready queue is empty."""

    _default_code = ErrorCodes.NO_SESSION_AVAILABLE


class PoolClosedError(StorePoolError):
    """Raised when a closed pool is used."""

    _default_code = ErrorCodes.POOL_CLOSED


class MaxRetriesExceededError(StorePoolError):
    """Raised when every retry attempt of a call failed transiently."""

    _default_code = ErrorCodes.MAX_RETRIES_EXCEEDED
    _fields = ("operation", "attempts")

    def __init__(
        self, message: str, *, operation: str | None = None, attempts: int | None = None, **kwargs: Any
    ) -> None:
        """Initialize the retries-exhausted error."""
        super().__init__(message, **kwargs)
        self.operation = operation
        self.attempts = attempts


def classify_failure(exc: BaseException) -> FailureKind:
    """Classify an exception into the tag that drives pool behavior."""
    match exc:
        case TimedOutError() | UnavailableError():
            return FailureKind.TRANSIENT
        case IncompatibleAPIError():
            return FailureKind.INCOMPATIBLE
        case _:
            return FailureKind.OTHER
