"""MessagePack wire codec for RPC requests and replies."""

from __future__ import annotations

import struct
from typing import Any

import msgpack

from storepool.constants import FRAME_HEADER_FORMAT, FRAME_HEADER_SIZE, MAX_FRAME_SIZE
from storepool.exceptions import (
    AuthenticationError,
    ProtocolError,
    RemoteError,
    SerializationError,
    TimedOutError,
    UnavailableError,
)
from storepool.types import OperationArgs

__all__: list[str] = [
    "create_unpacker",
    "decode_payload",
    "decode_reply",
    "encode_frame",
    "encode_payload",
    "encode_request",
    "error_from_reply",
    "parse_frame_header",
]

_REMOTE_ERROR_TYPES: dict[str, type[RemoteError]] = {
    "authentication": AuthenticationError,
    "authorization": AuthenticationError,
    "timed_out": TimedOutError,
    "unavailable": UnavailableError,
}


def create_unpacker() -> msgpack.Unpacker:
    """Create a streaming unpacker for unframed (buffered) channels."""
    return msgpack.Unpacker(raw=False, max_buffer_size=MAX_FRAME_SIZE)


def decode_payload(*, data: bytes) -> Any:
    """Decode a single MessagePack payload."""
    try:
        return msgpack.unpackb(data, raw=False)
    except (ValueError, TypeError, msgpack.exceptions.UnpackException) as e:
        raise SerializationError("Data is not valid MsgPack", original_exception=e) from e


def decode_reply(*, message: Any, seq_id: int, name: str) -> Any:
    """Validate a decoded reply and return its result or raise its error."""
    if not isinstance(message, dict):
        raise ProtocolError(f"Reply to '{name}' is not a map: {type(message).__name__}")
    if message.get("id") != seq_id:
        raise ProtocolError(f"Reply id {message.get('id')!r} does not match request id {seq_id} for '{name}'")

    if (error := message.get("error")) is not None:
        raise error_from_reply(error=error, operation=name)
    if "result" not in message:
        raise ProtocolError(f"Reply to '{name}' carries neither a result nor an error")
    return message["result"]


def encode_frame(*, payload: bytes) -> bytes:
    """Prefix a payload with its big-endian length header."""
    if len(payload) > MAX_FRAME_SIZE:
        raise ProtocolError(f"Frame size {len(payload)} exceeds maximum {MAX_FRAME_SIZE}")
    return struct.pack(FRAME_HEADER_FORMAT, len(payload)) + payload


def encode_payload(*, obj: Any) -> bytes:
    """Encode an object as a MessagePack payload."""
    try:
        return msgpack.packb(obj, use_bin_type=True)
    except (TypeError, ValueError, OverflowError) as e:
        raise SerializationError(
            f"Object of type {type(obj).__name__} is not MsgPack serializable", original_exception=e
        ) from e


def encode_request(*, seq_id: int, name: str, args: OperationArgs) -> bytes:
    """Encode a call request for a named remote procedure."""
    return encode_payload(obj={"id": seq_id, "method": name, "params": list(args)})


def error_from_reply(*, error: Any, operation: str) -> RemoteError:
    """Build the exception matching an error carried in a reply."""
    if not isinstance(error, dict):
        return RemoteError(f"Remote error in '{operation}': {error!r}", operation=operation)

    error_type = error.get("type")
    message = error.get("message") or "Unknown remote error"
    exc_class = _REMOTE_ERROR_TYPES.get(error_type, RemoteError) if isinstance(error_type, str) else RemoteError
    return exc_class(message, operation=operation, error_type=error_type)


def parse_frame_header(*, header: bytes) -> int:
    """Parse and bound-check a frame length header."""
    if len(header) != FRAME_HEADER_SIZE:
        raise ProtocolError(f"Frame header must be {FRAME_HEADER_SIZE} bytes, got {len(header)}")

    (length,) = struct.unpack(FRAME_HEADER_FORMAT, header)
    if length > MAX_FRAME_SIZE:
        raise ProtocolError(f"Frame size {length} exceeds maximum {MAX_FRAME_SIZE}")
    return int(length)
