"""TCP implementation of the RPC channel protocol."""

from __future__ import annotations

import asyncio
from typing import Any, Self

import msgpack

from storepool.constants import BUFFERED_READ_SIZE, BUFFERED_WRITE_SIZE, FRAME_HEADER_SIZE
from storepool.exceptions import ProtocolError, SerializationError, TimedOutError, TransportError
from storepool.transport.codec import (
    create_unpacker,
    decode_payload,
    decode_reply,
    encode_frame,
    encode_request,
    parse_frame_header,
)
from storepool.types import Endpoint, OperationArgs, Timeout, TransportMode
from storepool.utils import get_logger

__all__: list[str] = ["RpcChannel"]

logger = get_logger(name=__name__)


class RpcChannel:
    """An exclusive request/response channel to one endpoint."""

    def __init__(
        self,
        *,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        endpoint: Endpoint,
        mode: TransportMode = TransportMode.FRAMED,
        send_timeout: Timeout = None,
        recv_timeout: Timeout = None,
    ) -> None:
        """Initialize the channel over an open stream pair."""
        self._reader = reader
        self._writer = writer
        self._endpoint = endpoint
        self._mode = mode
        self._send_timeout = send_timeout
        self._recv_timeout = recv_timeout
        self._unpacker: msgpack.Unpacker | None = create_unpacker() if mode == TransportMode.BUFFERED else None
        self._seq_id = 0
        self._closed = False

    @classmethod
    async def connect(
        cls,
        *,
        endpoint: Endpoint,
        mode: TransportMode = TransportMode.FRAMED,
        send_timeout: Timeout = None,
        recv_timeout: Timeout = None,
    ) -> Self:
        """Open a TCP connection to the endpoint and wrap it in a channel."""
        try:
            async with asyncio.timeout(delay=send_timeout):
                reader, writer = await asyncio.open_connection(host=endpoint.host, port=endpoint.port)
        except TimeoutError:
            raise TransportError(
                f"Timed out connecting after {send_timeout}s", endpoint=str(endpoint)
            ) from None
        except (OSError, UnicodeError) as e:
            raise TransportError(f"Could not connect: {e}", endpoint=str(endpoint)) from e

        logger.debug("Channel opened to %s (%s)", endpoint, mode)
        return cls(
            reader=reader,
            writer=writer,
            endpoint=endpoint,
            mode=mode,
            send_timeout=send_timeout,
            recv_timeout=recv_timeout,
        )

    @property
    def endpoint(self) -> Endpoint:
        """Get the endpoint this channel is connected to."""
        return self._endpoint

    @property
    def is_closed(self) -> bool:
        """Return True if the channel has been closed."""
        return self._closed

    @property
    def mode(self) -> TransportMode:
        """Get the framing mode of the channel."""
        return self._mode

    async def close(self) -> None:
        """Close the underlying transport."""
        if self._closed:
            return

        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError as e:
            logger.debug("Error while closing channel to %s: %s", self._endpoint, e)
        logger.debug("Channel to %s closed", self._endpoint)

    async def invoke(self, *, name: str, args: OperationArgs) -> Any:
        """Send a call request and wait for its reply."""
        if self._closed:
            raise TransportError(f"Cannot invoke '{name}' on a closed channel", endpoint=str(self._endpoint))

        self._seq_id += 1
        seq_id = self._seq_id
        payload = encode_request(seq_id=seq_id, name=name, args=args)

        try:
            async with asyncio.timeout(delay=self._send_timeout):
                await self._write_message(payload=payload)
        except TimeoutError:
            await self.close()
            raise TimedOutError(
                f"Timed out sending '{name}' after {self._send_timeout}s", operation=name, error_type="timed_out"
            ) from None
        except OSError as e:
            await self.close()
            raise TransportError(f"Failed to send '{name}': {e}", endpoint=str(self._endpoint)) from e

        try:
            async with asyncio.timeout(delay=self._recv_timeout):
                message = await self._read_message()
        except TimeoutError:
            await self.close()
            raise TimedOutError(
                f"Timed out waiting for '{name}' after {self._recv_timeout}s", operation=name, error_type="timed_out"
            ) from None
        except asyncio.IncompleteReadError:
            await self.close()
            raise TransportError(
                f"Connection closed by peer while reading '{name}'", endpoint=str(self._endpoint)
            ) from None
        except (ProtocolError, SerializationError):
            await self.close()
            raise
        except OSError as e:
            await self.close()
            raise TransportError(f"Failed to read '{name}': {e}", endpoint=str(self._endpoint)) from e

        return decode_reply(message=message, seq_id=seq_id, name=name)

    async def _read_message(self) -> Any:
        """Read one complete message in the channel's framing mode."""
        if self._unpacker is None:
            header = await self._reader.readexactly(FRAME_HEADER_SIZE)
            length = parse_frame_header(header=header)
            data = await self._reader.readexactly(length)
            return decode_payload(data=data)

        while True:
            try:
                return next(self._unpacker)
            except StopIteration:
                pass
            except msgpack.exceptions.BufferFull as e:
                raise ProtocolError("Buffered reply exceeds maximum message size") from e
            except (ValueError, msgpack.exceptions.UnpackException) as e:
                raise SerializationError("Data is not valid MsgPack", original_exception=e) from e

            chunk = await self._reader.read(BUFFERED_READ_SIZE)
            if not chunk:
                raise asyncio.IncompleteReadError(partial=b"", expected=None)
            try:
                self._unpacker.feed(chunk)
            except msgpack.exceptions.BufferFull as e:
                raise ProtocolError("Buffered reply exceeds maximum message size") from e

    async def _write_message(self, *, payload: bytes) -> None:
        """Write one message in the channel's framing mode."""
        if self._mode == TransportMode.FRAMED:
            self._writer.write(encode_frame(payload=payload))
            await self._writer.drain()
            return

        for offset in range(0, len(payload), BUFFERED_WRITE_SIZE):
            self._writer.write(payload[offset : offset + BUFFERED_WRITE_SIZE])
            await self._writer.drain()

    def __repr__(self) -> str:
        """Provide a developer-friendly representation."""
        state = "closed" if self._closed else "open"
        return f"<RpcChannel endpoint={self._endpoint} mode={self._mode} state={state}>"
