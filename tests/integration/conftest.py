"""
Configuration and fixtures for storepool integration tests.
"""

import asyncio
import socket
import struct
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any, cast

import msgpack
import pytest
import pytest_asyncio


def find_free_port() -> int:
    """Find and return an available TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return cast(int, s.getsockname()[1])


class StorageServer:
    """A minimal key-value RPC server speaking the MessagePack call protocol."""

    def __init__(
        self,
        *,
        framed: bool = True,
        version: str = "19.36.0",
        keyspaces: tuple[str, ...] = ("users",),
        credentials: dict[str, str] | None = None,
    ) -> None:
        self.framed = framed
        self.version = version
        self.keyspaces = keyspaces
        self.credentials = credentials
        self.data: dict[str, Any] = {}
        self.calls: list[str] = []
        self.connections = 0
        self._server: asyncio.Server | None = None

    @property
    def address(self) -> str:
        assert self._server is not None
        port = self._server.sockets[0].getsockname()[1]
        return f"127.0.0.1:{port}"

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle, host="127.0.0.1", port=0)

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()

    async def _dispatch(self, request: dict[str, Any]) -> dict[str, Any]:
        method, params = request["method"], request["params"]
        self.calls.append(method)

        match method:
            case "describe_version":
                return {"id": request["id"], "result": self.version}
            case "set_keyspace" if params[0] not in self.keyspaces:
                return _error(request, "not_found", f"Keyspace '{params[0]}' does not exist")
            case "login" if self.credentials is not None and params[0]["credentials"] != self.credentials:
                return _error(request, "authentication", "Bad credentials")
            case "set_keyspace" | "login":
                return {"id": request["id"], "result": None}
            case "put":
                self.data[params[0]] = params[1]
                return {"id": request["id"], "result": None}
            case "get":
                return {"id": request["id"], "result": self.data.get(params[0])}
            case "fail":
                return _error(request, params[0], f"Injected {params[0]} failure")
            case "stall":
                await asyncio.sleep(params[0])
                return {"id": request["id"], "result": "late"}
            case _:
                return _error(request, "invalid_request", f"Unknown method '{method}'")

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        unpacker = msgpack.Unpacker(raw=False)
        try:
            while True:
                if self.framed:
                    (length,) = struct.unpack("!I", await reader.readexactly(4))
                    request = msgpack.unpackb(await reader.readexactly(length), raw=False)
                else:
                    request = await _read_buffered(reader=reader, unpacker=unpacker)

                payload = msgpack.packb(await self._dispatch(request), use_bin_type=True)
                writer.write(struct.pack("!I", len(payload)) + payload if self.framed else payload)
                await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()


def _error(request: dict[str, Any], error_type: str, message: str) -> dict[str, Any]:
    return {"id": request["id"], "error": {"type": error_type, "message": message}}


async def _read_buffered(*, reader: asyncio.StreamReader, unpacker: msgpack.Unpacker) -> Any:
    while True:
        for message in unpacker:
            return message
        chunk = await reader.read(1024)
        if not chunk:
            raise asyncio.IncompleteReadError(partial=b"", expected=None)
        unpacker.feed(chunk)


@pytest.fixture
def unreachable_address() -> str:
    """Provide an address with no listener behind it."""
    return f"127.0.0.1:{find_free_port()}"


@pytest_asyncio.fixture
async def start_server() -> AsyncGenerator[Callable[..., Awaitable[StorageServer]], None]:
    """Provide a factory that starts storage servers and stops them after the test."""
    servers: list[StorageServer] = []

    async def _start(**kwargs: Any) -> StorageServer:
        server = StorageServer(**kwargs)
        await server.start()
        servers.append(server)
        return server

    yield _start

    for server in servers:
        await server.stop()
