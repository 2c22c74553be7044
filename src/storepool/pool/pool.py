"""Round-robin session pool with recycling and transient-failure retries."""

from __future__ import annotations

import asyncio
import random
from collections import deque
from dataclasses import dataclass
from types import TracebackType
from typing import Any, AsyncContextManager, Self

from storepool.config import PoolConfig
from storepool.constants import BASE_BACKOFF, MIN_POOL_SIZE, get_default_pool_config
from storepool.exceptions import (
    ConfigurationError,
    MaxRetriesExceededError,
    NoSessionAvailableError,
    PoolClosedError,
    StorePoolError,
    classify_failure,
)
from storepool.pool._base import _PooledSession
from storepool.session.session import Session
from storepool.types import ChannelFactory, FailureKind
from storepool.utils import get_logger

__all__: list[str] = ["PoolDiagnostics", "SessionPool"]

logger = get_logger(name=__name__)


@dataclass(kw_only=True)
class PoolDiagnostics:
    """A snapshot of pool diagnostics."""

    keyspace: str
    endpoints: list[str]
    list_position: int
    pool_size: int
    ready_count: int
    stats: dict[str, int]
    is_closed: bool


class SessionPool:
    """Manage a ready queue of sessions spread round-robin across endpoints.

    The endpoint list is shuffled once at construction so that a fleet of
    clients does not converge on the same first endpoint. Entering the async
    context primes the queue with ``max(2 * len(servers), 5)`` sessions.
    """

    def __init__(
        self, *, keyspace: str, config: PoolConfig | None = None, channel_factory: ChannelFactory | None = None
    ) -> None:
        """Initialize the session pool."""
        if not isinstance(keyspace, str) or not keyspace:
            raise ConfigurationError("keyspace cannot be empty", config_key="keyspace")

        self._keyspace = keyspace
        if config is None:
            config = PoolConfig.from_dict(config_dict=get_default_pool_config())
        self._config = config.copy()
        self._channel_factory = channel_factory

        servers = list(self._config.servers)
        random.shuffle(servers)
        self._servers: tuple[str, ...] = tuple(servers)
        self._list_position = 0
        self._pool_size = max(len(self._servers) * 2, MIN_POOL_SIZE)

        self._queue: deque[Session] = deque()
        self._lock: asyncio.Lock | None = None
        self._stats = {"created": 0, "failed": 0, "recycled": 0}
        self._background_tasks: set[asyncio.Task[Session | None]] = set()
        self._closed = False

    @property
    def config(self) -> PoolConfig:
        """Get the pool configuration."""
        return self._config

    @property
    def is_closed(self) -> bool:
        """Return True if the pool has been closed."""
        return self._closed

    @property
    def keyspace(self) -> str:
        """Get the keyspace every session selects."""
        return self._keyspace

    @property
    def list_position(self) -> int:
        """Get the rotation cursor into the endpoint list."""
        return self._list_position

    @property
    def pool_size(self) -> int:
        """Get the target number of ready sessions."""
        return self._pool_size

    @property
    def servers(self) -> tuple[str, ...]:
        """Get the endpoint list in rotation order."""
        return self._servers

    async def __aenter__(self) -> Self:
        """Enter async context and prime the ready queue."""
        return await self.open()

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        """Exit async context and close the pool."""
        await self.close()

    async def open(self) -> Self:
        """Activate the pool and eagerly create its target number of sessions."""
        if self._closed:
            raise PoolClosedError("Cannot open a closed pool")
        if self._lock is not None:
            return self

        self._lock = asyncio.Lock()
        logger.info(
            "Priming pool for keyspace '%s': %d sessions across %d endpoints",
            self._keyspace,
            self._pool_size,
            len(self._servers),
        )
        for _ in range(self._pool_size):
            await self._create_session()

        logger.info("Pool for keyspace '%s' ready with %d sessions", self._keyspace, len(self._queue))
        return self

    async def acquire(self) -> Session:
        """Withdraw the session at the head of the ready queue."""
        lock = self._require_lock()
        async with lock:
            if self._closed:
                raise PoolClosedError("Cannot acquire from a closed pool")
            if not self._queue:
                raise NoSessionAvailableError(f"No session available for keyspace '{self._keyspace}'")
            return self._queue.popleft()

    async def call(self, operation: str, *args: Any) -> Any:
        """Invoke a remote operation, retrying transient failures on fresh sessions."""
        max_retries = self._config.max_retries
        last_error: BaseException | None = None

        for attempt in range(1, max_retries + 1):
            session = await self.acquire()
            session.op_count += 1
            try:
                result = await session.invoke(operation, args)
            except asyncio.CancelledError:
                await session.close()
                self._schedule_replacement()
                raise
            except Exception as e:
                match classify_failure(e):
                    case FailureKind.TRANSIENT:
                        last_error = e
                        await self._handle_failure(session=session, operation=operation, error=e, attempt=attempt)
                        continue
                    case _:
                        await self.release(session)
                        raise

            await self.release(session)
            return result

        raise MaxRetriesExceededError(
            f"Operation '{operation}' failed after {max_retries} attempts", operation=operation, attempts=max_retries
        ) from last_error

    async def close(self) -> None:
        """Close the pool and every session currently in the ready queue."""
        if self._closed:
            return

        self._closed = True

        pending = [task for task in self._background_tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if self._lock is not None:
            async with self._lock:
                sessions = list(self._queue)
                self._queue.clear()
        else:
            sessions = list(self._queue)
            self._queue.clear()

        logger.info("Closing pool for keyspace '%s' (%d ready sessions)", self._keyspace, len(sessions))
        if not sessions:
            return

        results = await asyncio.gather(*(session.close() for session in sessions), return_exceptions=True)
        for session, result in zip(sessions, results):
            if isinstance(result, Exception):
                logger.error("Error closing session to %s: %s", session.endpoint, result, exc_info=result)

    def diagnostics(self) -> PoolDiagnostics:
        """Get diagnostic information about the pool."""
        return PoolDiagnostics(
            keyspace=self._keyspace,
            endpoints=list(self._servers),
            list_position=self._list_position,
            pool_size=self._pool_size,
            ready_count=len(self._queue),
            stats=self.stats(),
            is_closed=self._closed,
        )

    async def dispose(self) -> None:
        """Close the pool and every session currently in the ready queue."""
        await self.close()

    def get(self) -> AsyncContextManager[Session]:
        """Return an async context manager that acquires and releases a session."""
        return _PooledSession(pool=self)

    async def release(self, session: Session) -> None:
        """Return a session to the tail of the ready queue, recycling it if over-used."""
        if self._closed:
            await session.close()
            return

        lock = self._require_lock()
        if session.op_count >= self._config.recycle:
            logger.debug("Recycling session to %s after %d operations", session.endpoint, session.op_count)
            # The replacement joins the tail; the head of the queue is left in place.
            await self._replace_session(session=session, stat="recycled")
            return

        if session.is_closed:
            logger.debug("Replacing closed session to %s", session.endpoint)
            await self._replace_session(session=session)
            return

        async with lock:
            if not self._closed:
                self._queue.append(session)
                return
        await session.close()

    def stats(self) -> dict[str, int]:
        """Get a snapshot of the lifetime counters."""
        return self._stats.copy()

    async def _create_session(self) -> Session | None:
        """Establish one session and enqueue it, trying each endpoint at most twice."""
        lock = self._require_lock()
        for _ in range(len(self._servers) * 2):
            if self._closed:
                return None

            async with lock:
                server = self._servers[self._list_position]
                self._list_position = (self._list_position + 1) % len(self._servers)

            try:
                session = await Session.establish(
                    keyspace=self._keyspace,
                    endpoint=server,
                    credentials=self._config.credentials,
                    framed_transport=self._config.framed_transport,
                    send_timeout=self._config.send_timeout,
                    recv_timeout=self._config.recv_timeout,
                    channel_factory=self._channel_factory,
                )
            except StorePoolError as e:
                logger.warning("Error connecting to %s: %s", server, e)
                continue

            async with lock:
                if not self._closed:
                    self._queue.append(session)
                    self._stats["created"] += 1
                    return session
            await session.close()
            return None

        logger.debug("Giving up on a new session after trying every endpoint twice")
        return None

    async def _handle_failure(self, *, session: Session, operation: str, error: BaseException, attempt: int) -> None:
        """Discard a session after a transient failure, back off and backfill the queue."""
        logger.warning("Error performing %s on %s: %s", operation, session.endpoint, error)
        try:
            await session.close()
            async with self._require_lock():
                self._stats["failed"] += 1
            await asyncio.sleep(BASE_BACKOFF * 2**attempt)
            await self._create_session()
        except asyncio.CancelledError:
            self._schedule_replacement()
            raise

    def _on_background_task_done(self, task: asyncio.Task[Session | None]) -> None:
        """Forget a finished replacement task and report unexpected failures."""
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        if exc := task.exception():
            logger.error("Session replacement failed unexpectedly: %s", exc, exc_info=exc)

    async def _replace_session(self, *, session: Session, stat: str | None = None) -> None:
        """Close a discarded session and backfill the queue, even if the caller is cancelled."""
        try:
            await session.close()
            if stat is not None:
                async with self._require_lock():
                    self._stats[stat] += 1
            await self._create_session()
        except asyncio.CancelledError:
            self._schedule_replacement()
            raise

    def _require_lock(self) -> asyncio.Lock:
        """Return the pool lock, raising if the pool is closed or not activated."""
        if self._closed:
            raise PoolClosedError("Pool is closed")
        if self._lock is None:
            raise RuntimeError("SessionPool has not been activated. Use 'async with' or 'await pool.open()'.")
        return self._lock

    def _schedule_replacement(self) -> None:
        """Backfill the queue in the background after a session was abandoned."""
        if self._closed or self._lock is None:
            return

        task = asyncio.create_task(self._create_session())
        self._background_tasks.add(task)
        task.add_done_callback(self._on_background_task_done)

    def __len__(self) -> int:
        """Return the number of ready sessions."""
        return len(self._queue)

    def __repr__(self) -> str:
        """Provide a developer-friendly representation."""
        state = "closed" if self._closed else "open"
        return f"<SessionPool keyspace={self._keyspace} ready={len(self._queue)}/{self._pool_size} state={state}>"
