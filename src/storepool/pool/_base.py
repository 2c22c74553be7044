"""Scoped checkout of a pooled session."""

from __future__ import annotations

import asyncio
from types import TracebackType
from typing import TYPE_CHECKING, AsyncContextManager

if TYPE_CHECKING:
    from storepool.pool.pool import SessionPool
    from storepool.session.session import Session


__all__: list[str] = []


class _PooledSession(AsyncContextManager["Session"]):
    """An async context manager for safely acquiring and releasing a pooled session."""

    def __init__(self, pool: SessionPool) -> None:
        """Initialize the pooled session context manager."""
        self._pool = pool
        self._session: Session | None = None

    async def __aenter__(self) -> Session:
        """Acquire a session from the pool."""
        self._session = await self._pool.acquire()
        return self._session

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        """Release the session back to the pool."""
        if self._session is None:
            return

        session, self._session = self._session, None
        if exc_type is not None and issubclass(exc_type, asyncio.CancelledError):
            # A reply may still be in flight on this channel.
            await session.close()
        await self._pool.release(session)
