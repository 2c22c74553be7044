"""Shared lifecycle for periodic health monitors."""

from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from collections import deque
from types import TracebackType
from typing import Any, Generic, Self, TypeVar

from storepool.constants import DEFAULT_MONITORING_INTERVAL
from storepool.utils import get_logger

__all__: list[str] = []

T = TypeVar("T")

logger = get_logger(name=__name__)


class _BaseMonitor(ABC, Generic[T]):
    """Collect metrics from a target on an interval and raise alerts."""

    def __init__(
        self,
        target: T,
        *,
        monitoring_interval: float = DEFAULT_MONITORING_INTERVAL,
        metrics_maxlen: int = 120,
        alerts_maxlen: int = 100,
    ) -> None:
        """Initialize the monitor."""
        self._target = target
        self._interval = monitoring_interval
        self._metrics_history: deque[dict[str, Any]] = deque(maxlen=metrics_maxlen)
        self._alerts: deque[dict[str, Any]] = deque(maxlen=alerts_maxlen)
        self._monitor_task: asyncio.Task[None] | None = None

    @property
    def is_monitoring(self) -> bool:
        """Return True if the monitoring loop is running."""
        return self._monitor_task is not None and not self._monitor_task.done()

    async def __aenter__(self) -> Self:
        """Enter async context and start the monitoring loop."""
        if self._monitor_task is not None:
            return self

        try:
            self._monitor_task = asyncio.create_task(self._monitor_loop())
        except RuntimeError:
            logger.error("Failed to start monitor: no running event loop")
            self._monitor_task = None
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        """Exit async context and stop the monitoring loop."""
        task, self._monitor_task = self._monitor_task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    def clear_history(self) -> None:
        """Clear all collected metrics and alerts."""
        self._metrics_history.clear()
        self._alerts.clear()

    def get_alerts(self, *, limit: int = 25) -> list[dict[str, Any]]:
        """Get the most recent alerts."""
        return list(self._alerts)[-limit:]

    def get_metrics_history(self, *, limit: int = 100) -> list[dict[str, Any]]:
        """Get the most recent metrics snapshots."""
        return list(self._metrics_history)[-limit:]

    @abstractmethod
    def _check_for_alerts(self) -> Any:
        """Analyze the latest metrics (may be a coroutine function)."""
        raise NotImplementedError

    @abstractmethod
    def _collect_metrics(self) -> Any:
        """Collect one metrics snapshot (may be a coroutine function)."""
        raise NotImplementedError

    async def _monitor_loop(self) -> None:
        """Run collection and alerting until cancelled or an error occurs."""
        try:
            while True:
                result = self._collect_metrics()
                if inspect.isawaitable(result):
                    await result
                result = self._check_for_alerts()
                if inspect.isawaitable(result):
                    await result
                await asyncio.sleep(self._interval)
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("Monitor loop stopped on a critical error: %s", e, exc_info=True)
