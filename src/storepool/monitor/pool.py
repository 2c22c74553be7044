"""Utility for monitoring session pool health."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from storepool.constants import HIGH_FAILURE_RATIO
from storepool.monitor._base import _BaseMonitor
from storepool.utils import get_logger, get_timestamp

if TYPE_CHECKING:
    from storepool.pool.pool import SessionPool


__all__: list[str] = ["PoolMonitor"]

logger = get_logger(name=__name__)


class PoolMonitor(_BaseMonitor["SessionPool"]):
    """Monitor pool exhaustion and failure rates via an async context."""

    def __init__(self, pool: SessionPool, *, monitoring_interval: float | None = None) -> None:
        """Initialize the pool monitor."""
        interval = monitoring_interval if monitoring_interval is not None else pool.config.monitoring_interval
        super().__init__(target=pool, monitoring_interval=interval)

    def get_current_metrics(self) -> dict[str, Any] | None:
        """Get the latest collected metrics."""
        return self._metrics_history[-1] if self._metrics_history else None

    def _check_for_alerts(self) -> None:
        """Analyze the latest metrics and generate alerts if thresholds are breached."""
        metrics = self.get_current_metrics()
        if not metrics or metrics.get("is_closed"):
            return

        if metrics.get("ready_count") == 0:
            self._create_alert(
                alert_type="pool_exhausted", message=f"Pool for keyspace '{metrics['keyspace']}' has no ready sessions"
            )

        stats: dict[str, int] = metrics.get("stats", {})
        failure_ratio = stats.get("failed", 0) / max(stats.get("created", 0), 1)
        if failure_ratio > HIGH_FAILURE_RATIO:
            self._create_alert(
                alert_type="high_failure_rate", message=f"High session failure rate: {failure_ratio:.0%}"
            )

    def _collect_metrics(self) -> None:
        """Collect a snapshot of the pool's current diagnostics."""
        metrics = {"timestamp": get_timestamp(), **asdict(self._target.diagnostics())}
        self._metrics_history.append(metrics)

    def _create_alert(self, *, alert_type: str, message: str) -> None:
        """Create and store a new alert, avoiding duplicates."""
        if not self._alerts or self._alerts[-1].get("message") != message:
            alert = {"type": alert_type, "message": message, "timestamp": get_timestamp()}
            self._alerts.append(alert)
            logger.warning("Pool Health Alert: %s", message)
