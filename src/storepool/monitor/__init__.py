"""Monitoring utilities for pool health."""

from .pool import PoolMonitor

__all__: list[str] = ["PoolMonitor"]
