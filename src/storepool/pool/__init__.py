"""Session pooling with round-robin placement, recycling and retries."""

from .pool import PoolDiagnostics, SessionPool

__all__: list[str] = ["PoolDiagnostics", "SessionPool"]
