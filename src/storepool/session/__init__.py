"""Validated sessions to a single storage endpoint."""

from .session import Session, SessionDiagnostics

__all__: list[str] = ["Session", "SessionDiagnostics"]
