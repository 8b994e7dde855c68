"""Session identity for comment actions."""

from .session import Session, SessionUser


__all__ = ["Session", "SessionUser"]
