"""Huddle chat engine: conversation sync, message grouping and the server directory."""

from .engine import ChatSession, SessionView  # noqa: F401
from .errors import (  # noqa: F401
    Busy,
    HuddleError,
    NotFound,
    PartialCreate,
    Rejected,
    Unauthenticated,
    Unavailable,
)
from .presence import PresenceStatus, resolve_presence  # noqa: F401

__all__ = [
    "ChatSession",
    "SessionView",
    "HuddleError",
    "NotFound",
    "Unauthenticated",
    "Unavailable",
    "Rejected",
    "Busy",
    "PartialCreate",
    "PresenceStatus",
    "resolve_presence",
]
