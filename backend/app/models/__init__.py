"""Database models package."""

from .base import Base
from .chat import Channel, DirectMessage, Message, Server, ServerMember, User

__all__ = [
    "Base",
    "User",
    "Server",
    "ServerMember",
    "Channel",
    "Message",
    "DirectMessage",
]
