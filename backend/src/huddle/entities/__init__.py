"""Entity records and the access layer used to fetch them."""

from .records import (  # noqa: F401
    Channel,
    ChannelKind,
    ConversationMessage,
    DirectMessage,
    EntityKind,
    MemberRole,
    Message,
    Server,
    ServerMember,
    User,
    display_label,
    message_sort_key,
)
from .store import EntityStore, HttpEntityStore  # noqa: F401

__all__ = [
    "EntityKind",
    "EntityStore",
    "HttpEntityStore",
    "ChannelKind",
    "MemberRole",
    "User",
    "Server",
    "Channel",
    "ServerMember",
    "Message",
    "DirectMessage",
    "ConversationMessage",
    "display_label",
    "message_sort_key",
]
