"""Conversation targets and the fetch strategy for each of them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Iterable, Union

from huddle.entities.records import (
    ConversationMessage,
    DirectMessage,
    EntityKind,
    Message,
    User,
    message_sort_key,
)
from huddle.entities.store import EntityStore


def merge_messages(*streams: Iterable[ConversationMessage]) -> list[ConversationMessage]:
    """Merge record streams into one sequence ordered by ``(created_date, id)``.

    Records are deduplicated by identifier, never by timestamp.
    """

    unique: dict[str, ConversationMessage] = {}
    for stream in streams:
        for message in stream:
            unique.setdefault(message.id, message)
    return sorted(unique.values(), key=message_sort_key)


@dataclass(frozen=True, slots=True)
class ChannelTarget:
    """A single text channel."""

    channel_id: str

    mode: ClassVar[str] = "channel"

    def __str__(self) -> str:
        return f"channel {self.channel_id}"

    async def fetch(self, store: EntityStore, window: int) -> list[ConversationMessage]:
        # Newest ``window`` rows, returned oldest first.
        rows = await store.filter(
            EntityKind.MESSAGE,
            {"channel_id": self.channel_id},
            order_by="-created_date",
            limit=window,
        )
        return merge_messages(Message.from_payload(row) for row in rows)

    def outgoing(self, author: User, content: str) -> tuple[EntityKind, dict[str, Any]]:
        return EntityKind.MESSAGE, {
            "channel_id": self.channel_id,
            "user_id": author.id,
            "username": author.label,
            "content": content,
        }

    @staticmethod
    def parse(payload: dict[str, Any]) -> Message:
        return Message.from_payload(payload)


@dataclass(frozen=True, slots=True)
class DirectTarget:
    """Two-party conversation identified by an unordered pair of users."""

    user_a: str
    user_b: str

    mode: ClassVar[str] = "direct"

    def __post_init__(self) -> None:
        if self.user_a == self.user_b:
            raise ValueError("A direct conversation needs two distinct users")
        if self.user_b < self.user_a:
            first, second = self.user_b, self.user_a
            object.__setattr__(self, "user_a", first)
            object.__setattr__(self, "user_b", second)

    def __str__(self) -> str:
        return f"direct {self.user_a}:{self.user_b}"

    @property
    def participants(self) -> tuple[str, str]:
        return (self.user_a, self.user_b)

    def peer_of(self, user_id: str) -> str:
        if user_id == self.user_a:
            return self.user_b
        if user_id == self.user_b:
            return self.user_a
        raise ValueError(f"User {user_id} is not part of {self}")

    async def fetch(self, store: EntityStore, window: int) -> list[ConversationMessage]:
        # Newest ``window`` rows per direction; the merged tail is the newest
        # ``window`` of the whole conversation.
        forward = await store.filter(
            EntityKind.DIRECT_MESSAGE,
            {"sender_id": self.user_a, "receiver_id": self.user_b},
            order_by="-created_date",
            limit=window,
        )
        backward = await store.filter(
            EntityKind.DIRECT_MESSAGE,
            {"sender_id": self.user_b, "receiver_id": self.user_a},
            order_by="-created_date",
            limit=window,
        )
        merged = merge_messages(
            (DirectMessage.from_payload(row) for row in forward),
            (DirectMessage.from_payload(row) for row in backward),
        )
        return merged[-window:]

    def outgoing(self, author: User, content: str) -> tuple[EntityKind, dict[str, Any]]:
        return EntityKind.DIRECT_MESSAGE, {
            "sender_id": author.id,
            "receiver_id": self.peer_of(author.id),
            "sender_username": author.label,
            "content": content,
        }

    @staticmethod
    def parse(payload: dict[str, Any]) -> DirectMessage:
        return DirectMessage.from_payload(payload)


ConversationTarget = Union[ChannelTarget, DirectTarget]
