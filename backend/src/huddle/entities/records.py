"""Typed records for every entity kind served by the entity access layer.

Raw payloads are loosely typed mappings. They are normalized exactly once,
when a record is built from a payload, so the rest of the engine can rely on
concrete types (timestamps, enums, presence fallback).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Union

from huddle.presence import PresenceStatus, resolve_presence

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class EntityKind(str, Enum):
    """Entity kinds addressable through the entity access layer."""

    USER = "User"
    SERVER = "Server"
    CHANNEL = "Channel"
    SERVER_MEMBER = "ServerMember"
    MESSAGE = "Message"
    DIRECT_MESSAGE = "DirectMessage"


class ChannelKind(str, Enum):
    """Channel kinds. Only text channels carry message history."""

    TEXT = "text"
    VOICE = "voice"
    VIDEO = "video"


class MemberRole(str, Enum):
    """Roles a user can hold inside a server."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


def parse_timestamp(value: Any) -> datetime:
    """Parse a stored timestamp into an aware UTC datetime."""

    if value in (None, ""):
        return EPOCH
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _optional_timestamp(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    return parse_timestamp(value)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def _identifier(payload: Mapping[str, Any], field: str = "id") -> str:
    value = payload.get(field)
    if value in (None, ""):
        raise ValueError(f"Record payload is missing '{field}'")
    return str(value)


def _channel_kind(value: Any) -> ChannelKind:
    try:
        return ChannelKind(str(value).strip().lower())
    except ValueError:
        return ChannelKind.TEXT


def _member_role(value: Any) -> MemberRole:
    try:
        return MemberRole(str(value).strip().lower())
    except ValueError:
        return MemberRole.MEMBER


def display_label(
    username: str | None,
    display_name: str | None = None,
    email: str | None = None,
) -> str:
    """Pick a user label following ``username -> display_name -> email local part``."""

    if username:
        return username
    if display_name:
        return display_name
    if email:
        local_part = email.split("@", 1)[0]
        if local_part:
            return local_part
    return "User"


@dataclass(frozen=True, slots=True)
class User:
    id: str
    username: str | None = None
    email: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    status: PresenceStatus = PresenceStatus.OFFLINE
    bio: str | None = None
    banner_color: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "User":
        return cls(
            id=_identifier(payload),
            username=_text(payload.get("username")),
            email=_text(payload.get("email")),
            display_name=_text(payload.get("display_name")),
            avatar_url=_text(payload.get("avatar_url")),
            status=resolve_presence(payload.get("status")),
            bio=_text(payload.get("bio")),
            banner_color=_text(payload.get("banner_color")),
        )

    @property
    def label(self) -> str:
        return display_label(self.username, self.display_name, self.email)


@dataclass(frozen=True, slots=True)
class Server:
    id: str
    name: str
    owner_id: str
    description: str | None = None
    icon_url: str | None = None
    is_public: bool = True
    created_date: datetime = EPOCH

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Server":
        is_public = payload.get("is_public")
        return cls(
            id=_identifier(payload),
            name=str(payload.get("name") or ""),
            owner_id=_identifier(payload, "owner_id"),
            description=_text(payload.get("description")),
            icon_url=_text(payload.get("icon_url")),
            is_public=True if is_public is None else bool(is_public),
            created_date=parse_timestamp(payload.get("created_date")),
        )


@dataclass(frozen=True, slots=True)
class Channel:
    id: str
    server_id: str
    name: str
    kind: ChannelKind = ChannelKind.TEXT
    position: int = 0
    description: str | None = None
    created_date: datetime = EPOCH

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Channel":
        return cls(
            id=_identifier(payload),
            server_id=_identifier(payload, "server_id"),
            name=str(payload.get("name") or ""),
            kind=_channel_kind(payload.get("type")),
            position=int(payload.get("position") or 0),
            description=_text(payload.get("description")),
            created_date=parse_timestamp(payload.get("created_date")),
        )


@dataclass(frozen=True, slots=True)
class ServerMember:
    id: str
    server_id: str
    user_id: str
    username: str | None = None
    role: MemberRole = MemberRole.MEMBER
    nickname: str | None = None
    joined_at: datetime | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ServerMember":
        return cls(
            id=_identifier(payload),
            server_id=_identifier(payload, "server_id"),
            user_id=_identifier(payload, "user_id"),
            username=_text(payload.get("username")),
            role=_member_role(payload.get("role")),
            nickname=_text(payload.get("nickname")),
            joined_at=_optional_timestamp(payload.get("joined_at")),
        )

    @property
    def label(self) -> str:
        return self.nickname or self.username or "User"


@dataclass(frozen=True, slots=True)
class Message:
    """Channel-scoped chat message."""

    id: str
    channel_id: str
    # ``None`` once the author account has been deleted.
    user_id: str | None
    content: str
    created_date: datetime
    username: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Message":
        return cls(
            id=_identifier(payload),
            channel_id=_identifier(payload, "channel_id"),
            user_id=_text(payload.get("user_id")),
            content=str(payload.get("content") or ""),
            created_date=parse_timestamp(payload.get("created_date")),
            username=_text(payload.get("username")),
        )

    @property
    def author_id(self) -> str | None:
        return self.user_id


@dataclass(frozen=True, slots=True)
class DirectMessage:
    """Message exchanged between exactly two users."""

    id: str
    sender_id: str
    receiver_id: str
    content: str
    created_date: datetime
    sender_username: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "DirectMessage":
        return cls(
            id=_identifier(payload),
            sender_id=_identifier(payload, "sender_id"),
            receiver_id=_identifier(payload, "receiver_id"),
            content=str(payload.get("content") or ""),
            created_date=parse_timestamp(payload.get("created_date")),
            sender_username=_text(payload.get("sender_username")),
        )

    @property
    def author_id(self) -> str:
        return self.sender_id

    @property
    def username(self) -> str | None:
        return self.sender_username


ConversationMessage = Union[Message, DirectMessage]


def message_sort_key(message: ConversationMessage) -> tuple[datetime, str]:
    """Canonical ordering key: creation time, then identifier."""

    return (message.created_date, message.id)
