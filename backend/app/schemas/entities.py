"""Per-kind payloads accepted and returned by the generic entity endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, constr

from huddle.entities.records import ChannelKind, MemberRole
from huddle.presence import PresenceStatus


class EntityCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")


class EntityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_date: datetime


class ServerCreate(EntityCreate):
    name: constr(strip_whitespace=True, min_length=1, max_length=100)
    description: constr(strip_whitespace=True, max_length=500) | None = None
    icon_url: constr(strip_whitespace=True, max_length=512) | None = None
    owner_id: str
    is_public: bool = True


class ServerRead(EntityRead):
    name: str
    description: str | None = None
    icon_url: str | None = None
    owner_id: str
    is_public: bool


class ChannelCreate(EntityCreate):
    server_id: str
    name: constr(strip_whitespace=True, min_length=1, max_length=100)
    type: ChannelKind = ChannelKind.TEXT
    position: int = Field(default=0, ge=0)
    description: constr(strip_whitespace=True, max_length=500) | None = None


class ChannelRead(EntityRead):
    server_id: str
    name: str
    type: ChannelKind
    position: int
    description: str | None = None


class ServerMemberCreate(EntityCreate):
    server_id: str
    user_id: str
    username: constr(strip_whitespace=True, max_length=128) | None = None
    nickname: constr(strip_whitespace=True, max_length=128) | None = None
    role: MemberRole = MemberRole.MEMBER


class ServerMemberRead(EntityRead):
    server_id: str
    user_id: str
    username: str | None = None
    nickname: str | None = None
    role: MemberRole
    joined_at: datetime


class MessageCreate(EntityCreate):
    channel_id: str
    user_id: str
    username: constr(strip_whitespace=True, max_length=128) | None = None
    content: constr(strip_whitespace=True, min_length=1, max_length=2000)


class MessageRead(EntityRead):
    channel_id: str
    user_id: str | None = None
    username: str | None = None
    content: str


class DirectMessageCreate(EntityCreate):
    sender_id: str
    receiver_id: str
    sender_username: constr(strip_whitespace=True, max_length=128) | None = None
    content: constr(strip_whitespace=True, min_length=1, max_length=2000)


class DirectMessageRead(EntityRead):
    sender_id: str
    receiver_id: str
    sender_username: str | None = None
    content: str


class UserEntityRead(EntityRead):
    """Public view of a user as listed through the entity endpoints."""

    email: str
    username: str | None = None
    display_name: str | None = None
    bio: str | None = None
    status: PresenceStatus = PresenceStatus.ONLINE
    avatar_url: str | None = None
    banner_color: str | None = None
