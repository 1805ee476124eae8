from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base


def new_identifier() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    # Python-side default keeps sub-second precision on backends whose now() does not.
    return datetime.now(timezone.utc)


class User(Base):
    """Registered account; also the author of messages and the owner of servers."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_identifier)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    username: Mapped[str | None] = mapped_column(String(64), unique=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(128))
    bio: Mapped[str | None] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(16), default="online", nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(512))
    banner_color: Mapped[str | None] = mapped_column(String(16))
    created_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    memberships: Mapped[list["ServerMember"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )


class Server(Base):
    """Community owning channels and members."""

    __tablename__ = "servers"
    __table_args__ = (Index("ix_servers_created_date", "created_date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_identifier)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500))
    icon_url: Mapped[str | None] = mapped_column(String(512))
    owner_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    channels: Mapped[list["Channel"]] = relationship(
        back_populates="server", cascade="all, delete-orphan", order_by="Channel.position"
    )
    members: Mapped[list["ServerMember"]] = relationship(
        back_populates="server", cascade="all, delete-orphan"
    )


class ServerMember(Base):
    """Membership of a user in a server."""

    __tablename__ = "server_members"
    __table_args__ = (UniqueConstraint("server_id", "user_id", name="uq_server_member"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_identifier)
    server_id: Mapped[str] = mapped_column(
        ForeignKey("servers.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    username: Mapped[str | None] = mapped_column(String(128))
    nickname: Mapped[str | None] = mapped_column(String(128))
    role: Mapped[str] = mapped_column(String(16), default="member", nullable=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    created_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    server: Mapped[Server] = relationship(back_populates="members")
    user: Mapped[User] = relationship(back_populates="memberships")


class Channel(Base):
    """Named text or media channel within a server."""

    __tablename__ = "channels"
    __table_args__ = (UniqueConstraint("server_id", "position", name="uq_channel_server_position"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_identifier)
    server_id: Mapped[str] = mapped_column(
        ForeignKey("servers.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(16), default="text", nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500))
    created_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    server: Mapped[Server] = relationship(back_populates="channels")
    messages: Mapped[list["Message"]] = relationship(
        back_populates="channel", cascade="all, delete-orphan"
    )


class Message(Base):
    """Message posted within a channel."""

    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_channel_created_date", "channel_id", "created_date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_identifier)
    channel_id: Mapped[str] = mapped_column(
        ForeignKey("channels.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    username: Mapped[str | None] = mapped_column(String(128))
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    channel: Mapped[Channel] = relationship(back_populates="messages")


class DirectMessage(Base):
    """Message exchanged between two users outside any server."""

    __tablename__ = "direct_messages"
    __table_args__ = (
        Index("ix_direct_messages_pair", "sender_id", "receiver_id", "created_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_identifier)
    sender_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    receiver_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    sender_username: Mapped[str | None] = mapped_column(String(128))
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
