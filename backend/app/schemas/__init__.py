"""Pydantic schemas for API payloads."""

from .auth import LoginRequest, ProfileUpdate, Token, UserCreate, UserRead
from .entities import (
    ChannelCreate,
    ChannelRead,
    DirectMessageCreate,
    DirectMessageRead,
    MessageCreate,
    MessageRead,
    ServerCreate,
    ServerMemberCreate,
    ServerMemberRead,
    ServerRead,
    UserEntityRead,
)

__all__ = [
    "LoginRequest",
    "ProfileUpdate",
    "Token",
    "UserCreate",
    "UserRead",
    "ServerCreate",
    "ServerRead",
    "ChannelCreate",
    "ChannelRead",
    "ServerMemberCreate",
    "ServerMemberRead",
    "MessageCreate",
    "MessageRead",
    "DirectMessageCreate",
    "DirectMessageRead",
    "UserEntityRead",
]
