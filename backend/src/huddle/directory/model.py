"""Directory of servers, channels, members and direct-message peers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from huddle.entities.records import (
    Channel,
    ChannelKind,
    EntityKind,
    Server,
    ServerMember,
    User,
)
from huddle.entities.store import EntityStore


def order_channels(channels: Iterable[Channel]) -> list[Channel]:
    """Order channels by position; equal positions fall back to the identifier."""

    return sorted(channels, key=lambda channel: (channel.position, channel.id))


def order_members(members: Iterable[ServerMember]) -> list[ServerMember]:
    return sorted(members, key=lambda member: (member.label.casefold(), member.id))


@dataclass(frozen=True, slots=True)
class ServerDetail:
    """Snapshot of one server, valid until the next explicit reload."""

    server: Server
    channels: tuple[Channel, ...]
    members: tuple[ServerMember, ...]

    @property
    def text_channels(self) -> tuple[Channel, ...]:
        return tuple(channel for channel in self.channels if channel.kind is ChannelKind.TEXT)

    @property
    def media_channels(self) -> tuple[Channel, ...]:
        return tuple(channel for channel in self.channels if channel.kind is not ChannelKind.TEXT)

    @property
    def default_channel(self) -> Channel | None:
        text_channels = self.text_channels
        return text_channels[0] if text_channels else None

    def channel(self, channel_id: str) -> Channel | None:
        for channel in self.channels:
            if channel.id == channel_id:
                return channel
        return None

    def member_for(self, user_id: str) -> ServerMember | None:
        for member in self.members:
            if member.user_id == user_id:
                return member
        return None


class DirectoryModel:
    """Read side of the server graph.

    Every call returns a fresh snapshot and keeps no state; callers decide how
    long to hold on to it.
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    async def load_servers(self, user: User) -> list[Server]:
        """Servers visible to ``user``, newest first."""

        rows = await self._store.list(EntityKind.SERVER, order_by="-created_date")
        memberships = await self._store.filter(EntityKind.SERVER_MEMBER, {"user_id": user.id})
        joined = {ServerMember.from_payload(row).server_id for row in memberships}

        servers = [Server.from_payload(row) for row in rows]
        visible = [
            server
            for server in servers
            if server.is_public or server.owner_id == user.id or server.id in joined
        ]
        visible.sort(key=lambda server: (server.created_date, server.id), reverse=True)
        return visible

    async def load_server_detail(self, server_id: str) -> ServerDetail:
        server = Server.from_payload(await self._store.get(EntityKind.SERVER, server_id))
        channel_rows = await self._store.filter(
            EntityKind.CHANNEL, {"server_id": server_id}, order_by="position"
        )
        member_rows = await self._store.filter(EntityKind.SERVER_MEMBER, {"server_id": server_id})
        return ServerDetail(
            server=server,
            channels=tuple(order_channels(Channel.from_payload(row) for row in channel_rows)),
            members=tuple(order_members(ServerMember.from_payload(row) for row in member_rows)),
        )

    async def load_user(self, user_id: str) -> User:
        return User.from_payload(await self._store.get(EntityKind.USER, user_id))

    async def list_direct_peers(self, current_user: User, query: str = "") -> list[User]:
        """Users available for direct messaging, optionally narrowed by a search query."""

        needle = query.strip().casefold()
        peers: list[User] = []
        for row in await self._store.list(EntityKind.USER):
            user = User.from_payload(row)
            if user.id == current_user.id:
                continue
            if needle and not any(
                needle in (value or "").casefold() for value in (user.username, user.email)
            ):
                continue
            peers.append(user)
        peers.sort(key=lambda user: (user.label.casefold(), user.id))
        return peers
