"""Best-effort, resumable server creation.

Creating a server takes three independent writes with no transaction around
them: the server record, the owner's membership, and the default channels.
Each step checks what already exists before writing, so a failed sequence can
be resumed without duplicating memberships or channels.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Sequence

from app.monitoring.metrics import server_creations_total
from huddle.directory.model import ServerDetail, order_channels, order_members
from huddle.entities.records import (
    Channel,
    ChannelKind,
    EntityKind,
    MemberRole,
    Server,
    ServerMember,
    User,
)
from huddle.entities.store import EntityStore
from huddle.errors import HuddleError, PartialCreate

logger = logging.getLogger(__name__)

MAX_SERVER_NAME_LENGTH = 100
MAX_SERVER_DESCRIPTION_LENGTH = 500

DEFAULT_CHANNELS: tuple[dict[str, Any], ...] = (
    {
        "name": "general",
        "description": "General discussion",
        "type": ChannelKind.TEXT.value,
        "position": 0,
    },
    {
        "name": "voice-chat",
        "description": "Voice channel",
        "type": ChannelKind.VOICE.value,
        "position": 1,
    },
)


class CreationStep(str, Enum):
    SERVER = "server"
    OWNER_MEMBERSHIP = "owner_membership"
    DEFAULT_CHANNELS = "default_channels"


class ServerCreationFlow:
    def __init__(self, store: EntityStore) -> None:
        self._store = store

    async def create(
        self,
        owner: User,
        name: str,
        *,
        description: str = "",
        icon_url: str | None = None,
        is_public: bool = True,
    ) -> ServerDetail:
        """Create a server owned by ``owner`` with its default channels.

        Raises :class:`PartialCreate` when the server exists but a later step
        failed. Failures of the first step propagate unchanged since nothing
        was written.
        """

        clean_name = (name or "").strip()
        clean_description = (description or "").strip()
        if not clean_name:
            raise ValueError("Server name is required")
        if len(clean_name) > MAX_SERVER_NAME_LENGTH:
            raise ValueError(f"Server name exceeds {MAX_SERVER_NAME_LENGTH} characters")
        if len(clean_description) > MAX_SERVER_DESCRIPTION_LENGTH:
            raise ValueError(
                f"Server description exceeds {MAX_SERVER_DESCRIPTION_LENGTH} characters"
            )

        try:
            created = await self._store.create(
                EntityKind.SERVER,
                {
                    "name": clean_name,
                    "description": clean_description,
                    "icon_url": icon_url,
                    "owner_id": owner.id,
                    "is_public": is_public,
                },
            )
        except HuddleError:
            server_creations_total.inc(outcome="failed")
            raise
        server = Server.from_payload(created)
        logger.info("Created server %s (%s) for user %s", server.id, server.name, owner.id)
        return await self._complete(server, owner, (CreationStep.SERVER.value,))

    async def resume(self, partial: PartialCreate, owner: User) -> ServerDetail:
        """Re-run the steps a :class:`PartialCreate` left unfinished."""

        if partial.owner_id != owner.id:
            raise ValueError("Only the original creator can resume server setup")
        return await self._complete(partial.server, owner, partial.completed_steps)

    async def _complete(
        self, server: Server, owner: User, completed: Sequence[str]
    ) -> ServerDetail:
        steps = list(completed)
        try:
            if CreationStep.OWNER_MEMBERSHIP.value not in steps:
                await self._ensure_owner_membership(server, owner)
                steps.append(CreationStep.OWNER_MEMBERSHIP.value)
            if CreationStep.DEFAULT_CHANNELS.value not in steps:
                await self._ensure_default_channels(server)
                steps.append(CreationStep.DEFAULT_CHANNELS.value)
            channel_rows = await self._store.filter(
                EntityKind.CHANNEL, {"server_id": server.id}, order_by="position"
            )
            member_rows = await self._store.filter(
                EntityKind.SERVER_MEMBER, {"server_id": server.id}
            )
        except HuddleError as exc:
            server_creations_total.inc(outcome="partial")
            logger.warning(
                "Setup of server %s stopped after %s: %s", server.id, ", ".join(steps), exc
            )
            raise PartialCreate(server, owner.id, steps) from exc

        server_creations_total.inc(outcome="created")
        return ServerDetail(
            server=server,
            channels=tuple(order_channels(Channel.from_payload(row) for row in channel_rows)),
            members=tuple(order_members(ServerMember.from_payload(row) for row in member_rows)),
        )

    async def _ensure_owner_membership(self, server: Server, owner: User) -> None:
        existing = await self._store.filter(
            EntityKind.SERVER_MEMBER, {"server_id": server.id, "user_id": owner.id}
        )
        if existing:
            return
        await self._store.create(
            EntityKind.SERVER_MEMBER,
            {
                "server_id": server.id,
                "user_id": owner.id,
                "username": owner.label,
                "role": MemberRole.OWNER.value,
            },
        )

    async def _ensure_default_channels(self, server: Server) -> None:
        existing = await self._store.filter(EntityKind.CHANNEL, {"server_id": server.id})
        taken = {Channel.from_payload(row).position for row in existing}
        missing = [
            {"server_id": server.id, **template}
            for template in DEFAULT_CHANNELS
            if template["position"] not in taken
        ]
        if missing:
            await self._store.bulk_create(EntityKind.CHANNEL, missing)
