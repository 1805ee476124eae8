"""Session façade tying the directory, synchronizer and send pipeline together."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from huddle.collaborators import IdentityProvider
from huddle.conversations import (
    ChannelTarget,
    ConversationSnapshot,
    ConversationSynchronizer,
    ConversationTarget,
    DirectTarget,
    SendPipeline,
    SendResult,
)
from huddle.directory import DirectoryModel, ServerCreationFlow, ServerDetail
from huddle.entities.records import ChannelKind, Server, User
from huddle.entities.store import EntityStore
from huddle.errors import NotFound, PartialCreate, Unauthenticated

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionView:
    """What the chat surface currently shows."""

    user: User | None
    server: ServerDetail | None
    target: ConversationTarget | None
    conversation: ConversationSnapshot | None


class ChatSession:
    """One signed-in user's view of the chat graph.

    Holds the selected server, the active conversation and the collaborators
    that keep it fresh. Switching the conversation deactivates the previous
    one before the next is activated.
    """

    def __init__(
        self,
        store: EntityStore,
        identity: IdentityProvider,
        *,
        directory: DirectoryModel | None = None,
        synchronizer: ConversationSynchronizer | None = None,
        pipeline: SendPipeline | None = None,
    ) -> None:
        self._store = store
        self._identity = identity
        self.directory = directory or DirectoryModel(store)
        self.synchronizer = synchronizer or ConversationSynchronizer(store)
        self.pipeline = pipeline or SendPipeline(store, self.synchronizer)
        self._creation = ServerCreationFlow(store)
        self._user: User | None = None
        self._server: ServerDetail | None = None

    @property
    def current_user(self) -> User | None:
        return self._user

    @property
    def current_server(self) -> ServerDetail | None:
        return self._server

    @property
    def view(self) -> SessionView:
        return SessionView(
            user=self._user,
            server=self._server,
            target=self.synchronizer.target,
            conversation=self.synchronizer.snapshot,
        )

    def _require_user(self) -> User:
        if self._user is None:
            raise Unauthenticated("Sign in before using the chat session")
        return self._user

    async def start(self) -> User:
        """Resolve the signed-in identity; raises :class:`Unauthenticated` when absent."""

        self._user = await self._identity.who_am_i()
        logger.info("Session started for user %s", self._user.id)
        return self._user

    async def servers(self) -> list[Server]:
        return await self.directory.load_servers(self._require_user())

    async def open_server(self, server_id: str) -> ServerDetail:
        """Load a server and activate its first text channel, if any."""

        self._require_user()
        detail = await self.directory.load_server_detail(server_id)
        self._show_server(detail)
        return detail

    def _show_server(self, detail: ServerDetail) -> None:
        self._server = detail
        default = detail.default_channel
        if default is None:
            self.synchronizer.deactivate()
        else:
            self.synchronizer.activate(ChannelTarget(default.id))

    def select_channel(self, channel_id: str) -> asyncio.Task[ConversationSnapshot | None]:
        self._require_user()
        if self._server is None:
            raise NotFound("Server")
        channel = self._server.channel(channel_id)
        if channel is None:
            raise NotFound("Channel", channel_id)
        if channel.kind is not ChannelKind.TEXT:
            raise ValueError(f"Channel {channel.name!r} does not carry text messages")
        return self.synchronizer.activate(ChannelTarget(channel.id))

    def open_direct(self, peer_id: str) -> asyncio.Task[ConversationSnapshot | None]:
        user = self._require_user()
        target = DirectTarget(user.id, peer_id)
        self._server = None
        return self.synchronizer.activate(target)

    async def peers(self, query: str = "") -> list[User]:
        return await self.directory.list_direct_peers(self._require_user(), query)

    async def send(self, content: str) -> SendResult:
        user = self._require_user()
        target = self.synchronizer.target
        if target is None:
            raise NotFound("conversation")
        return await self.pipeline.send(target, user, content)

    async def create_server(self, name: str, **options: Any) -> ServerDetail:
        """Create a server and open it. :class:`PartialCreate` propagates for resumption."""

        detail = await self._creation.create(self._require_user(), name, **options)
        self._show_server(detail)
        return detail

    async def resume_server_creation(self, partial: PartialCreate) -> ServerDetail:
        detail = await self._creation.resume(partial, self._require_user())
        self._show_server(detail)
        return detail

    async def update_profile(self, **fields: Any) -> User:
        self._require_user()
        self._user = await self._identity.update_profile(**fields)
        return self._user

    async def close(self) -> None:
        await self.synchronizer.close()
        self._server = None
