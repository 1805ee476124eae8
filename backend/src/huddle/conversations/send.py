"""Send pipeline: persist an authored message, then resynchronize its conversation."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.config import get_settings
from app.monitoring.metrics import message_sends_total
from huddle.conversations.synchronizer import ConversationSynchronizer
from huddle.conversations.targets import ConversationTarget
from huddle.entities.records import ConversationMessage, User
from huddle.entities.store import EntityStore
from huddle.errors import Busy, HuddleError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SendResult:
    record: ConversationMessage
    # ``None`` when the message was stored but the follow-up pass failed.
    messages: tuple[ConversationMessage, ...] | None


class SendPipeline:
    """Serializes sends per conversation target.

    There is no optimistic local echo: the sent message becomes visible through
    the forced synchronization pass, with the same ordering and grouping as any
    received message.
    """

    def __init__(
        self,
        store: EntityStore,
        synchronizer: ConversationSynchronizer,
        *,
        max_length: int | None = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self._synchronizer = synchronizer
        self._max_length = settings.chat_message_max_length if max_length is None else max_length
        self._pending: set[ConversationTarget] = set()

    def is_sending(self, target: ConversationTarget) -> bool:
        return target in self._pending

    async def send(self, target: ConversationTarget, author: User, content: str) -> SendResult:
        text = (content or "").strip()
        if not text:
            raise ValueError("Message content cannot be empty")
        if len(text) > self._max_length:
            raise ValueError(f"Message content exceeds {self._max_length} characters")
        if target in self._pending:
            message_sends_total.inc(kind=target.mode, outcome="busy")
            raise Busy(target)

        kind, fields = target.outgoing(author, text)
        self._pending.add(target)
        try:
            try:
                created = await self._store.create(kind, fields)
            except HuddleError as exc:
                message_sends_total.inc(kind=target.mode, outcome="failed")
                logger.warning("Sending to %s failed: %s", target, exc)
                raise
            record = target.parse(created)
            message_sends_total.inc(kind=target.mode, outcome="sent")

            try:
                messages: tuple[ConversationMessage, ...] | None = (
                    await self._synchronizer.synchronize(target)
                )
            except HuddleError as exc:
                logger.warning(
                    "Message %s stored but resynchronizing %s failed: %s", record.id, target, exc
                )
                messages = None
            except Exception:
                # The record is already stored; report it without a sequence.
                logger.exception("Message %s stored but resynchronizing %s failed", record.id, target)
                messages = None
        finally:
            self._pending.discard(target)

        return SendResult(record=record, messages=messages)
