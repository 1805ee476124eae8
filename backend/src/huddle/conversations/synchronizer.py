"""Polling synchronizer producing the canonical sequence of the active conversation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from app.config import get_settings
from app.monitoring.metrics import (
    sync_active_conversations,
    sync_polls_total,
    sync_ticks_skipped_total,
)
from huddle.conversations.grouping import GroupedMessage, group_messages
from huddle.conversations.targets import ConversationTarget
from huddle.entities.records import ConversationMessage
from huddle.entities.store import EntityStore
from huddle.errors import HuddleError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConversationSnapshot:
    """Result of one applied synchronization pass."""

    target: ConversationTarget
    messages: tuple[ConversationMessage, ...]
    groups: tuple[GroupedMessage, ...]
    synced_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


UpdateCallback = Callable[[ConversationSnapshot], Any]


class _PollToken:
    """Cancellation token issued for each activation."""

    __slots__ = ("target", "cancelled")

    def __init__(self, target: ConversationTarget) -> None:
        self.target = target
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ConversationSynchronizer:
    """Keeps the active conversation's message sequence fresh by polling.

    Only one conversation is active at a time. Each activation receives a new
    token; responses carrying a token that is no longer current are dropped.
    At most one synchronization pass runs per conversation: a tick that fires
    while a pass is outstanding is skipped rather than queued.
    """

    def __init__(
        self,
        store: EntityStore,
        *,
        interval: float | None = None,
        window: int | None = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self._interval = settings.sync_poll_interval_seconds if interval is None else interval
        self._window = settings.sync_history_window if window is None else window
        self._token: _PollToken | None = None
        self._loop_task: asyncio.Task[None] | None = None
        self._inflight: asyncio.Task[Any] | None = None
        self._waiting = 0
        self._detached: set[asyncio.Task[Any]] = set()
        self._snapshot: ConversationSnapshot | None = None
        self._listeners: list[UpdateCallback] = []

    @property
    def target(self) -> ConversationTarget | None:
        return self._token.target if self._token is not None else None

    @property
    def snapshot(self) -> ConversationSnapshot | None:
        return self._snapshot

    @property
    def messages(self) -> tuple[ConversationMessage, ...]:
        return self._snapshot.messages if self._snapshot is not None else ()

    @property
    def is_syncing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def subscribe(self, callback: UpdateCallback) -> Callable[[], None]:
        """Register a callback invoked whenever the displayed sequence changes."""

        self._listeners.append(callback)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def activate(self, target: ConversationTarget) -> asyncio.Task[ConversationSnapshot | None]:
        """Make ``target`` the active conversation and synchronize it right away.

        Returns the task running the first pass; awaiting it yields the first
        snapshot, or ``None`` when that pass failed or was superseded.
        """

        self.deactivate()
        token = _PollToken(target)
        self._token = token
        first_pass = self._start_pass(self._poll(token))
        self._loop_task = asyncio.create_task(
            self._poll_loop(token), name=f"huddle-sync-{target}"
        )
        sync_active_conversations.set(1, mode=target.mode)
        logger.debug("Activated %s", target)
        return first_pass

    def deactivate(self) -> None:
        """Stop polling the active conversation without awaiting in-flight work."""

        token, self._token = self._token, None
        if token is not None:
            token.cancel()
            sync_active_conversations.set(0, mode=token.target.mode)
            logger.debug("Deactivated %s", token.target)
        loop_task, self._loop_task = self._loop_task, None
        if loop_task is not None:
            loop_task.cancel()
        pending, self._inflight = self._inflight, None
        if pending is not None and not pending.done():
            self._detached.add(pending)
            pending.add_done_callback(self._detached.discard)
        self._snapshot = None

    async def close(self) -> None:
        loop_task = self._loop_task
        self.deactivate()
        if loop_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await loop_task

    async def __aenter__(self) -> "ConversationSynchronizer":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Synchronization passes
    # ------------------------------------------------------------------
    async def synchronize(self, target: ConversationTarget) -> tuple[ConversationMessage, ...]:
        """Run one out-of-band pass for ``target`` and return its canonical sequence.

        When ``target`` is active the pass shares the single in-flight slot: an
        outstanding poll is awaited first, then a fresh pass runs and its result
        is applied. Errors propagate to the caller.
        """

        token = self._token
        if token is None or token.target != target:
            return tuple(await target.fetch(self._store, self._window))

        # Ticks stand aside while an explicit pass waits for the slot.
        self._waiting += 1
        try:
            while self.is_syncing:
                await asyncio.wait({self._inflight})
        finally:
            self._waiting -= 1
        if token is not self._token:
            return tuple(await target.fetch(self._store, self._window))
        task = self._start_pass(self._fetch_and_apply(token))
        return await task

    def _start_pass(self, coroutine: Any) -> asyncio.Task[Any]:
        task = asyncio.create_task(coroutine)
        self._inflight = task
        return task

    async def _poll_loop(self, token: _PollToken) -> None:
        mode = token.target.mode
        while not token.cancelled:
            await asyncio.sleep(self._interval)
            if token.cancelled:
                break
            if self.is_syncing or self._waiting:
                sync_ticks_skipped_total.inc(mode=mode)
                logger.debug("Skipping tick for %s; a pass is still in flight", token.target)
                continue
            self._start_pass(self._poll(token))

    async def _poll(self, token: _PollToken) -> ConversationSnapshot | None:
        """Regular poll: failures keep the previous sequence and wait for the next tick."""

        mode = token.target.mode
        try:
            await self._fetch_and_apply(token)
        except HuddleError as exc:
            sync_polls_total.inc(mode=mode, outcome="failed")
            logger.warning("Synchronization of %s failed: %s", token.target, exc)
            return None
        except Exception:
            sync_polls_total.inc(mode=mode, outcome="failed")
            logger.exception("Unexpected error while synchronizing %s", token.target)
            return None
        if token is not self._token:
            return None
        return self._snapshot

    async def _fetch_and_apply(self, token: _PollToken) -> tuple[ConversationMessage, ...]:
        target = token.target
        messages = tuple(await target.fetch(self._store, self._window))
        if token.cancelled or token is not self._token:
            sync_polls_total.inc(mode=target.mode, outcome="discarded")
            logger.debug("Dropped late response for %s", target)
            return messages
        self._apply(target, messages)
        sync_polls_total.inc(mode=target.mode, outcome="applied")
        return messages

    def _apply(self, target: ConversationTarget, messages: tuple[ConversationMessage, ...]) -> None:
        previous = self._snapshot
        snapshot = ConversationSnapshot(
            target=target,
            messages=messages,
            groups=tuple(group_messages(messages)),
        )
        self._snapshot = snapshot
        if previous is not None and previous.messages == messages:
            return
        for callback in list(self._listeners):
            callback(snapshot)
