"""Behavioural tests for the polling conversation synchronizer."""

from __future__ import annotations

import asyncio

import pytest
from conftest import at

from app.monitoring.metrics import sync_polls_total, sync_ticks_skipped_total
from huddle.conversations import ChannelTarget, ConversationSynchronizer, DirectTarget
from huddle.entities.records import EntityKind
from huddle.errors import Unavailable

IDLE = 3600.0


def _seed_general(store) -> None:
    store.seed(EntityKind.MESSAGE, id="m1", channel_id="general", user_id="A",
               content="one", created_date=at(0))
    store.seed(EntityKind.MESSAGE, id="m3", channel_id="general", user_id="B",
               content="three", created_date=at(2))
    store.seed(EntityKind.MESSAGE, id="m2", channel_id="general", user_id="A",
               content="two", created_date=at(1))


@pytest.mark.anyio("asyncio")
async def test_first_pass_orders_and_groups_channel(store):
    _seed_general(store)
    async with ConversationSynchronizer(store, interval=IDLE) as synchronizer:
        snapshot = await synchronizer.activate(ChannelTarget("general"))

        assert snapshot is not None
        assert [message.id for message in snapshot.messages] == ["m1", "m2", "m3"]
        assert [group.starts_run for group in snapshot.groups] == [True, False, True]
        assert synchronizer.messages == snapshot.messages


@pytest.mark.anyio("asyncio")
async def test_direct_scenario_orders_across_directions(store):
    store.seed(EntityKind.DIRECT_MESSAGE, id="d1", sender_id="A", receiver_id="B",
               content="hello", created_date=at(0))
    store.seed(EntityKind.DIRECT_MESSAGE, id="d2", sender_id="B", receiver_id="A",
               content="earlier", created_date=at(-1))

    async with ConversationSynchronizer(store, interval=IDLE) as synchronizer:
        snapshot = await synchronizer.activate(DirectTarget("A", "B"))

    assert [message.id for message in snapshot.messages] == ["d2", "d1"]
    assert [group.starts_run for group in snapshot.groups] == [True, True]


@pytest.mark.anyio("asyncio")
async def test_ticks_are_skipped_while_a_pass_is_pending(store):
    _seed_general(store)
    skipped_before = sync_ticks_skipped_total.value(mode="channel")
    gate = store.hold("filter", EntityKind.MESSAGE, channel_id="general")

    async with ConversationSynchronizer(store, interval=0.01) as synchronizer:
        first_pass = synchronizer.activate(ChannelTarget("general"))
        await asyncio.wait_for(gate.entered.wait(), timeout=1)
        await asyncio.sleep(0.1)

        assert store.count("filter", EntityKind.MESSAGE) == 1
        assert synchronizer.is_syncing
        assert sync_ticks_skipped_total.value(mode="channel") > skipped_before

        gate.release()
        snapshot = await asyncio.wait_for(first_pass, timeout=1)
        assert [message.id for message in snapshot.messages] == ["m1", "m2", "m3"]


@pytest.mark.anyio("asyncio")
async def test_switching_targets_drops_late_response(store):
    _seed_general(store)
    store.seed(EntityKind.MESSAGE, id="r1", channel_id="random", user_id="C",
               content="elsewhere", created_date=at(5))
    discarded_before = sync_polls_total.value(mode="channel", outcome="discarded")
    gate = store.hold("filter", EntityKind.MESSAGE, channel_id="general")

    async with ConversationSynchronizer(store, interval=IDLE) as synchronizer:
        stale_pass = synchronizer.activate(ChannelTarget("general"))
        await asyncio.wait_for(gate.entered.wait(), timeout=1)

        fresh = await synchronizer.activate(ChannelTarget("random"))
        assert [message.id for message in fresh.messages] == ["r1"]

        gate.release()
        assert await asyncio.wait_for(stale_pass, timeout=1) is None

        assert synchronizer.target == ChannelTarget("random")
        assert [message.id for message in synchronizer.messages] == ["r1"]
        assert sync_polls_total.value(mode="channel", outcome="discarded") == discarded_before + 1


@pytest.mark.anyio("asyncio")
async def test_failed_poll_keeps_previous_sequence(store):
    _seed_general(store)
    failed_before = sync_polls_total.value(mode="channel", outcome="failed")

    async with ConversationSynchronizer(store, interval=0.01) as synchronizer:
        snapshot = await synchronizer.activate(ChannelTarget("general"))
        store.fail_next("filter", EntityKind.MESSAGE)
        await asyncio.sleep(0.1)

        assert synchronizer.messages == snapshot.messages
        assert sync_polls_total.value(mode="channel", outcome="failed") == failed_before + 1


@pytest.mark.anyio("asyncio")
async def test_polling_picks_up_new_messages_and_notifies_on_change(store):
    _seed_general(store)
    updates = []

    async with ConversationSynchronizer(store, interval=0.01) as synchronizer:
        synchronizer.subscribe(updates.append)
        await synchronizer.activate(ChannelTarget("general"))
        await asyncio.sleep(0.05)
        assert len(updates) == 1

        store.seed(EntityKind.MESSAGE, id="m4", channel_id="general", user_id="B",
                   content="four", created_date=at(3))
        await asyncio.sleep(0.1)

    assert len(updates) == 2
    assert [message.id for message in updates[-1].messages] == ["m1", "m2", "m3", "m4"]


@pytest.mark.anyio("asyncio")
async def test_unsubscribed_callbacks_are_not_called(store):
    _seed_general(store)
    updates = []
    async with ConversationSynchronizer(store, interval=IDLE) as synchronizer:
        unsubscribe = synchronizer.subscribe(updates.append)
        unsubscribe()
        await synchronizer.activate(ChannelTarget("general"))
    assert updates == []


@pytest.mark.anyio("asyncio")
async def test_deactivate_stops_polling_and_clears_snapshot(store):
    _seed_general(store)
    async with ConversationSynchronizer(store, interval=0.01) as synchronizer:
        await synchronizer.activate(ChannelTarget("general"))
        synchronizer.deactivate()
        # Let a pass detached by deactivate finish before counting.
        await asyncio.sleep(0.02)
        calls = store.count("filter", EntityKind.MESSAGE)
        await asyncio.sleep(0.05)

        assert store.count("filter", EntityKind.MESSAGE) == calls
        assert synchronizer.target is None
        assert synchronizer.messages == ()


@pytest.mark.anyio("asyncio")
async def test_synchronize_waits_for_pending_pass_and_propagates_errors(store):
    _seed_general(store)
    gate = store.hold("filter", EntityKind.MESSAGE, channel_id="general")

    async with ConversationSynchronizer(store, interval=IDLE) as synchronizer:
        target = ChannelTarget("general")
        first_pass = synchronizer.activate(target)
        await asyncio.wait_for(gate.entered.wait(), timeout=1)

        forced = asyncio.create_task(synchronizer.synchronize(target))
        await asyncio.sleep(0.01)
        assert store.count("filter", EntityKind.MESSAGE) == 1

        gate.release()
        await first_pass
        messages = await asyncio.wait_for(forced, timeout=1)
        assert [message.id for message in messages] == ["m1", "m2", "m3"]
        assert store.count("filter", EntityKind.MESSAGE) == 2

        store.fail_next("filter", EntityKind.MESSAGE)
        with pytest.raises(Unavailable):
            await synchronizer.synchronize(target)


@pytest.mark.anyio("asyncio")
async def test_explicit_passes_never_overlap_with_ticks(store):
    _seed_general(store)
    store.latency = 0.002
    target = ChannelTarget("general")

    async with ConversationSynchronizer(store, interval=0) as synchronizer:
        await synchronizer.activate(target)
        for _ in range(20):
            messages = await asyncio.wait_for(synchronizer.synchronize(target), timeout=1)
            assert [message.id for message in messages] == ["m1", "m2", "m3"]

    assert store.peak_active == 1


@pytest.mark.anyio("asyncio")
async def test_concurrent_explicit_passes_share_the_single_slot(store):
    _seed_general(store)
    store.latency = 0.002
    target = ChannelTarget("general")

    async with ConversationSynchronizer(store, interval=IDLE) as synchronizer:
        await synchronizer.activate(target)
        results = await asyncio.wait_for(
            asyncio.gather(*(synchronizer.synchronize(target) for _ in range(5))), timeout=1
        )

    assert all(len(messages) == 3 for messages in results)
    assert store.peak_active == 1


@pytest.mark.anyio("asyncio")
async def test_message_from_deleted_author_still_renders(store):
    _seed_general(store)
    store.seed(EntityKind.MESSAGE, id="m4", channel_id="general", user_id=None,
               username=None, content="orphaned", created_date=at(3))

    async with ConversationSynchronizer(store, interval=IDLE) as synchronizer:
        snapshot = await synchronizer.activate(ChannelTarget("general"))

    assert snapshot is not None
    assert [message.id for message in snapshot.messages] == ["m1", "m2", "m3", "m4"]
    assert snapshot.messages[-1].author_id is None
    assert [group.starts_run for group in snapshot.groups] == [True, False, True, True]
