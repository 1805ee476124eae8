"""Tests for the server directory and the resumable server creation flow."""

from __future__ import annotations

import pytest
from conftest import at

from app.monitoring.metrics import server_creations_total
from huddle.directory import DEFAULT_CHANNELS, DirectoryModel, ServerCreationFlow, order_channels
from huddle.entities.records import Channel, ChannelKind, EntityKind, MemberRole, User
from huddle.errors import NotFound, PartialCreate, Unavailable

ANN = User.from_payload({"id": "A", "email": "ann@example.com"})


def _channel(identifier: str, position: int) -> Channel:
    return Channel.from_payload(
        {"id": identifier, "server_id": "s1", "name": identifier, "position": position}
    )


def test_channels_order_by_position_then_identifier():
    ordered = order_channels([_channel("c", 1), _channel("b", 0), _channel("a", 1)])
    assert [channel.id for channel in ordered] == ["b", "a", "c"]


@pytest.mark.anyio("asyncio")
async def test_server_list_is_newest_first_and_respects_visibility(store):
    store.seed(EntityKind.SERVER, id="old", name="Old", owner_id="B", created_date=at(0))
    store.seed(EntityKind.SERVER, id="new", name="New", owner_id="B", created_date=at(5))
    store.seed(EntityKind.SERVER, id="hidden", name="Hidden", owner_id="B",
               is_public=False, created_date=at(3))
    store.seed(EntityKind.SERVER, id="invited", name="Invited", owner_id="B",
               is_public=False, created_date=at(2))
    store.seed(EntityKind.SERVER, id="mine", name="Mine", owner_id="A",
               is_public=False, created_date=at(1))
    store.seed(EntityKind.SERVER_MEMBER, server_id="invited", user_id="A", role="member")

    servers = await DirectoryModel(store).load_servers(ANN)

    assert [server.id for server in servers] == ["new", "invited", "mine", "old"]


@pytest.mark.anyio("asyncio")
async def test_transport_failures_reach_the_caller(store):
    store.seed(EntityKind.SERVER, id="s1", name="Ops", owner_id="A")
    directory = DirectoryModel(store)

    store.fail_next("filter", EntityKind.SERVER)
    with pytest.raises(Unavailable):
        await directory.load_servers(ANN)

    store.fail_next("get", EntityKind.SERVER)
    with pytest.raises(Unavailable):
        await directory.load_server_detail("s1")

    store.fail_next("filter", EntityKind.CHANNEL)
    with pytest.raises(Unavailable):
        await directory.load_server_detail("s1")

    # Nothing is cached; the next call sees the store again.
    assert [server.id for server in await directory.load_servers(ANN)] == ["s1"]
    assert (await directory.load_server_detail("s1")).server.name == "Ops"


@pytest.mark.anyio("asyncio")
async def test_server_detail_splits_channels_and_orders_members(store):
    store.seed(EntityKind.SERVER, id="s1", name="Ops", owner_id="A")
    store.seed(EntityKind.CHANNEL, id="voice", server_id="s1", name="voice-chat",
               type="voice", position=1)
    store.seed(EntityKind.CHANNEL, id="general", server_id="s1", name="general",
               type="text", position=0)
    store.seed(EntityKind.CHANNEL, id="ideas", server_id="s1", name="ideas",
               type="text", position=2)
    store.seed(EntityKind.SERVER_MEMBER, id="m2", server_id="s1", user_id="B", username="zed")
    store.seed(EntityKind.SERVER_MEMBER, id="m1", server_id="s1", user_id="A",
               username="ann", role="owner")

    detail = await DirectoryModel(store).load_server_detail("s1")

    assert [channel.id for channel in detail.channels] == ["general", "voice", "ideas"]
    assert [channel.id for channel in detail.text_channels] == ["general", "ideas"]
    assert [channel.id for channel in detail.media_channels] == ["voice"]
    assert detail.default_channel.id == "general"
    assert [member.label for member in detail.members] == ["ann", "zed"]
    assert detail.member_for("A").role is MemberRole.OWNER
    assert detail.channel("missing") is None


@pytest.mark.anyio("asyncio")
async def test_missing_server_raises_not_found(store):
    with pytest.raises(NotFound):
        await DirectoryModel(store).load_server_detail("nope")


@pytest.mark.anyio("asyncio")
async def test_direct_peers_exclude_self_and_match_query(store):
    store.seed(EntityKind.USER, id="A", email="ann@example.com")
    store.seed(EntityKind.USER, id="B", username="bob", email="bob@example.com")
    store.seed(EntityKind.USER, id="C", username="carol", email="c@corp.io", status="away")

    directory = DirectoryModel(store)
    everyone = await directory.list_direct_peers(ANN)
    assert [user.id for user in everyone] == ["B", "C"]

    by_email = await directory.list_direct_peers(ANN, "CORP")
    assert [user.id for user in by_email] == ["C"]
    assert await directory.list_direct_peers(ANN, "ann") == []


@pytest.mark.anyio("asyncio")
async def test_create_server_adds_owner_and_default_channels(store):
    created_before = server_creations_total.value(outcome="created")

    detail = await ServerCreationFlow(store).create(ANN, "  Guild  ", description="Hangout")

    assert detail.server.name == "Guild"
    assert detail.server.owner_id == "A"
    assert [(channel.name, channel.kind, channel.position) for channel in detail.channels] == [
        ("general", ChannelKind.TEXT, 0),
        ("voice-chat", ChannelKind.VOICE, 1),
    ]
    assert [channel.description for channel in detail.channels] == [
        "General discussion",
        "Voice channel",
    ]
    owner = detail.member_for("A")
    assert owner.role is MemberRole.OWNER
    assert owner.username == "ann"
    assert server_creations_total.value(outcome="created") == created_before + 1


@pytest.mark.anyio("asyncio")
@pytest.mark.parametrize(
    ("name", "description"),
    [("", ""), ("   ", ""), ("x" * 101, ""), ("ok", "d" * 501)],
)
async def test_create_server_validates_input(store, name, description):
    with pytest.raises(ValueError):
        await ServerCreationFlow(store).create(ANN, name, description=description)
    assert store.all(EntityKind.SERVER) == []


@pytest.mark.anyio("asyncio")
async def test_failed_channel_step_raises_partial_and_resume_completes(store):
    flow = ServerCreationFlow(store)
    store.fail_next("bulk_create", EntityKind.CHANNEL)

    with pytest.raises(PartialCreate) as excinfo:
        await flow.create(ANN, "Guild")

    partial = excinfo.value
    assert partial.completed_steps == ("server", "owner_membership")
    assert len(store.all(EntityKind.SERVER)) == 1
    assert len(store.all(EntityKind.SERVER_MEMBER)) == 1
    assert store.all(EntityKind.CHANNEL) == []

    detail = await flow.resume(partial, ANN)

    assert [channel.name for channel in detail.channels] == [
        template["name"] for template in DEFAULT_CHANNELS
    ]
    assert len(store.all(EntityKind.SERVER_MEMBER)) == 1
    assert len(store.all(EntityKind.SERVER)) == 1


@pytest.mark.anyio("asyncio")
async def test_resume_does_not_duplicate_existing_rows(store):
    flow = ServerCreationFlow(store)
    store.fail_next("create", EntityKind.SERVER_MEMBER)

    with pytest.raises(PartialCreate) as excinfo:
        await flow.create(ANN, "Guild")
    partial = excinfo.value
    assert partial.completed_steps == ("server",)

    server_id = partial.server.id
    store.seed(EntityKind.CHANNEL, server_id=server_id, name="general", type="text", position=0)

    detail = await flow.resume(partial, ANN)

    assert [channel.position for channel in detail.channels] == [0, 1]
    assert len(store.all(EntityKind.CHANNEL)) == 2
    assert len(store.all(EntityKind.SERVER_MEMBER)) == 1


@pytest.mark.anyio("asyncio")
async def test_only_the_creator_can_resume(store):
    flow = ServerCreationFlow(store)
    store.fail_next("bulk_create", EntityKind.CHANNEL)
    with pytest.raises(PartialCreate) as excinfo:
        await flow.create(ANN, "Guild")

    intruder = User.from_payload({"id": "Z", "username": "zed"})
    with pytest.raises(ValueError):
        await flow.resume(excinfo.value, intruder)
