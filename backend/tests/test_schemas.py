"""Unit tests validating Pydantic schema constraints."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.schemas import ChannelCreate, ProfileUpdate, ServerCreate, UserCreate
from huddle.entities.records import ChannelKind


def test_server_create_strips_whitespace_and_limits_lengths():
    server = ServerCreate(name="  Planning  ", owner_id="u1")
    assert server.name == "Planning"
    assert server.is_public is True

    with pytest.raises(ValidationError):
        ServerCreate(name="x" * 101, owner_id="u1")
    with pytest.raises(ValidationError):
        ServerCreate(name="ok", description="d" * 501, owner_id="u1")


def test_channel_create_requires_non_empty_name_and_known_type():
    with pytest.raises(ValidationError):
        ChannelCreate(server_id="s1", name="   ")
    with pytest.raises(ValidationError):
        ChannelCreate(server_id="s1", name="stage", type="stage")
    assert ChannelCreate(server_id="s1", name="video", type="video").type is ChannelKind.VIDEO


def test_create_payloads_forbid_unknown_fields():
    with pytest.raises(ValidationError):
        ChannelCreate(server_id="s1", name="general", id="forced")


def test_user_create_enforces_password_length_and_email_shape():
    with pytest.raises(ValidationError):
        UserCreate(email="bob@example.com", password="short")
    with pytest.raises(ValidationError):
        UserCreate(email="not-an-email", password="long-enough")


def test_profile_update_limits_bio_and_validates_color():
    assert ProfileUpdate(bio="b" * 200).bio == "b" * 200
    with pytest.raises(ValidationError):
        ProfileUpdate(bio="b" * 201)
    with pytest.raises(ValidationError):
        ProfileUpdate(banner_color="blue")
    with pytest.raises(ValidationError):
        ProfileUpdate(status="invisible")
