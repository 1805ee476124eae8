"""Presence status resolution shared by every user listing."""

from __future__ import annotations

from enum import Enum


class PresenceStatus(str, Enum):
    """User presence indicator, in display order."""

    ONLINE = "online"
    AWAY = "away"
    BUSY = "busy"
    OFFLINE = "offline"


_STATUS_LOOKUP: dict[str, PresenceStatus] = {status.value: status for status in PresenceStatus}


def resolve_presence(raw: object) -> PresenceStatus:
    """Map a raw stored status to a known presence value.

    Anything unset or unrecognised resolves to ``offline``.
    """

    if isinstance(raw, PresenceStatus):
        return raw
    if not isinstance(raw, str):
        return PresenceStatus.OFFLINE
    return _STATUS_LOOKUP.get(raw.strip().casefold(), PresenceStatus.OFFLINE)
