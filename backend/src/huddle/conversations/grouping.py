"""Authorship run detection for display."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from huddle.entities.records import ConversationMessage


@dataclass(frozen=True, slots=True)
class GroupedMessage:
    message: ConversationMessage
    starts_run: bool


def compute_run_starts(messages: Sequence[ConversationMessage]) -> list[bool]:
    """Return, for each message, whether it starts a new authorship run.

    The first message always starts a run. Every later message starts one when
    its author differs from the message right before it in the sequence.
    Elapsed time between messages is not considered.
    """

    starts: list[bool] = []
    previous_author: str | None = None
    for index, message in enumerate(messages):
        author = message.author_id
        starts.append(index == 0 or author != previous_author)
        previous_author = author
    return starts


def group_messages(messages: Sequence[ConversationMessage]) -> list[GroupedMessage]:
    return [
        GroupedMessage(message=message, starts_run=starts_run)
        for message, starts_run in zip(messages, compute_run_starts(messages), strict=True)
    ]
