"""Conversation assembly: targets, grouping, synchronization and sending."""

from .grouping import GroupedMessage, compute_run_starts, group_messages  # noqa: F401
from .send import SendPipeline, SendResult  # noqa: F401
from .synchronizer import ConversationSnapshot, ConversationSynchronizer  # noqa: F401
from .targets import ChannelTarget, ConversationTarget, DirectTarget, merge_messages  # noqa: F401

__all__ = [
    "ChannelTarget",
    "DirectTarget",
    "ConversationTarget",
    "merge_messages",
    "GroupedMessage",
    "compute_run_starts",
    "group_messages",
    "ConversationSnapshot",
    "ConversationSynchronizer",
    "SendPipeline",
    "SendResult",
]
