"""Metric definitions for conversation sync, sending and the entity service."""

from __future__ import annotations

from .registry import registry


sync_polls_total = registry.counter(
    "huddle_sync_polls_total",
    "Synchronization passes by conversation mode and outcome (applied, discarded, failed).",
    label_names=("mode", "outcome"),
)

sync_ticks_skipped_total = registry.counter(
    "huddle_sync_ticks_skipped_total",
    "Poll ticks skipped because a pass was still in flight.",
    label_names=("mode",),
)

sync_active_conversations = registry.gauge(
    "huddle_sync_active_conversations",
    "Whether a conversation of the given mode is currently being polled.",
    label_names=("mode",),
)

message_sends_total = registry.counter(
    "huddle_message_sends_total",
    "Message send attempts by conversation mode and outcome (sent, failed, busy).",
    label_names=("kind", "outcome"),
)

server_creations_total = registry.counter(
    "huddle_server_creations_total",
    "Server creation flows by outcome (created, partial, failed).",
    label_names=("outcome",),
)

entity_requests_total = registry.counter(
    "huddle_entity_requests_total",
    "Entity API requests handled by the reference service.",
    label_names=("kind", "operation"),
)
