"""Metric registry shared by the engine and the reference service."""

from . import metrics, registry

__all__ = ["metrics", "registry"]
