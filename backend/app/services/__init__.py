"""Application service helpers."""

from .entities import ENTITY_TYPES, get_entity_type

__all__ = ["ENTITY_TYPES", "get_entity_type"]
