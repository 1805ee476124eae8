"""Server directory: listing, detail snapshots and creation."""

from .creation import DEFAULT_CHANNELS, CreationStep, ServerCreationFlow  # noqa: F401
from .model import DirectoryModel, ServerDetail, order_channels  # noqa: F401

__all__ = [
    "DirectoryModel",
    "ServerDetail",
    "order_channels",
    "ServerCreationFlow",
    "CreationStep",
    "DEFAULT_CHANNELS",
]
