#!filepath: tickcheck/world/__init__.py
from .base import BlockChangeCallback, WorldClient
from .factory import connect_client, load_client
from .memory import InMemoryWorld, PollingWorld

__all__ = [
    "WorldClient", "BlockChangeCallback",
    "InMemoryWorld", "PollingWorld",
    "load_client", "connect_client",
]
