#!filepath: tickcheck/scheduling/__init__.py
from .packer import SpatialPacker
from .scheduler import ChunkScheduler
from .types import (
    Chunk,
    ChunkSchedule,
    EmptyRange,
    PackingResult,
    PlacedTest,
    ScheduledEvent,
)

__all__ = [
    "SpatialPacker", "ChunkScheduler",
    "Chunk", "ChunkSchedule", "EmptyRange", "PackingResult", "PlacedTest", "ScheduledEvent",
]
