#!filepath: tickcheck/core/__init__.py
from .types import AIR, BlockSpec, Position, Region, ZERO
from .timeline import (
    Action,
    Check,
    Fill,
    Place,
    PlaceEach,
    Remove,
    Single,
    StateProbe,
    StateSequence,
    TimelineItem,
    is_action,
    is_check,
)
from .model import TestModel

__all__ = [
    "AIR", "BlockSpec", "Position", "Region", "ZERO",
    "Action", "Check", "TimelineItem",
    "Place", "PlaceEach", "Fill", "Remove",
    "Single", "StateSequence", "StateProbe",
    "is_action", "is_check",
    "TestModel",
]
