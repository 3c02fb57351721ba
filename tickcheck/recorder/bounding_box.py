#!filepath: tickcheck/recorder/bounding_box.py
from __future__ import annotations

from typing import Optional

from tickcheck.core.types import Position, Region


class BoundingBox:
    """录制过程中所有被引用位置的包围盒（可变，逐点扩张）"""

    def __init__(self):
        self.low: Optional[Position] = None
        self.high: Optional[Position] = None

    def expand(self, pos: Position) -> None:
        if self.low is None:
            self.low = self.high = pos
            return
        self.low = Position(min(self.low.x, pos.x), min(self.low.y, pos.y), min(self.low.z, pos.z))
        self.high = Position(max(self.high.x, pos.x), max(self.high.y, pos.y), max(self.high.z, pos.z))

    @property
    def is_valid(self) -> bool:
        return self.low is not None

    def to_region(self, padding: int = 1) -> Region:
        if not self.is_valid:
            raise ValueError("empty bounding box")
        return Region(self.low, self.high).pad(padding)
