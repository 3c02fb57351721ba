#!filepath: tickcheck/recorder/snapshot.py
from __future__ import annotations

from typing import Dict, List, Tuple

from tickcheck.core.types import BlockSpec, Position, Region
from tickcheck.world.base import WorldClient

Change = Tuple[Position, BlockSpec, BlockSpec]


class SnapshotDiffer:
    """
    WorldClient 只支持轮询时的替代方案：
    扫描参考点周围 radius 立方体，和上一份快照比较得到 (pos, old, new)。

    快照只保存非空方块；缺失 = air。
    """

    def __init__(self, world: WorldClient, center: Position, radius: int):
        self.world = world
        self.region = Region(
            Position(center.x - radius, center.y - radius, center.z - radius),
            Position(center.x + radius, center.y + radius, center.z + radius),
        )
        self.snapshot: Dict[Position, BlockSpec] = {}

    def take(self) -> Dict[Position, BlockSpec]:
        blocks = self.world.query_region(self.region)
        return {pos: b for pos, b in blocks.items() if not b.is_empty}

    def reset(self) -> None:
        self.snapshot = self.take()

    def poll(self) -> List[Change]:
        current = self.take()
        air = BlockSpec.air()
        changes: List[Change] = []

        for pos, block in current.items():
            old = self.snapshot.get(pos, air)
            if old != block:
                changes.append((pos, old, block))
        for pos, old in self.snapshot.items():
            if pos not in current:
                changes.append((pos, old, air))

        self.snapshot = current
        # 稳定顺序：按坐标
        changes.sort(key=lambda c: c[0])
        return changes
