#!filepath: tickcheck/scheduling/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from tickcheck.core.model import TestModel
from tickcheck.core.timeline import Action, Single, StateProbe
from tickcheck.core.types import Position, Region


# -------------------------
# Packing
# -------------------------
@dataclass(frozen=True)
class PlacedTest:
    """一个测试 + SpatialPacker 分配的 Placement"""

    test: TestModel
    order: int            # 全局输入顺序
    chunk_id: int
    cell: Tuple[int, int]  # (column, row)
    offset: Position

    @property
    def name(self) -> str:
        return self.test.name

    @property
    def world_cleanup(self) -> Region:
        return self.test.cleanup.translate(self.offset)


@dataclass(frozen=True)
class Chunk:
    chunk_id: int
    tests: Tuple[PlacedTest, ...]
    margin: int

    def padded_box(self, placed: PlacedTest) -> Region:
        return placed.world_cleanup.pad(self.margin)


@dataclass
class PackingResult:
    chunks: List[Chunk] = field(default_factory=list)
    # OversizedTest，按输入顺序
    rejected: List[Tuple[int, TestModel, Exception]] = field(default_factory=list)


# -------------------------
# Scheduling
# -------------------------
Payload = Union[Action, Single, StateProbe]

RANK_ACTION = 0
RANK_CHECK = 1


@dataclass(frozen=True)
class ScheduledEvent:
    """
    (absolute tick, test id, Action|Check)

    payload 已按 Placement 平移到世界坐标
    """

    tick: int
    test_index: int   # chunk 内下标
    rank: int         # 0 = action, 1 = check
    seq: int          # 定义内顺序
    payload: Payload

    @property
    def is_action(self) -> bool:
        return self.rank == RANK_ACTION

    def sort_key(self) -> Tuple[int, int, int, int]:
        return (self.tick, self.test_index, self.rank, self.seq)


@dataclass(frozen=True)
class EmptyRange:
    """[start, start + length) 内没有任何事件"""

    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length - 1


@dataclass(frozen=True)
class ChunkSchedule:
    chunk: Chunk
    events: Tuple[ScheduledEvent, ...]
    empty_ranges: Tuple[EmptyRange, ...]
    breakpoints: FrozenSet[int]
    last_tick: int
    # test_index → 该测试最后一个事件的 tick
    test_last_ticks: Dict[int, int]

    def range_containing(self, tick: int) -> Optional[EmptyRange]:
        for r in self.empty_ranges:
            if r.start <= tick <= r.end:
                return r
        return None
