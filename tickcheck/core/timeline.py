#!filepath: tickcheck/core/timeline.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from tickcheck.core.types import BlockSpec, Position, Region


# -------------------------
# Actions（写世界）
# -------------------------
@dataclass(frozen=True)
class Place:
    tick: int
    pos: Position
    block: BlockSpec

    kind = "place"

    def footprint(self) -> Region:
        return Region.point(self.pos)

    def translate(self, delta: Position) -> "Place":
        return Place(self.tick, self.pos.offset(delta), self.block)


@dataclass(frozen=True)
class PlaceEach:
    tick: int
    placements: Tuple[Tuple[Position, BlockSpec], ...]

    kind = "place_each"

    def footprint(self) -> Region:
        return Region.bounding(Region.point(p) for p, _ in self.placements)

    def translate(self, delta: Position) -> "PlaceEach":
        return PlaceEach(self.tick, tuple((p.offset(delta), b) for p, b in self.placements))


@dataclass(frozen=True)
class Fill:
    tick: int
    region: Region
    block: BlockSpec

    kind = "fill"

    def footprint(self) -> Region:
        return self.region

    def translate(self, delta: Position) -> "Fill":
        return Fill(self.tick, self.region.translate(delta), self.block)


@dataclass(frozen=True)
class Remove:
    tick: int
    pos: Position

    kind = "remove"

    def footprint(self) -> Region:
        return Region.point(self.pos)

    def translate(self, delta: Position) -> "Remove":
        return Remove(self.tick, self.pos.offset(delta))


# -------------------------
# Checks（读世界）
# -------------------------
@dataclass(frozen=True)
class Single:
    tick: int
    pos: Position
    expected: BlockSpec

    kind = "assert"

    def footprint(self) -> Region:
        return Region.point(self.pos)

    def translate(self, delta: Position) -> "Single":
        return Single(self.tick, self.pos.offset(delta), self.expected)


@dataclass(frozen=True)
class StateSequence:
    """
    同一位置、同一属性，在多个 tick 上各自期望一个值。

    每个 (tick, value) 独立评估；调度时展开为 StateProbe。
    """

    pos: Position
    state: str
    expectations: Tuple[Tuple[int, str], ...]

    kind = "assert_state"

    @property
    def ticks(self) -> Tuple[int, ...]:
        return tuple(t for t, _ in self.expectations)

    @property
    def tick(self) -> int:
        return min(self.ticks)

    def footprint(self) -> Region:
        return Region.point(self.pos)

    def translate(self, delta: Position) -> "StateSequence":
        return StateSequence(self.pos.offset(delta), self.state, self.expectations)


@dataclass(frozen=True)
class StateProbe:
    """StateSequence 在单个 tick 上的一次评估。"""

    sequence: StateSequence
    index: int

    kind = "assert_state"

    @property
    def tick(self) -> int:
        return self.sequence.expectations[self.index][0]

    @property
    def expected(self) -> str:
        return self.sequence.expectations[self.index][1]

    @property
    def pos(self) -> Position:
        return self.sequence.pos

    @property
    def state(self) -> str:
        return self.sequence.state


Action = Union[Place, PlaceEach, Fill, Remove]
Check = Union[Single, StateSequence]
TimelineItem = Union[Action, Check]

ACTION_TYPES = (Place, PlaceEach, Fill, Remove)
CHECK_TYPES = (Single, StateSequence, StateProbe)


def is_action(item) -> bool:
    return isinstance(item, ACTION_TYPES)


def is_check(item) -> bool:
    return isinstance(item, CHECK_TYPES)


def item_ticks(item: TimelineItem) -> Tuple[int, ...]:
    if isinstance(item, StateSequence):
        return item.ticks
    return (item.tick,)
