#!filepath: tickcheck/loader/definition.py
from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tickcheck.core.model import TestModel
from tickcheck.core.timeline import (
    Fill,
    Place,
    PlaceEach,
    Remove,
    Single,
    StateSequence,
    TimelineItem,
)
from tickcheck.core.types import BlockSpec, Position, Region, normalize_property_value

"""
Test definition schema（JSON / YAML 文档的结构契约）

{
  "name": "...", "description": "...", "tags": [...],
  "setup": {"cleanup": {"region": [[x,y,z],[x,y,z]]}},
  "breakpoints": [..],
  "timeline": [{"at": 0 | [..], "do": "<kind>", ...payload}]
}

schema 只负责结构校验；语义校验（cleanup 覆盖、负 tick）由 TestModel 负责。
"""

Coord = Annotated[List[int], Field(min_length=3, max_length=3)]
TickSelector = Union[int, List[int]]


class BlockDef(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    properties: Dict[str, Any] = Field(default_factory=dict)

    def to_spec(self) -> BlockSpec:
        return BlockSpec(self.id, {k: normalize_property_value(v) for k, v in self.properties.items()})


BlockField = Union[str, BlockDef]


def _block(value: BlockField) -> BlockSpec:
    if isinstance(value, str):
        return BlockSpec.parse(value)
    return value.to_spec()


def _ticks(at: TickSelector) -> List[int]:
    return [at] if isinstance(at, int) else list(at)


class _Entry(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    at: TickSelector

    @field_validator("at")
    @classmethod
    def _non_empty(cls, v: TickSelector) -> TickSelector:
        if isinstance(v, list) and not v:
            raise ValueError("'at' list is empty")
        return v


class PlaceEntry(_Entry):
    do: Literal["place"]
    pos: Coord
    block: BlockField

    def build(self) -> List[TimelineItem]:
        return [Place(t, Position.of(self.pos), _block(self.block)) for t in _ticks(self.at)]


class Placement(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pos: Coord
    block: BlockField


class PlaceEachEntry(_Entry):
    do: Literal["place_each"]
    blocks: List[Placement] = Field(min_length=1)

    def build(self) -> List[TimelineItem]:
        placements = tuple((Position.of(p.pos), _block(p.block)) for p in self.blocks)
        return [PlaceEach(t, placements) for t in _ticks(self.at)]


class FillEntry(_Entry):
    do: Literal["fill"]
    region: Annotated[List[Coord], Field(min_length=2, max_length=2)]
    with_: BlockField = Field(alias="with")

    def build(self) -> List[TimelineItem]:
        region = Region.from_corners(self.region[0], self.region[1])
        return [Fill(t, region, _block(self.with_)) for t in _ticks(self.at)]


class RemoveEntry(_Entry):
    do: Literal["remove"]
    pos: Coord

    def build(self) -> List[TimelineItem]:
        return [Remove(t, Position.of(self.pos)) for t in _ticks(self.at)]


class CheckDef(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pos: Coord
    is_: BlockField = Field(alias="is")


class AssertEntry(_Entry):
    do: Literal["assert"]
    checks: List[CheckDef] = Field(min_length=1)

    def build(self) -> List[TimelineItem]:
        return [
            Single(t, Position.of(c.pos), _block(c.is_))
            for t in _ticks(self.at)
            for c in self.checks
        ]


class AssertStateEntry(_Entry):
    do: Literal["assert_state"]
    pos: Coord
    state: str
    values: List[Any] = Field(min_length=1)

    @model_validator(mode="after")
    def _aligned(self) -> "AssertStateEntry":
        if len(_ticks(self.at)) != len(self.values):
            raise ValueError(
                f"assert_state needs one value per tick: {len(_ticks(self.at))} ticks, "
                f"{len(self.values)} values"
            )
        return self

    def build(self) -> List[TimelineItem]:
        expectations = tuple(
            (t, normalize_property_value(v)) for t, v in zip(_ticks(self.at), self.values)
        )
        return [StateSequence(Position.of(self.pos), self.state.lower(), expectations)]


TimelineEntry = Annotated[
    Union[PlaceEntry, PlaceEachEntry, FillEntry, RemoveEntry, AssertEntry, AssertStateEntry],
    Field(discriminator="do"),
]


class CleanupDef(BaseModel):
    region: Annotated[List[Coord], Field(min_length=2, max_length=2)]


class SetupDef(BaseModel):
    cleanup: CleanupDef


class TestDefinition(BaseModel):
    """
    TestDefinition（FROZEN）

    一个测试文件的原始结构；to_model() → TestModel
    """

    __test__ = False

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    setup: Optional[SetupDef] = None
    breakpoints: List[int] = Field(default_factory=list)
    timeline: List[TimelineEntry] = Field(default_factory=list)

    def to_model(self, *, source=None, default_padding: int = 1) -> TestModel:
        items: List[TimelineItem] = []
        for entry in self.timeline:
            items.extend(entry.build())

        if self.setup is not None:
            cleanup = Region.from_corners(*self.setup.cleanup.region)
        else:
            touched = Region.bounding(item.footprint() for item in items)
            cleanup = (touched or Region.point(Position(0, 0, 0))).pad(default_padding)

        return TestModel(
            name=self.name,
            description=self.description,
            tags=frozenset(self.tags),
            cleanup=cleanup,
            breakpoints=frozenset(self.breakpoints),
            timeline=tuple(items),
            source=source,
        )
