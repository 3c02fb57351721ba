#!filepath: tickcheck/core/model.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Tuple

from tickcheck.core.timeline import TimelineItem, item_ticks
from tickcheck.core.types import Region
from tickcheck.utils.errors import ValidationError


@dataclass(frozen=True)
class TestModel:
    """
    TestModel（FROZEN）

    语义：
      - 一个已加载的测试定义，加载后只读
      - 所有 tick 相对于本测试开始（0-based）
      - 所有坐标为测试本地坐标；Placement 由 SpatialPacker 计算，不存这里

    Invariants:
      - tick >= 0
      - cleanup 覆盖 timeline 触及的每一个位置
    """

    __test__ = False  # not a pytest class

    name: str
    description: str
    tags: FrozenSet[str]
    cleanup: Region
    breakpoints: FrozenSet[int]
    timeline: Tuple[TimelineItem, ...]
    source: Optional[Path] = field(default=None, compare=False)

    def __post_init__(self):
        self.validate()

    # --------------------------------------------------
    def validate(self) -> None:
        if not self.name:
            raise ValidationError("test name is empty", path=self.source)

        for bp in self.breakpoints:
            if bp < 0:
                raise ValidationError(f"negative breakpoint tick {bp}", path=self.source, test=self.name)

        for item in self.timeline:
            for tick in item_ticks(item):
                if tick < 0:
                    raise ValidationError(
                        f"negative tick offset {tick} in '{item.kind}'",
                        path=self.source, test=self.name,
                    )
            if not self.cleanup.contains_region(item.footprint()):
                raise ValidationError(
                    f"'{item.kind}' at {item.footprint().as_lists()} lies outside "
                    f"cleanup region {self.cleanup.as_lists()}",
                    path=self.source, test=self.name,
                )

    # --------------------------------------------------
    @property
    def last_tick(self) -> int:
        ticks = [t for item in self.timeline for t in item_ticks(item)]
        ticks.extend(self.breakpoints)
        return max(ticks, default=0)

    @property
    def tick_count(self) -> int:
        return self.last_tick + 1

    def touched_region(self) -> Optional[Region]:
        return Region.bounding(item.footprint() for item in self.timeline)

    def matches_tags(self, tags: Iterable[str]) -> bool:
        wanted = set(tags)
        if not wanted:
            return True
        return bool(wanted & self.tags)
