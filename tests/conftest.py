# tests/conftest.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Optional

import pytest
import yaml
from loguru import logger

from tickcheck.core.model import TestModel
from tickcheck.core.types import Position, Region
from tickcheck.utils.errors import TransportError
from tickcheck.world.memory import InMemoryWorld


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)  # or sys.stderr
    yield


class FlakyWorld(InMemoryWorld):
    """
    InMemoryWorld + TransportError 注入

    fail_on: {"advance": {3}} → 第 3 次 advance 调用抛 TransportError（1-based）
    fail_always: 指定调用一律失败
    """

    def __init__(self, fail_on: Optional[dict] = None, fail_always: Iterable[str] = ()):
        super().__init__(operator=Position(0, 64, 0))
        self.fail_on = {k: set(v) for k, v in (fail_on or {}).items()}
        self.fail_always = set(fail_always)
        self._counts: dict[str, int] = {}

    def _maybe_fail(self, name: str) -> None:
        n = self._counts[name] = self._counts.get(name, 0) + 1
        if name in self.fail_always or n in self.fail_on.get(name, ()):
            raise TransportError(f"{name} #{n}: connection reset")

    def advance(self, ticks: int = 1) -> None:
        self._maybe_fail("advance")
        super().advance(ticks)

    def set_block(self, pos, block) -> None:
        self._maybe_fail("set_block")
        super().set_block(pos, block)

    def fill(self, region, block) -> None:
        self._maybe_fail("fill")
        super().fill(region, block)


@pytest.fixture
def world() -> InMemoryWorld:
    w = InMemoryWorld(operator=Position(0, 64, 0))
    w.connect("memory")
    return w


@pytest.fixture
def make_test():
    """
    Factory fixture for TestModel.

    cleanup 默认 [0,0,0]..[4,4,4]
    """

    def _make(
        name: str = "t",
        timeline: Iterable = (),
        *,
        cleanup: Optional[Region] = None,
        tags: Iterable[str] = (),
        breakpoints: Iterable[int] = (),
    ) -> TestModel:
        return TestModel(
            name=name,
            description="",
            tags=frozenset(tags),
            cleanup=cleanup or Region(Position(0, 0, 0), Position(4, 4, 4)),
            breakpoints=frozenset(breakpoints),
            timeline=tuple(timeline),
        )

    return _make


@pytest.fixture
def lamp_doc() -> dict:
    return {
        "name": "lamp_lights",
        "description": "lever powers a lamp",
        "tags": ["redstone"],
        "setup": {"cleanup": {"region": [[0, 0, 0], [3, 3, 3]]}},
        "timeline": [
            {"at": 0, "do": "place", "pos": [0, 0, 0], "block": "minecraft:redstone_lamp[lit=false]"},
            {"at": 1, "do": "place", "pos": [1, 0, 0], "block": "lever[powered=true]"},
            {"at": 2, "do": "assert", "checks": [{"pos": [1, 0, 0], "is": "minecraft:lever"}]},
        ],
    }


@pytest.fixture
def write_doc(tmp_path: Path):
    """write_doc("a.json", doc) → tmp_path/a.json（.yaml 后缀写 YAML）"""

    def _write(name: str, doc) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if name.endswith(".json"):
            path.write_text(json.dumps(doc), encoding="utf-8")
        else:
            path.write_text(yaml.safe_dump(doc), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def flaky_world():
    def _make(**kwargs) -> FlakyWorld:
        w = FlakyWorld(**kwargs)
        w.connect("memory")
        return w

    return _make
