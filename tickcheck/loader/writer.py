#!filepath: tickcheck/loader/writer.py
from __future__ import annotations

import json
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List

from tickcheck import logs
from tickcheck.core.model import TestModel
from tickcheck.core.timeline import Fill, Place, PlaceEach, Remove, Single, StateSequence
from tickcheck.utils.filesystem import FileSystem


def _block(spec) -> str:
    return spec.to_command()


def to_document(test: TestModel) -> Dict[str, Any]:
    """
    TestModel → 定义文档（dict）

    同一 tick 的 Place 合并为 place_each，同一 tick 的 Single 合并为一个 assert。
    """
    by_tick: "OrderedDict[int, Dict[str, list]]" = OrderedDict()
    tail: List[Dict[str, Any]] = []

    def bucket(tick: int) -> Dict[str, list]:
        return by_tick.setdefault(tick, {"place": [], "other": [], "checks": []})

    for item in sorted(
        (i for i in test.timeline if not isinstance(i, StateSequence)),
        key=lambda i: i.tick,
    ):
        b = bucket(item.tick)
        if isinstance(item, Place):
            b["place"].append({"pos": item.pos.as_list(), "block": _block(item.block)})
        elif isinstance(item, PlaceEach):
            b["place"].extend({"pos": p.as_list(), "block": _block(s)} for p, s in item.placements)
        elif isinstance(item, Remove):
            b["other"].append({"at": item.tick, "do": "remove", "pos": item.pos.as_list()})
        elif isinstance(item, Fill):
            b["other"].append({
                "at": item.tick, "do": "fill",
                "region": item.region.as_lists(), "with": _block(item.block),
            })
        elif isinstance(item, Single):
            b["checks"].append({"pos": item.pos.as_list(), "is": _block(item.expected)})

    for item in test.timeline:
        if isinstance(item, StateSequence):
            tail.append({
                "at": list(item.ticks), "do": "assert_state",
                "pos": item.pos.as_list(), "state": item.state,
                "values": [v for _, v in item.expectations],
            })

    timeline: List[Dict[str, Any]] = []
    for tick, b in by_tick.items():
        if len(b["place"]) == 1:
            only = b["place"][0]
            timeline.append({"at": tick, "do": "place", **only})
        elif b["place"]:
            timeline.append({"at": tick, "do": "place_each", "blocks": b["place"]})
        timeline.extend(b["other"])
        if b["checks"]:
            timeline.append({"at": tick, "do": "assert", "checks": b["checks"]})
    timeline.extend(tail)

    return {
        "name": test.name,
        "description": test.description,
        "tags": sorted(test.tags),
        "setup": {"cleanup": {"region": test.cleanup.as_lists()}},
        "breakpoints": sorted(test.breakpoints),
        "timeline": timeline,
    }


def write_test(test: TestModel, path: str | Path) -> Path:
    path = Path(path)
    text = json.dumps(to_document(test), indent=2, ensure_ascii=False)
    FileSystem.safe_write_text(path, text + "\n")
    logs.info(f"[Writer] test '{test.name}' saved to {path}")
    return path
