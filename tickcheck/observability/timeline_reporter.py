#!filepath: tickcheck/observability/timeline_reporter.py
from __future__ import annotations

from collections import OrderedDict
from typing import Dict, List, Tuple

from tickcheck import logs


class TimelineReporter:
    """
    Run 结束后的耗时报告

    timeline 的 key 形如 "chunk_3.run" / "chunk_3.cleanup"：
    按 chunk 聚合成一行（run / cleanup / 占比）；不带 "." 的 key 单独成行。
    """

    def __init__(self, timeline: Dict[str, float], label: str):
        self.timeline = timeline
        self.label = label

    def rows(self) -> List[Tuple[str, float, float]]:
        """[(scope, run_seconds, cleanup_seconds)]，保持记录顺序"""
        grouped: "OrderedDict[str, List[float]]" = OrderedDict()
        for name, sec in self.timeline.items():
            scope, _, phase = name.partition(".")
            slot = grouped.setdefault(scope, [0.0, 0.0])
            slot[1 if phase == "cleanup" else 0] += sec
        return [(scope, run, cleanup) for scope, (run, cleanup) in grouped.items()]

    def print(self) -> None:
        rows = self.rows()
        if not rows:
            return

        total = sum(run + cleanup for _, run, cleanup in rows) or 1e-9
        logs.info(f"[Timeline] {self.label}: {len(rows)} scopes")
        for scope, run, cleanup in rows:
            share = (run + cleanup) / total * 100
            logs.info(f"[Timeline] {scope:<12} run={run:8.3f}s cleanup={cleanup:7.3f}s ({share:5.1f}%)")
        logs.info(f"[Timeline] total {sum(r + c for _, r, c in rows):.3f}s")
