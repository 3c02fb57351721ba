#!filepath: tickcheck/observability/instrumentation.py
from __future__ import annotations

from dataclasses import dataclass
from contextlib import contextmanager
from collections import OrderedDict
from time import perf_counter
from typing import Dict

from tickcheck.observability.progress import ProgressReporter
from tickcheck.observability.timeline_reporter import TimelineReporter


@dataclass
class Instrumentation:
    """
    Instrumentation（每个 chunk 的耗时记账 + tick 进度）

    timeline key 约定："chunk_<id>.run" / "chunk_<id>.cleanup"
    只记录叶子（record=True）；record=False 的 timer 只划定边界。
    tick 循环里不打日志，进度交给 ProgressReporter 节流。
    """

    enabled: bool = True

    def __post_init__(self):
        self.progress = ProgressReporter(enabled=self.enabled)
        self._starts: Dict[str, float] = {}

        # timeline: OrderedDict[leaf_name, elapsed_seconds]
        self.timeline: Dict[str, float] = OrderedDict()

    def timer(self, name: str, *, record: bool = True):
        """
        Context-manager timer.

        record=True 的叶子节点写入 timeline；record=False 只定义 wall-time。
        """
        inst = self

        @contextmanager
        def _ctx():
            if not inst.enabled:
                yield
                return

            inst._starts[name] = perf_counter()
            try:
                yield
            finally:
                elapsed = perf_counter() - inst._starts.pop(name)
                if record:
                    inst.timeline[name] = elapsed

        return _ctx()

    def add(self, name: str, seconds: float) -> None:
        """跨暂停的区间无法用 context manager 包裹，直接按叶子记账"""
        if self.enabled:
            self.timeline[name] = self.timeline.get(name, 0.0) + seconds

    def generate_timeline_report(self, label: str):
        TimelineReporter(self.timeline, label).print()


# -------------------------------------------------------------
# No-op Instrumentation（禁用 observability）
# -------------------------------------------------------------
class NoOpInstrumentation:
    """Instrumentation disabled 时使用。"""

    enabled = False

    def __init__(self):
        self.progress = ProgressReporter(enabled=False)
        self.timeline: Dict[str, float] = OrderedDict()

    def timer(self, name: str, *, record: bool = True):
        return _NoOpTimer()

    def add(self, name: str, seconds: float) -> None:
        pass

    def generate_timeline_report(self, label: str):
        pass


class _NoOpTimer:
    def __enter__(self):
        pass

    def __exit__(self, exc_type, exc, tb):
        pass
