#!filepath: tickcheck/engine/results.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from tickcheck import logs
from tickcheck.core.types import Position


class Outcome(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    ERRORED = "errored"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class FailureDetail:
    """一次 Check 失败：tick 相对测试开始，position 为世界坐标（已平移）"""

    test: str
    tick: int
    expected: str
    actual: str
    position: Position

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test": self.test,
            "tick": self.tick,
            "expected": self.expected,
            "actual": self.actual,
            "position": self.position.as_list(),
        }


@dataclass
class TestResult:
    __test__ = False

    name: str
    outcome: Outcome
    failures: List[FailureDetail] = field(default_factory=list)
    elapsed: float = 0.0
    tick_count: int = 0
    reason: Optional[str] = None

    @property
    def failure(self) -> Optional[FailureDetail]:
        return self.failures[0] if self.failures else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "outcome": self.outcome.value,
            "failure": self.failure.to_dict() if self.failure else None,
            "elapsed": round(self.elapsed, 6),
            "tick_count": self.tick_count,
            "reason": self.reason,
        }


@dataclass
class RunResult:
    summary: Dict[str, Any]
    per_test: List[TestResult]
    failures: List[FailureDetail]
    aborted: bool = False

    @property
    def ok(self) -> bool:
        return self.summary["failed"] == 0 and self.summary["errored"] == 0 and not self.aborted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": dict(self.summary),
            "perTest": [r.to_dict() for r in self.per_test],
            "failures": [f.to_dict() for f in self.failures],
            "aborted": self.aborted,
        }


class ResultAggregator:
    """
    ResultAggregator

    chunk 之间唯一共享的对象；按测试的全局输入顺序输出。
    同一测试只接受一次结果（第二次视为编程错误）。
    """

    def __init__(self):
        self._results: Dict[int, TestResult] = {}
        self.aborted = False

    def add(self, order: int, result: TestResult) -> None:
        if order in self._results:
            raise RuntimeError(f"[ResultAggregator] duplicate result for '{result.name}' (order={order})")
        self._results[order] = result

    def skip(self, order: int, name: str, reason: str) -> None:
        self.add(order, TestResult(name=name, outcome=Outcome.SKIPPED, reason=reason))

    def has(self, order: int) -> bool:
        return order in self._results

    def __len__(self) -> int:
        return len(self._results)

    # --------------------------------------------------
    def build(self, duration: float) -> RunResult:
        per_test = [self._results[k] for k in sorted(self._results)]
        counts = {o: 0 for o in Outcome}
        for r in per_test:
            counts[r.outcome] += 1

        summary = {
            "total": len(per_test),
            "passed": counts[Outcome.PASSED],
            "failed": counts[Outcome.FAILED],
            "errored": counts[Outcome.ERRORED],
            "skipped": counts[Outcome.SKIPPED],
            "duration": round(duration, 6),
        }
        failures = [f for r in per_test for f in r.failures]

        logs.info(
            f"[Result] total={summary['total']} passed={summary['passed']} "
            f"failed={summary['failed']} errored={summary['errored']} "
            f"skipped={summary['skipped']} duration={duration:.3f}s"
            + (" (aborted)" if self.aborted else "")
        )
        return RunResult(summary=summary, per_test=per_test, failures=failures, aborted=self.aborted)
