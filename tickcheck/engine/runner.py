#!filepath: tickcheck/engine/runner.py
from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence, Union

from tickcheck import logs
from tickcheck.config.packing_config import PackingConfig
from tickcheck.config.run_config import RunConfig
from tickcheck.core.model import TestModel
from tickcheck.engine.evaluator import AssertionEvaluator
from tickcheck.engine.executor import EngineState, ExecutionEngine, PausedAt
from tickcheck.engine.results import Outcome, ResultAggregator, RunResult, TestResult
from tickcheck.observability.instrumentation import Instrumentation, NoOpInstrumentation
from tickcheck.scheduling.packer import SpatialPacker
from tickcheck.scheduling.scheduler import ChunkScheduler
from tickcheck.scheduling.types import Chunk
from tickcheck.utils.errors import OverlapError, ValidationError
from tickcheck.world.base import WorldClient


class Command(str, Enum):
    STEP = "step"
    CONTINUE = "continue"
    STOP = "stop"

    @classmethod
    def parse(cls, text: str) -> "Command":
        key = text.strip().lower()
        aliases = {"s": cls.STEP, "c": cls.CONTINUE, "q": cls.STOP}
        if key in aliases:
            return aliases[key]
        return cls(key)


SessionState = Union[PausedAt, RunResult]


class RunSession:
    """
    RunSession（一次完整运行）

    Loader 输出 → SpatialPacker → ChunkScheduler → ExecutionEngine（逐 chunk）→ ResultAggregator

    可恢复：
        start()      → PausedAt | RunResult
        send(cmd)    → PausedAt | RunResult
        stop()       → RunResult
        request_stop() → 线程安全；正在执行的 chunk 在下一个 tick 边界停下

    chunk 之间串行执行，只共享 ResultAggregator。
    """

    def __init__(
        self,
        tests: Sequence[TestModel],
        world: WorldClient,
        *,
        run_cfg: Optional[RunConfig] = None,
        packing_cfg: Optional[PackingConfig] = None,
        invalid: Iterable[ValidationError] = (),
        step_mode: bool = False,
        inst: Instrumentation | NoOpInstrumentation | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.run_cfg = run_cfg or RunConfig()
        self.packing_cfg = packing_cfg or PackingConfig()
        self.world = world
        self.step_mode = step_mode
        self.inst = inst or NoOpInstrumentation()

        self.tests = [t for t in tests if t.matches_tags(self.run_cfg.tags)]
        self.invalid = list(invalid)

        # hard stop 请求跨 chunk 保留，engine 与 session 共享
        self._stop_event = threading.Event()

        self.packer = SpatialPacker(self.packing_cfg)
        self.scheduler = ChunkScheduler()
        self.engine = ExecutionEngine(
            world,
            AssertionEvaluator(),
            action_delay=self.run_cfg.action_delay,
            settle_delay=self.run_cfg.settle_delay,
            inst=self.inst,
            sleep=sleep,
            stop_event=self._stop_event,
        )
        self.aggregator = ResultAggregator()

        self._chunks: List[Chunk] = []
        self._next_chunk = 0
        self._current: Optional[Chunk] = None
        self._consecutive_transport_failures = 0
        self._started_at = 0.0
        self.result: Optional[RunResult] = None
        self.paused_at: Optional[PausedAt] = None

    # ==================================================
    # Public API
    # ==================================================
    def start(self) -> SessionState:
        if self._started_at:
            raise RuntimeError("[RunSession] already started")
        self._started_at = time.perf_counter()

        logs.info(f"[RunSession] {len(self.tests)} tests selected, {len(self.invalid)} invalid")

        # 无效定义：Skipped + 原因，放在所有可运行测试之后
        base = len(self.tests)
        for i, err in enumerate(self.invalid):
            name = err.test or (err.path.name if err.path else f"<invalid #{i}>")
            self.aggregator.skip(base + i, name, f"invalid definition: {err}")

        packing = self.packer.pack(self.tests)
        for order, test, exc in packing.rejected:
            self.aggregator.skip(order, test.name, str(exc))
        self._chunks = packing.chunks

        return self._advance()

    def send(self, command: Command | str) -> SessionState:
        if isinstance(command, str):
            command = Command.parse(command)

        if command == Command.STOP:
            return self.stop()

        if self.paused_at is None:
            raise RuntimeError(f"[RunSession] '{command.value}' requires a paused run")

        self.paused_at = None
        if command == Command.STEP:
            paused = self.engine.step()
        else:
            paused = self.engine.resume()

        if paused is not None:
            self.paused_at = paused
            return paused

        self._collect_chunk()
        return self._advance()

    def request_stop(self) -> None:
        """可从其他线程调用；不等待，结果由驱动线程的 start() / send() 返回"""
        logs.warning("[RunSession] stop requested")
        self._stop_event.set()

    def stop(self) -> RunResult:
        """
        Hard stop：当前 chunk 恢复时间 + 清场，其余测试全部 Skipped
        """
        if self.result is not None:
            return self.result

        logs.warning("[RunSession] hard stop requested")
        self._stop_event.set()
        if not self._started_at:
            self._started_at = time.perf_counter()
        if self.engine.paused:
            self.engine.stop()
        if self._current is not None and self.engine.state == EngineState.IDLE:
            self._collect_chunk()
        self._skip_remaining("run stopped")
        self.paused_at = None
        return self._complete()

    @property
    def finished(self) -> bool:
        return self.result is not None

    # ==================================================
    # Internals
    # ==================================================
    def _advance(self) -> SessionState:
        """执行 chunk 直到挂起或全部完成"""
        while self._next_chunk < len(self._chunks):
            if self._stop_event.is_set():
                self._skip_remaining("run stopped")
                break

            chunk = self._chunks[self._next_chunk]
            self._next_chunk += 1

            try:
                schedule = self.scheduler.build(chunk)
            except OverlapError as e:
                logs.error(f"[RunSession] {e}")
                for placed in chunk.tests:
                    self.aggregator.add(
                        placed.order,
                        TestResult(name=placed.name, outcome=Outcome.ERRORED, reason=str(e)),
                    )
                continue

            self._current = chunk
            paused = self.engine.start(
                schedule,
                break_after_setup=self.run_cfg.break_after_setup,
                stepping=self.step_mode,
            )
            if paused is not None:
                self.paused_at = paused
                return paused

            if self._collect_chunk():
                break

        return self._complete()

    def _collect_chunk(self) -> bool:
        """
        收集当前 chunk 的结果；返回 True 表示后续 chunk 不再执行
        """
        chunk, self._current = self._current, None
        results = self.engine.results()
        for order, result in results:
            self.aggregator.add(order, result)

        if self.engine.stopped:
            self._skip_remaining("run stopped")
            return True

        if self.engine.transport_error is not None:
            self._consecutive_transport_failures += 1
            limit = self.run_cfg.max_transport_failures
            logs.warning(
                f"[RunSession] chunk {chunk.chunk_id} transport failure "
                f"({self._consecutive_transport_failures}/{limit} consecutive)"
            )
            if self._consecutive_transport_failures >= limit:
                logs.error("[RunSession] connection presumed lost, aborting run")
                self.aggregator.aborted = True
                self._skip_remaining("run aborted after repeated transport failures")
                return True
        else:
            self._consecutive_transport_failures = 0

        if self.run_cfg.fail_fast and any(r.outcome == Outcome.FAILED for _, r in results):
            logs.info(f"[RunSession] fail-fast: stopping after chunk {chunk.chunk_id}")
            self._skip_remaining("fail-fast")
            return True

        return False

    def _skip_remaining(self, reason: str) -> None:
        for chunk in self._chunks:
            for placed in chunk.tests:
                if not self.aggregator.has(placed.order):
                    self.aggregator.skip(placed.order, placed.name, reason)
        self._next_chunk = len(self._chunks)

    def _complete(self) -> RunResult:
        duration = time.perf_counter() - self._started_at
        self.result = self.aggregator.build(duration)
        self.inst.generate_timeline_report("run")
        return self.result
