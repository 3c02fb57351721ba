#!filepath: tickcheck/engine/executor.py
from __future__ import annotations

import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from tickcheck import logs
from tickcheck.core.timeline import Fill, Place, PlaceEach, Remove, StateProbe, StateSequence
from tickcheck.core.types import BlockSpec
from tickcheck.engine.evaluator import AssertionEvaluator
from tickcheck.engine.results import FailureDetail, Outcome, TestResult
from tickcheck.observability.instrumentation import Instrumentation, NoOpInstrumentation
from tickcheck.scheduling.types import ChunkSchedule, PlacedTest, ScheduledEvent
from tickcheck.utils.errors import TransportError
from tickcheck.world.base import WorldClient


class EngineState(str, Enum):
    IDLE = "idle"
    FREEZING = "freezing"
    RUNNING = "running"
    PAUSED = "paused"
    CLEANUP = "cleanup"


class PauseReason(str, Enum):
    SETUP = "setup"            # break-after-setup：清场之后、冻结之前
    BREAKPOINT = "breakpoint"
    STEP = "step"


@dataclass(frozen=True)
class PausedAt:
    """引擎挂起点：只有 step / continue（或 hard stop）能离开"""

    tick: int
    chunk_id: int
    reason: PauseReason
    tests: Tuple[str, ...] = ()


@dataclass
class _TestRun:
    placed: PlacedTest
    last_event_tick: int
    failures: List[FailureDetail] = field(default_factory=list)
    # 第一次失败来自 StateSequence 时，该序列的剩余 tick 继续评估
    failing_sequence: Optional[StateSequence] = None
    outcome: Optional[Outcome] = None
    reason: Optional[str] = None
    elapsed: float = 0.0

    @property
    def resolved(self) -> bool:
        return self.outcome is not None


class ExecutionEngine:
    """
    ExecutionEngine（FINAL / FROZEN）

    一次只执行一个 chunk：
        Idle → Freezing → Running ⇄ Paused → Cleanup → Idle

    Tick 语义（冻结）：
      - 空 tick 区间（且无 breakpoint）：一次批量 advance，直接跳到区间末尾
      - 有事件的 tick：advance(1) → 执行该 tick 的全部 Action → 评估该 tick 的全部 Check
      - breakpoint tick：处理事件之前挂起，返回 PausedAt
      - step：只处理挂起的这一个 tick，然后在下一个 tick 之前再次挂起
      - continue：恢复正常推进，直到下一个 breakpoint 或 chunk 结束

    设计铁律：
      1. 世界时间除了显式 advance 之外始终冻结；同一时刻最多一个 advance
      2. advance → settle → read，严格顺序
      3. advance 永不重试（重试 = 多走 tick）
      4. 一切运行期状态属于本实例，没有模块级可变状态
    """

    def __init__(
        self,
        world: WorldClient,
        evaluator: Optional[AssertionEvaluator] = None,
        *,
        action_delay: float = 0.0,
        settle_delay: float = 0.0,
        inst: Instrumentation | NoOpInstrumentation | None = None,
        sleep: Callable[[float], None] = time.sleep,
        stop_event: Optional[threading.Event] = None,
    ):
        self.world = world
        self.evaluator = evaluator or AssertionEvaluator()
        self.action_delay = action_delay
        self.settle_delay = settle_delay
        self.inst = inst or NoOpInstrumentation()
        self._sleep = sleep

        self.state = EngineState.IDLE
        self.schedule: Optional[ChunkSchedule] = None
        self.tick = 0
        self.transport_error: Optional[TransportError] = None
        self.stopped = False

        self._runs: List[_TestRun] = []
        self._events_by_tick: Dict[int, List[ScheduledEvent]] = {}
        self._stepping = False
        self._released: Optional[int] = None
        self._frozen = False
        self._clock = 0.0
        # 跨 chunk 保留：由 RunSession 共享，start() 不清除
        self._stop_requested = stop_event if stop_event is not None else threading.Event()

    # ==================================================
    # Public API
    # ==================================================
    def start(
        self,
        schedule: ChunkSchedule,
        *,
        break_after_setup: bool = False,
        stepping: bool = False,
    ) -> Optional[PausedAt]:
        """
        开始执行一个 chunk。

        返回 PausedAt（挂起）或 None（chunk 已结束，结果见 results()）
        """
        if self.state != EngineState.IDLE:
            raise RuntimeError(f"[Engine] start() requires Idle, engine is {self.state.value}")

        self.schedule = schedule
        self.tick = 0
        self.transport_error = None
        self.stopped = False
        self._stepping = stepping
        self._released = None
        self._frozen = False

        self._runs = [
            _TestRun(placed, schedule.test_last_ticks.get(i, -1))
            for i, placed in enumerate(schedule.chunk.tests)
        ]
        grouped: Dict[int, List[ScheduledEvent]] = defaultdict(list)
        for ev in schedule.events:
            grouped[ev.tick].append(ev)
        self._events_by_tick = dict(grouped)

        self._clock = time.perf_counter()
        logs.info(
            f"[Engine] chunk {self.chunk_id} start: {len(self._runs)} tests, "
            f"ticks 0..{schedule.last_tick}"
        )

        # 清场（上一次运行可能留下的方块）
        try:
            self._clear_regions()
        except TransportError as e:
            return self._on_transport_error(e)
        except BaseException:
            self._interrupted()
            raise

        if break_after_setup:
            self.state = EngineState.PAUSED
            logs.info(f"[Engine] chunk {self.chunk_id} paused after setup")
            return PausedAt(0, self.chunk_id, PauseReason.SETUP, self._test_names())

        return self._freeze_and_run()

    def step(self) -> Optional[PausedAt]:
        self._require_paused("step")
        self._stepping = True
        if not self._frozen:
            return self._freeze_and_run()
        self._released = self.tick
        self.state = EngineState.RUNNING
        return self._run()

    def resume(self) -> Optional[PausedAt]:
        """Continue"""
        self._require_paused("continue")
        self._stepping = False
        if not self._frozen:
            return self._freeze_and_run()
        self._released = self.tick
        self.state = EngineState.RUNNING
        return self._run()

    def stop(self) -> None:
        """
        Hard stop：仍然恢复世界时间并清场；未决测试记为 Skipped。

        其他状态（可能来自另一线程）只设置标志：Running 中在下一个 tick 边界生效，
        Idle / Cleanup 时在下一次 start() 生效。
        """
        if self.state == EngineState.PAUSED:
            self._hard_stop()
        else:
            self._stop_requested.set()

    def results(self) -> List[Tuple[int, TestResult]]:
        """(全局输入顺序, TestResult)；只在 Idle 时有效"""
        if self.state != EngineState.IDLE:
            raise RuntimeError(f"[Engine] results() requires Idle, engine is {self.state.value}")
        out = []
        for run in self._runs:
            out.append((
                run.placed.order,
                TestResult(
                    name=run.placed.name,
                    outcome=run.outcome or Outcome.SKIPPED,
                    failures=list(run.failures),
                    elapsed=run.elapsed,
                    tick_count=run.placed.test.tick_count,
                    reason=run.reason,
                ),
            ))
        return out

    @property
    def chunk_id(self) -> int:
        return self.schedule.chunk.chunk_id if self.schedule else -1

    @property
    def paused(self) -> bool:
        return self.state == EngineState.PAUSED

    # ==================================================
    # Tick loop
    # ==================================================
    def _freeze_and_run(self) -> Optional[PausedAt]:
        self.state = EngineState.FREEZING
        try:
            self.world.suspend_time()
        except TransportError as e:
            return self._on_transport_error(e)
        except BaseException:
            self._interrupted()
            raise
        self._frozen = True
        self.state = EngineState.RUNNING
        self.inst.progress.start(self._task, self.schedule.last_tick + 1, "ticks")
        return self._run()

    def _run(self) -> Optional[PausedAt]:
        sched = self.schedule
        try:
            while self.tick <= sched.last_tick:
                if self._stop_requested.is_set():
                    return self._hard_stop()

                if self._released != self.tick:
                    if self._stepping:
                        return self._pause(PauseReason.STEP)
                    if self.tick in sched.breakpoints:
                        return self._pause(PauseReason.BREAKPOINT)
                self._released = None

                events = self._events_by_tick.get(self.tick)
                if events:
                    self._process_tick(events)
                    self.tick += 1
                else:
                    n = 1 if self._stepping else self._fast_forward_length(self.tick)
                    self.world.advance(n)
                    self._settle()
                    self.tick += n

                self._resolve_finished()
                self.inst.progress.update(self._task, self.tick, sched.last_tick + 1, "ticks")

            return self._finish()

        except TransportError as e:
            return self._on_transport_error(e)
        except BaseException:
            # Ctrl-C / 未知异常：世界不能停在冻结状态
            self._interrupted()
            raise

    def _fast_forward_length(self, tick: int) -> int:
        """当前空区间剩余长度，遇到区间内的 breakpoint 截断"""
        r = self.schedule.range_containing(tick)
        if r is None:
            return 1
        n = r.end - tick + 1
        inner = [b for b in self.schedule.breakpoints if tick < b <= r.end]
        if inner:
            n = min(inner) - tick
        return n

    def _process_tick(self, events: List[ScheduledEvent]) -> None:
        self.world.advance(1)
        self._settle()

        for ev in events:
            if ev.is_action:
                self._apply(ev)
        for ev in events:
            if not ev.is_action:
                self._check(ev)

    def _settle(self) -> None:
        if self.settle_delay > 0:
            self._sleep(self.settle_delay)

    # --------------------------------------------------
    # Actions / Checks
    # --------------------------------------------------
    def _apply(self, ev: ScheduledEvent) -> None:
        action = ev.payload
        if isinstance(action, Place):
            self.world.set_block(action.pos, action.block)
        elif isinstance(action, PlaceEach):
            for pos, block in action.placements:
                self.world.set_block(pos, block)
        elif isinstance(action, Fill):
            self.world.fill(action.region, action.block)
        elif isinstance(action, Remove):
            self.world.set_block(action.pos, BlockSpec.air())
        else:
            raise TypeError(f"[Engine] unknown action {action!r}")

        if self.action_delay > 0:
            self._sleep(self.action_delay)

    def _check(self, ev: ScheduledEvent) -> None:
        run = self._runs[ev.test_index]
        if run.resolved:
            return

        check = ev.payload
        if run.failures and not (
            isinstance(check, StateProbe) and check.sequence == run.failing_sequence
        ):
            return

        mismatch = self.evaluator.evaluate(check, self.world)
        if mismatch is None:
            return

        if not run.failures and isinstance(check, StateProbe):
            run.failing_sequence = check.sequence

        detail = FailureDetail(
            test=run.placed.name,
            tick=mismatch.tick,
            expected=mismatch.expected,
            actual=mismatch.actual,
            position=mismatch.position,
        )
        run.failures.append(detail)
        logs.warning(
            f"[Engine] {run.placed.name} failed at tick {detail.tick} {detail.position.as_list()}: "
            f"expected {detail.expected}, got {detail.actual}"
        )

    def _resolve_finished(self) -> None:
        now = time.perf_counter()
        for run in self._runs:
            if run.resolved or run.last_event_tick >= self.tick:
                continue
            run.outcome = Outcome.FAILED if run.failures else Outcome.PASSED
            run.elapsed = now - self._clock
            logs.info(f"[Engine] {run.placed.name}: {run.outcome.value}")

    # --------------------------------------------------
    # Pause / finish / failure
    # --------------------------------------------------
    def _pause(self, reason: PauseReason) -> PausedAt:
        self.state = EngineState.PAUSED
        names = tuple(
            r.placed.name for r in self._runs if self.tick in r.placed.test.breakpoints
        ) if reason == PauseReason.BREAKPOINT else self._test_names()
        logs.info(f"[Engine] chunk {self.chunk_id} paused at tick {self.tick} ({reason.value})")
        return PausedAt(self.tick, self.chunk_id, reason, names)

    def _finish(self) -> None:
        self.state = EngineState.CLEANUP
        with self.inst.timer(f"chunk_{self.chunk_id}.cleanup"):
            self.world.resume_time()
            self._frozen = False
            self._clear_regions()

        self._resolve_finished()
        self.inst.progress.done(self._task)
        self.inst.add(f"chunk_{self.chunk_id}.run", time.perf_counter() - self._clock)
        self.state = EngineState.IDLE
        logs.info(f"[Engine] chunk {self.chunk_id} done")
        return None

    def _on_transport_error(self, exc: TransportError) -> None:
        logs.error(f"[Engine] chunk {self.chunk_id} transport failure at tick {self.tick}: {exc}")
        self.transport_error = exc

        for run in self._runs:
            if not run.resolved:
                run.outcome = Outcome.ERRORED
                run.reason = f"transport failure at tick {self.tick}: {exc}"
                run.elapsed = time.perf_counter() - self._clock

        self._best_effort_cleanup()
        self.state = EngineState.IDLE
        return None

    def _hard_stop(self) -> None:
        logs.warning(f"[Engine] chunk {self.chunk_id} stopped at tick {self.tick}")
        self.stopped = True
        for run in self._runs:
            if not run.resolved:
                run.outcome = Outcome.SKIPPED
                run.reason = f"stopped at tick {self.tick}"

        self._best_effort_cleanup()
        self.state = EngineState.IDLE
        return None

    def _interrupted(self) -> None:
        logs.error(f"[Engine] chunk {self.chunk_id} interrupted at tick {self.tick}")
        self.stopped = True
        for run in self._runs:
            if not run.resolved:
                run.outcome = Outcome.SKIPPED
                run.reason = f"interrupted at tick {self.tick}"

        self._best_effort_cleanup()
        self.state = EngineState.IDLE

    def _best_effort_cleanup(self) -> None:
        """连接可能已经断开：每一步单独尝试，失败只记录"""
        self.state = EngineState.CLEANUP
        try:
            self.world.resume_time()
            self._frozen = False
        except TransportError as e:
            logs.warning(f"[Engine] resume_time failed during cleanup: {e}")
        try:
            self._clear_regions()
        except TransportError as e:
            logs.warning(f"[Engine] region cleanup failed: {e}")

    # --------------------------------------------------
    def _clear_regions(self) -> None:
        air = BlockSpec.air()
        for run in self._runs:
            self.world.fill(run.placed.world_cleanup, air)

    def _require_paused(self, op: str) -> None:
        if self.state != EngineState.PAUSED:
            raise RuntimeError(f"[Engine] {op}() requires Paused, engine is {self.state.value}")

    def _test_names(self) -> Tuple[str, ...]:
        return tuple(r.placed.name for r in self._runs)

    @property
    def _task(self) -> str:
        return f"chunk {self.chunk_id}"
