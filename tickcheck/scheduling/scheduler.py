#!filepath: tickcheck/scheduling/scheduler.py
from __future__ import annotations

import heapq
from itertools import combinations
from typing import Iterator, List, Tuple

from tickcheck import logs
from tickcheck.core.timeline import StateProbe, StateSequence, is_action
from tickcheck.scheduling.types import (
    RANK_ACTION,
    RANK_CHECK,
    Chunk,
    ChunkSchedule,
    EmptyRange,
    PlacedTest,
    ScheduledEvent,
)
from tickcheck.utils.errors import OverlapError


class ChunkScheduler:
    """
    ChunkScheduler (FINAL / FROZEN)

    职责：
      - 把一个 chunk 内所有测试（已按 Placement 平移）的 timeline 合并（k-way merge）
      - 保证全局 tick 单调不回退
      - 计算可批量快进的空 tick 区间（empty ranges）
      - 汇总 breakpoints

    Ordering Semantics (Frozen):
      Events are ordered by absolute tick (ascending).
      Equal tick: owning test's input order, then actions before checks,
      then definition order inside the test.
      Regions are disjoint, so a check never observes another test's
      same-tick action; the engine still applies every action of a tick
      before it evaluates any check of that tick.
    """

    def build(self, chunk: Chunk) -> ChunkSchedule:
        self.check_disjoint(chunk)

        events = list(self._merge(chunk))

        test_last_ticks = {i: -1 for i in range(len(chunk.tests))}
        for ev in events:
            test_last_ticks[ev.test_index] = max(test_last_ticks[ev.test_index], ev.tick)

        breakpoints = frozenset(
            bp for placed in chunk.tests for bp in placed.test.breakpoints
        )

        last_event = events[-1].tick if events else 0
        last_tick = max([last_event, *breakpoints])

        empty_ranges = self.empty_ranges({e.tick for e in events}, last_tick)

        logs.info(
            f"[Scheduler] chunk {chunk.chunk_id}: {len(chunk.tests)} tests, "
            f"{len(events)} events, last tick {last_tick}, "
            f"{len(empty_ranges)} fast-forward ranges, {len(breakpoints)} breakpoints"
        )

        return ChunkSchedule(
            chunk=chunk,
            events=tuple(events),
            empty_ranges=tuple(empty_ranges),
            breakpoints=breakpoints,
            last_tick=last_tick,
            test_last_ticks=test_last_ticks,
        )

    # --------------------------------------------------
    # Overlap（packing 正确时不可能发生）
    # --------------------------------------------------
    @staticmethod
    def check_disjoint(chunk: Chunk) -> None:
        for a, b in combinations(chunk.tests, 2):
            if chunk.padded_box(a).intersects(chunk.padded_box(b)):
                raise OverlapError(chunk.chunk_id, a.name, b.name)

    # --------------------------------------------------
    # 单个测试的事件流（已排序）
    # --------------------------------------------------
    @staticmethod
    def test_stream(index: int, placed: PlacedTest) -> List[ScheduledEvent]:
        stream: List[ScheduledEvent] = []
        seq = 0
        for item in placed.test.timeline:
            moved = item.translate(placed.offset)

            if isinstance(moved, StateSequence):
                for k in range(len(moved.expectations)):
                    probe = StateProbe(moved, k)
                    stream.append(ScheduledEvent(probe.tick, index, RANK_CHECK, seq, probe))
                    seq += 1
                continue

            rank = RANK_ACTION if is_action(moved) else RANK_CHECK
            stream.append(ScheduledEvent(moved.tick, index, rank, seq, moved))
            seq += 1

        stream.sort(key=ScheduledEvent.sort_key)
        return stream

    # --------------------------------------------------
    def _merge(self, chunk: Chunk) -> Iterator[ScheduledEvent]:
        """
        K-way merge of per-test sorted streams.
        """
        heap: List[Tuple[Tuple[int, int, int, int], int, ScheduledEvent, Iterator[ScheduledEvent]]] = []
        counter = 0

        for index, placed in enumerate(chunk.tests):
            it = iter(self.test_stream(index, placed))
            ev = next(it, None)
            if ev is None:
                continue
            heap.append((ev.sort_key(), counter, ev, it))
            counter += 1

        heapq.heapify(heap)

        last_tick = None
        while heap:
            _, _, ev, it = heapq.heappop(heap)

            # 全局 tick 语义断言（不可修复）
            if last_tick is not None and ev.tick < last_tick:
                raise RuntimeError(
                    f"[ChunkScheduler] global tick regression: {ev.tick} < {last_tick} "
                    f"(test={chunk.tests[ev.test_index].name})"
                )
            last_tick = ev.tick
            yield ev

            nxt = next(it, None)
            if nxt is None:
                continue
            heapq.heappush(heap, (nxt.sort_key(), counter, nxt, it))
            counter += 1

    # --------------------------------------------------
    @staticmethod
    def empty_ranges(event_ticks: set[int], last_tick: int) -> List[EmptyRange]:
        """
        Maximal runs of event-free ticks in [0, last_tick].
        """
        ranges: List[EmptyRange] = []
        start = None
        for tick in range(last_tick + 1):
            if tick in event_ticks:
                if start is not None:
                    ranges.append(EmptyRange(start, tick - start))
                    start = None
            elif start is None:
                start = tick
        if start is not None:
            ranges.append(EmptyRange(start, last_tick + 1 - start))
        return ranges
