#!filepath: tickcheck/recorder/state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from tickcheck import logs
from tickcheck.config.recorder_config import RecorderConfig
from tickcheck.core.model import TestModel
from tickcheck.core.timeline import Place, Remove, Single
from tickcheck.core.types import BlockSpec, Position, Region
from tickcheck.loader.loader import TestIndex
from tickcheck.loader.writer import write_test
from tickcheck.recorder.bounding_box import BoundingBox
from tickcheck.recorder.snapshot import SnapshotDiffer
from tickcheck.utils.errors import RecorderError, TransportError

RecordedItem = Union[Place, Remove, Single]


class RecorderState(str, Enum):
    OFF = "off"
    RECORDING = "recording"
    SAVING = "saving"
    CANCELLING = "cancelling"


@dataclass(frozen=True)
class SavedRecording:
    test: TestModel
    path: Path


class Recorder:
    """
    Recorder（观察世界变化 → TestModel）

        Off → Recording → (Saving | Cancelling) → Off

    语义（冻结）：
      - start：冻结世界时间；清空累积；origin 未定
      - 参考点 radius（Chebyshev）内的方块变化进入当前 tick 的 pending；
        第一次观察到的变化（或第一次 assert）固定 origin
      - advance：pending → Action（非空 → Place，变空 → Remove），清空 pending，
        世界 advance(1)，counter += 1
      - assert_changes：尚未 advance 的 pending 变成 Check
      - save：cleanup = 引用位置的 padded bounding box；全部平移为 origin 相对坐标

    内部一律存世界坐标，只在 save 时平移。
    任何 RecorderError 之后 Recorder 回到 Off。
    """

    def __init__(
        self,
        world,
        cfg: Optional[RecorderConfig] = None,
        index: Optional[TestIndex] = None,
    ):
        self.world = world
        self.cfg = cfg or RecorderConfig()
        self.index = index

        self.state = RecorderState.OFF
        self._subscribed = False
        self._reset()

    def _reset(self) -> None:
        self.name: Optional[str] = None
        self.tick = 0
        self.origin: Optional[Position] = None
        self.reference: Optional[Position] = None
        self.pending: Dict[Position, Tuple[BlockSpec, BlockSpec]] = {}
        self.timeline: List[RecordedItem] = []
        self.bounds = BoundingBox()
        self._differ: Optional[SnapshotDiffer] = None
        self.state = RecorderState.OFF

    # ==================================================
    # Lifecycle
    # ==================================================
    def start(self, name: str, reference: Optional[Position] = None, player: Optional[str] = None) -> None:
        if self.state != RecorderState.OFF:
            self._fail(f"already recording '{self.name}'")

        name = name.strip()
        if not name:
            self._fail("recording needs a test name")

        reference = reference or self.world.operator_position(player)
        if reference is None:
            self._fail("no reference position (operator position unknown)")

        self.world.suspend_time()
        self.name = name
        self.reference = reference

        if self.world.supports_change_events:
            if not self._subscribed:
                self.world.on_block_change(self._on_change)
                self._subscribed = True
        else:
            self._differ = SnapshotDiffer(self.world, reference, self.cfg.radius)
            self._differ.reset()

        self.state = RecorderState.RECORDING
        logs.info(
            f"[Recorder] recording '{name}' around {reference.as_list()} "
            f"(radius={self.cfg.radius}, "
            f"{'events' if self._differ is None else 'snapshot diff'})"
        )

    def cancel(self) -> None:
        self._require_recording("cancel")
        self.state = RecorderState.CANCELLING
        logs.info(f"[Recorder] recording '{self.name}' cancelled")
        try:
            self.world.resume_time()
        finally:
            self._reset()

    def save(self) -> SavedRecording:
        self._require_recording("save")
        self.state = RecorderState.SAVING

        self._poll()
        self._flush_pending_as_actions()

        if not self.timeline:
            self._fail("nothing recorded")

        test = self.build_test()
        path = self.test_path(self.name)
        try:
            write_test(test, path)
        except OSError as e:
            self._fail(f"cannot write {path}: {e}")

        logs.info(f"[Recorder] saved '{test.name}' ({len(test.timeline)} entries, {self.tick} ticks) to {path}")
        try:
            self.world.resume_time()
        finally:
            self._reset()

        if self.index is not None:
            self.index.reload()
        return SavedRecording(test=test, path=path)

    # ==================================================
    # Observation
    # ==================================================
    def _on_change(self, pos: Position, old: BlockSpec, new: BlockSpec) -> None:
        if self.state != RecorderState.RECORDING:
            return
        if self.reference.chebyshev(pos) > self.cfg.radius:
            return
        self.observe(pos, old, new)

    def observe(self, pos: Position, old: BlockSpec, new: BlockSpec) -> None:
        """同一 tick 内同一位置只保留净变化"""
        if self.origin is None:
            self.origin = pos
            logs.info(f"[Recorder] origin fixed at {pos.as_list()}")

        if pos in self.pending:
            old = self.pending[pos][0]
        if old == new:
            self.pending.pop(pos, None)
            return
        self.pending[pos] = (old, new)

    def _poll(self) -> None:
        if self._differ is None:
            return
        for pos, old, new in self._differ.poll():
            self.observe(pos, old, new)

    def _flush_pending_as_actions(self) -> int:
        count = 0
        for pos, (_, new) in self.pending.items():
            if new.is_empty:
                self.timeline.append(Remove(self.tick, pos))
            else:
                self.timeline.append(Place(self.tick, pos, new))
            self.bounds.expand(pos)
            count += 1
        self.pending.clear()
        return count

    # ==================================================
    # Authoring operations
    # ==================================================
    def advance(self) -> int:
        """返回新的 tick counter"""
        self._require_recording("advance")
        self._poll()
        recorded = self._flush_pending_as_actions()
        self.world.advance(1)
        self.tick += 1
        if self._differ is not None:
            # 推进产生的变化属于新 tick
            self._poll()
        logs.info(f"[Recorder] tick {self.tick - 1} → {self.tick} ({recorded} changes)")
        return self.tick

    def assert_block(self, pos: Position) -> Single:
        self._require_recording("assert")
        if self.origin is None:
            self.origin = pos
        block = self.world.query_block(pos)
        check = Single(self.tick, pos, block)
        self.timeline.append(check)
        self.bounds.expand(pos)
        logs.info(f"[Recorder] assert {pos.as_list()} is {block} at tick {self.tick}")
        return check

    def assert_region(self, region: Region) -> List[Single]:
        """区域内每个位置（包括 air）各生成一个 Single"""
        self._require_recording("assert")
        blocks = self.world.query_region(region)
        checks = []
        for pos in sorted(blocks):
            if self.origin is None:
                self.origin = pos
            check = Single(self.tick, pos, blocks[pos])
            self.timeline.append(check)
            self.bounds.expand(pos)
            checks.append(check)
        logs.info(f"[Recorder] {len(checks)} asserts in {region.as_lists()} at tick {self.tick}")
        return checks

    def assert_changes(self) -> int:
        self._require_recording("assert_changes")
        self._poll()
        count = 0
        for pos, (_, new) in self.pending.items():
            self.timeline.append(Single(self.tick, pos, new))
            self.bounds.expand(pos)
            count += 1
        self.pending.clear()
        logs.info(f"[Recorder] {count} pending changes converted to asserts at tick {self.tick}")
        return count

    # ==================================================
    # Output
    # ==================================================
    def build_test(self) -> TestModel:
        delta = Position(-self.origin.x, -self.origin.y, -self.origin.z)
        cleanup = self.bounds.to_region(self.cfg.padding).translate(delta)
        return TestModel(
            name=self.name.replace("/", "_"),
            description=f"Recorded test: {self.name}",
            tags=frozenset({"recorded"}),
            cleanup=cleanup,
            breakpoints=frozenset(),
            timeline=tuple(item.translate(delta) for item in self.timeline),
        )

    def test_path(self, name: str) -> Path:
        """'fence/fence_connect' → <tests_dir>/fence/fence_connect.json"""
        parts = [p for p in name.split("/") if p]
        return Path(self.cfg.tests_dir).joinpath(*parts[:-1], f"{parts[-1]}.json")

    # --------------------------------------------------
    @property
    def active(self) -> bool:
        return self.state == RecorderState.RECORDING

    def _require_recording(self, op: str) -> None:
        if self.state != RecorderState.RECORDING:
            self._fail(f"{op}: no recording in progress")

    def _fail(self, message: str) -> None:
        """RecorderError：恢复时间（若在录制中）并回到 Off"""
        was_active = self.state != RecorderState.OFF
        logs.warning(f"[Recorder] {message}")
        if was_active:
            try:
                self.world.resume_time()
            except TransportError as e:
                logs.warning(f"[Recorder] resume_time failed while resetting: {e}")
        self._reset()
        raise RecorderError(message)
