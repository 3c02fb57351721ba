#!filepath: tickcheck/world/memory.py
from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from tickcheck import logs
from tickcheck.core.types import AIR, BlockSpec, Position, Region
from tickcheck.utils.errors import TransportError
from tickcheck.world.base import BlockChangeCallback, WorldClient


class InMemoryWorld(WorldClient):
    """
    InMemoryWorld

    dict 方块存储，没有任何物理：方块只在被写入时变化。
    scripted(game_tick, pos, block) 可以模拟"世界自己的反应"，
    在 advance 走到该 game tick 时生效（并触发 change 事件）。

    用于 dry-run 和测试；history 记录每一次调用。
    """

    def __init__(self, operator: Optional[Position] = None):
        self.blocks: Dict[Position, BlockSpec] = {}
        self.game_tick = 0
        self.frozen = False
        self.connected = False
        self.address: Optional[str] = None
        self.operator = operator
        self.history: List[Tuple] = []
        self._listeners: List[BlockChangeCallback] = []
        self._scripted: Dict[int, List[Tuple[Position, BlockSpec]]] = defaultdict(list)

    # --------------------------------------------------
    def _require_connection(self) -> None:
        if not self.connected:
            raise TransportError("world client is not connected")

    def _write(self, pos: Position, block: BlockSpec) -> None:
        old = self.blocks.get(pos) or BlockSpec(AIR)
        if block.is_empty:
            self.blocks.pop(pos, None)
        else:
            self.blocks[pos] = block
        if old != block:
            for callback in list(self._listeners):
                callback(pos, old, block)

    # --------------------------------------------------
    def connect(self, address: str) -> None:
        self.history.append(("connect", address))
        self.address = address
        self.connected = True
        logs.info(f"[World] in-memory world attached as {address}")

    def close(self) -> None:
        self.history.append(("close",))
        self.connected = False

    def suspend_time(self) -> None:
        self._require_connection()
        self.history.append(("suspend_time",))
        self.frozen = True

    def resume_time(self) -> None:
        self._require_connection()
        self.history.append(("resume_time",))
        self.frozen = False

    def advance(self, ticks: int = 1) -> None:
        self._require_connection()
        if ticks < 1:
            raise ValueError(f"advance needs ticks >= 1, got {ticks}")
        self.history.append(("advance", ticks))
        for _ in range(ticks):
            self.game_tick += 1
            for pos, block in self._scripted.pop(self.game_tick, []):
                self._write(pos, block)

    def set_block(self, pos: Position, block: BlockSpec) -> None:
        self._require_connection()
        self.history.append(("set_block", pos, block))
        self._write(pos, block)

    def fill(self, region: Region, block: BlockSpec) -> None:
        self._require_connection()
        self.history.append(("fill", region, block))
        for pos in region.positions():
            self._write(pos, block)

    def query_block(self, pos: Position) -> BlockSpec:
        self._require_connection()
        return self.blocks.get(pos) or BlockSpec(AIR)

    def query_region(self, region: Region) -> Dict[Position, BlockSpec]:
        self._require_connection()
        air = BlockSpec(AIR)
        return {pos: self.blocks.get(pos, air) for pos in region.positions()}

    def on_block_change(self, callback: BlockChangeCallback) -> None:
        self._listeners.append(callback)

    def operator_position(self, name: Optional[str] = None) -> Optional[Position]:
        return self.operator

    # --------------------------------------------------
    # 模拟世界反应（测试用）
    # --------------------------------------------------
    def scripted(self, game_tick: int, pos: Position, block: BlockSpec) -> None:
        self._scripted[game_tick].append((pos, block))

    def calls(self, name: str) -> List[Tuple]:
        return [h for h in self.history if h[0] == name]


class PollingWorld(InMemoryWorld):
    """不推送 change 事件的 InMemoryWorld；Recorder 会走快照 diff。"""

    supports_change_events = False

    def on_block_change(self, callback: BlockChangeCallback) -> None:
        raise NotImplementedError("PollingWorld does not push block changes")
