#!filepath: tickcheck/world/base.py
from __future__ import annotations

from typing import Callable, Dict, Optional

from tickcheck.core.types import BlockSpec, Position, Region

# (pos, old, new)
BlockChangeCallback = Callable[[Position, BlockSpec, BlockSpec], None]


class WorldClient:
    """
    WorldClient（FROZEN 契约）

    世界是唯一的、顺序访问的共享资源：
      - 除了一次显式的 advance 调用，世界时间始终处于 suspended
      - advance(n) 返回即表示 n tick 已经走完（awaited）
      - 任何调用都可能抛出 TransportError

    supports_change_events = False 的实现不推送 on_block_change，
    Recorder 会改用快照 diff。
    """

    supports_change_events: bool = True

    def connect(self, address: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass

    # -------------------------
    # time
    # -------------------------
    def suspend_time(self) -> None:
        raise NotImplementedError

    def resume_time(self) -> None:
        raise NotImplementedError

    def advance(self, ticks: int = 1) -> None:
        raise NotImplementedError

    # -------------------------
    # blocks
    # -------------------------
    def set_block(self, pos: Position, block: BlockSpec) -> None:
        raise NotImplementedError

    def fill(self, region: Region, block: BlockSpec) -> None:
        raise NotImplementedError

    def query_block(self, pos: Position) -> BlockSpec:
        raise NotImplementedError

    def query_region(self, region: Region) -> Dict[Position, BlockSpec]:
        return {pos: self.query_block(pos) for pos in region.positions()}

    def on_block_change(self, callback: BlockChangeCallback) -> None:
        raise NotImplementedError

    # -------------------------
    # operator
    # -------------------------
    def operator_position(self, name: Optional[str] = None) -> Optional[Position]:
        """录制参考点（操作者 / 被跟踪实体的位置）；未知返回 None"""
        return None
