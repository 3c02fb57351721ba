#!filepath: tickcheck/scheduling/packer.py
from __future__ import annotations

from typing import List, Sequence, Tuple

from tickcheck import logs
from tickcheck.config.packing_config import PackingConfig
from tickcheck.core.model import TestModel
from tickcheck.core.types import Position
from tickcheck.scheduling.types import Chunk, PackingResult, PlacedTest
from tickcheck.utils.errors import OversizedTest


class SpatialPacker:
    """
    SpatialPacker (FINAL / FROZEN)

    职责：
      - 每个测试分配一个固定大小的网格 cell（x/z 平面），y 不平移
      - 按输入顺序 row-major 填充，每个 chunk 最多 columns × rows 个
      - footprint（cleanup + 2 × margin）超过 cell → OversizedTest，跳过该测试

    保证：
      - 同一 chunk 内 padded box 两两不相交（cell 本身不相交，padded box 落在 cell 内）
      - 相同输入顺序 → 相同结果
    """

    def __init__(self, cfg: PackingConfig | None = None):
        self.cfg = cfg or PackingConfig()
        self.origin = Position.of(self.cfg.origin)

    # --------------------------------------------------
    def footprint(self, test: TestModel) -> Tuple[int, int]:
        size = test.cleanup.size
        return size.x + 2 * self.cfg.margin, size.z + 2 * self.cfg.margin

    def check_fits(self, test: TestModel) -> None:
        fx, fz = self.footprint(test)
        if fx > self.cfg.cell_size or fz > self.cfg.cell_size:
            raise OversizedTest(test.name, (fx, fz), self.cfg.cell_size)

    def cell_offset(self, test: TestModel, column: int, row: int) -> Position:
        """cleanup.low + margin 对齐到 cell 的左下角"""
        low = test.cleanup.low
        return Position(
            self.origin.x + column * self.cfg.cell_size + self.cfg.margin - low.x,
            self.origin.y,
            self.origin.z + row * self.cfg.cell_size + self.cfg.margin - low.z,
        )

    # --------------------------------------------------
    def pack(self, tests: Sequence[TestModel]) -> PackingResult:
        result = PackingResult()
        capacity = self.cfg.capacity

        current: List[PlacedTest] = []
        chunk_id = 0

        for order, test in enumerate(tests):
            try:
                self.check_fits(test)
            except OversizedTest as e:
                logs.warning(f"[Packer] {e}")
                result.rejected.append((order, test, e))
                continue

            slot = len(current)
            column, row = slot % self.cfg.grid_columns, slot // self.cfg.grid_columns
            current.append(
                PlacedTest(
                    test=test,
                    order=order,
                    chunk_id=chunk_id,
                    cell=(column, row),
                    offset=self.cell_offset(test, column, row),
                )
            )

            if len(current) == capacity:
                result.chunks.append(Chunk(chunk_id, tuple(current), self.cfg.margin))
                current = []
                chunk_id += 1

        if current:
            result.chunks.append(Chunk(chunk_id, tuple(current), self.cfg.margin))

        logs.info(
            f"[Packer] packed {sum(len(c.tests) for c in result.chunks)} tests "
            f"into {len(result.chunks)} chunks, {len(result.rejected)} oversized"
        )
        return result
