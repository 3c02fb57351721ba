#!filepath: tickcheck/config/packing_config.py
from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, model_validator


class PackingConfig(BaseModel):
    """
    PackingConfig（FROZEN）

    网格：grid_columns × grid_rows 个 cell，每个 cell 为 cell_size × cell_size（x/z 平面）
    margin：每个 test 四周保留的安全边距
    """

    cell_size: int = Field(32, gt=0)
    margin: int = Field(2, ge=0)
    grid_columns: int = Field(10, ge=1, le=10)
    grid_rows: int = Field(10, ge=1, le=10)
    origin: List[int] = Field(default_factory=lambda: [0, 0, 0], min_length=3, max_length=3)

    @model_validator(mode="after")
    def _capacity(self) -> "PackingConfig":
        if self.grid_columns * self.grid_rows > 100:
            raise ValueError("chunk capacity must be <= 100 tests")
        if 2 * self.margin >= self.cell_size:
            raise ValueError("margin leaves no usable space inside a cell")
        return self

    @property
    def capacity(self) -> int:
        return self.grid_columns * self.grid_rows
