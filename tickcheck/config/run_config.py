#!filepath: tickcheck/config/run_config.py
from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class RunConfig(BaseModel):
    """
    RunConfig（行为相关的运行选项）

    tags 为空 = 不过滤；非空时要求与 Test.tags 有交集
    """

    tests_dir: str = "tests_world"
    recursive: bool = False
    tags: List[str] = Field(default_factory=list)

    # 秒
    action_delay: float = Field(0.0, ge=0.0)
    settle_delay: float = Field(0.0, ge=0.0)

    fail_fast: bool = False
    break_after_setup: bool = False

    # 连续 N 个 chunk 出现 TransportError → 整个 run 中止
    max_transport_failures: int = Field(3, ge=1)
