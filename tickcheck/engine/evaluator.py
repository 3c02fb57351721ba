#!filepath: tickcheck/engine/evaluator.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from tickcheck.core.timeline import Single, StateProbe
from tickcheck.core.types import BlockSpec, Position, normalize_property_value
from tickcheck.world.base import WorldClient

MISSING = "<missing>"


@dataclass(frozen=True)
class Mismatch:
    position: Position
    expected: str
    actual: str
    tick: int


class AssertionEvaluator:
    """
    AssertionEvaluator（纯判定，只读世界一次）

    Single:     identifier 相等，且 expected 声明的每个属性都匹配（子集匹配）
    StateProbe: 单属性检查；StateSequence 的每个 (tick, value) 各自独立评估
    """

    @staticmethod
    def match_single(expected: BlockSpec, observed: BlockSpec) -> bool:
        return expected.matches(observed)

    @staticmethod
    def match_state(state: str, expected: str, observed: BlockSpec) -> bool:
        return observed.get(state) == normalize_property_value(expected)

    # --------------------------------------------------
    def evaluate(self, check: Union[Single, StateProbe], world: WorldClient) -> Optional[Mismatch]:
        """
        None = pass；否则返回 Mismatch(position, expected, actual, tick)
        """
        observed = world.query_block(check.pos)
        return self.compare(check, observed)

    def compare(self, check: Union[Single, StateProbe], observed: BlockSpec) -> Optional[Mismatch]:
        if isinstance(check, Single):
            if self.match_single(check.expected, observed):
                return None
            return Mismatch(check.pos, str(check.expected), str(observed), check.tick)

        if isinstance(check, StateProbe):
            if self.match_state(check.state, check.expected, observed):
                return None
            actual = observed.get(check.state)
            return Mismatch(
                check.pos,
                f"{check.state}={normalize_property_value(check.expected)}",
                f"{check.state}={actual if actual is not None else MISSING} ({observed.id})",
                check.tick,
            )

        raise TypeError(f"not a check: {check!r}")
