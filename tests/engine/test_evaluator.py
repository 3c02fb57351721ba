#!filepath: tests/engine/test_evaluator.py
import pytest

from tickcheck.core.timeline import Single, StateProbe, StateSequence
from tickcheck.core.types import BlockSpec, Position
from tickcheck.engine.evaluator import AssertionEvaluator, Mismatch

POS = Position(3, 64, 3)
FENCE = BlockSpec.parse("minecraft:oak_fence[east=true,west=false,north=false,south=false]")


def test_single_subset_match_passes():
    ev = AssertionEvaluator()
    assert ev.compare(Single(0, POS, BlockSpec.parse("oak_fence[east=true]")), FENCE) is None


def test_single_mismatch_carries_detail():
    ev = AssertionEvaluator()
    m = ev.compare(Single(4, POS, BlockSpec.parse("oak_fence[east=false]")), FENCE)

    assert m == Mismatch(POS, "minecraft:oak_fence[east=false]", str(FENCE), 4)


def test_state_probes_evaluated_independently():
    seq = StateSequence(POS, "powered", ((1, "false"), (2, "true"), (3, "false")))
    observed = {
        1: BlockSpec.parse("lever[powered=false]"),
        2: BlockSpec.parse("lever[powered=false]"),
        3: BlockSpec.parse("lever[powered=true]"),
    }
    ev = AssertionEvaluator()

    failures = [
        m for k in range(3)
        if (m := ev.compare(StateProbe(seq, k), observed[seq.expectations[k][0]])) is not None
    ]
    assert [m.tick for m in failures] == [2, 3]
    assert failures[0].expected == "powered=true"
    assert failures[0].actual.startswith("powered=false")


def test_state_probe_missing_property():
    seq = StateSequence(POS, "lit", ((0, "true"),))
    m = AssertionEvaluator().compare(StateProbe(seq, 0), BlockSpec("stone"))
    assert "<missing>" in m.actual


def test_evaluate_reads_world(world):
    world.set_block(POS, FENCE)
    ev = AssertionEvaluator()
    assert ev.evaluate(Single(0, POS, BlockSpec("oak_fence")), world) is None
    assert ev.evaluate(Single(0, Position(0, 0, 0), BlockSpec("air")), world) is None


def test_compare_rejects_actions():
    with pytest.raises(TypeError):
        AssertionEvaluator().compare("not a check", FENCE)
