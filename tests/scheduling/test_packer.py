#!filepath: tests/scheduling/test_packer.py
from itertools import combinations

import pytest

from tickcheck.config.packing_config import PackingConfig
from tickcheck.core.types import Position, Region
from tickcheck.scheduling.packer import SpatialPacker


def _box(size: int, low=(0, 0, 0)) -> Region:
    lo = Position(*low)
    return Region(lo, Position(lo.x + size - 1, lo.y + size - 1, lo.z + size - 1))


def test_row_major_cells_and_offsets(make_test):
    packer = SpatialPacker(PackingConfig(cell_size=32, margin=2, origin=[100, 64, 0]))
    tests = [make_test(f"t{i}", cleanup=_box(5, low=(-2, 0, 3))) for i in range(12)]

    result = packer.pack(tests)
    placed = result.chunks[0].tests

    assert [p.cell for p in placed[:3]] == [(0, 0), (1, 0), (2, 0)]
    assert placed[10].cell == (0, 1)
    # cleanup.low + margin 落在 cell 左下角；y 只加 origin
    assert placed[1].world_cleanup.low == Position(100 + 32 + 2, 64, 0 + 2)
    assert placed[10].world_cleanup.low == Position(100 + 2, 64, 32 + 2)


def test_padded_boxes_pairwise_disjoint(make_test):
    packer = SpatialPacker()
    tests = [make_test(f"t{i}", cleanup=_box(1 + i % 28)) for i in range(100)]

    chunk = packer.pack(tests).chunks[0]
    boxes = [chunk.padded_box(p) for p in chunk.tests]
    for a, b in combinations(boxes, 2):
        assert not a.intersects(b)


def test_101st_test_opens_new_chunk(make_test):
    result = SpatialPacker().pack([make_test(f"t{i}") for i in range(101)])

    assert [len(c.tests) for c in result.chunks] == [100, 1]
    assert result.chunks[1].tests[0].chunk_id == 1
    assert result.chunks[1].tests[0].cell == (0, 0)
    assert result.chunks[1].tests[0].order == 100


def test_oversized_rejected_others_unaffected(make_test):
    tests = [make_test("small"), make_test("huge", cleanup=_box(29)), make_test("after")]
    result = SpatialPacker().pack(tests)

    assert [p.name for p in result.chunks[0].tests] == ["small", "after"]
    assert result.chunks[0].tests[1].cell == (1, 0)
    order, test, exc = result.rejected[0]
    assert (order, test.name) == (1, "huge")
    assert "exceeds cell" in str(exc)


def test_largest_fitting_footprint_accepted(make_test):
    # 28 + 2 * 2 = 32
    result = SpatialPacker().pack([make_test("edge", cleanup=_box(28))])
    assert not result.rejected


def test_packing_is_deterministic(make_test):
    tests = [make_test(f"t{i}", cleanup=_box(3 + i)) for i in range(5)]
    a = SpatialPacker().pack(tests)
    b = SpatialPacker().pack(tests)
    assert [p.offset for p in a.chunks[0].tests] == [p.offset for p in b.chunks[0].tests]


def test_config_rejects_bad_grid():
    with pytest.raises(ValueError):
        PackingConfig(cell_size=4, margin=2)
    with pytest.raises(ValueError):
        PackingConfig(grid_columns=11)
