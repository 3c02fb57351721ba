#!filepath: tests/recorder/test_recorder.py
import pytest

from tickcheck.config.recorder_config import RecorderConfig
from tickcheck.core.timeline import Place, Remove, Single
from tickcheck.core.types import BlockSpec, Position, Region
from tickcheck.loader.loader import TestIndex, TestLoader
from tickcheck.recorder.bounding_box import BoundingBox
from tickcheck.recorder.state import Recorder, RecorderState
from tickcheck.utils.errors import RecorderError
from tickcheck.world.memory import PollingWorld

STONE = BlockSpec("minecraft:stone")
LAMP = BlockSpec.parse("redstone_lamp[lit=true]")
A = Position(5, 64, 5)
B = Position(6, 64, 5)


@pytest.fixture
def recorder(world, tmp_path):
    index = TestIndex(TestLoader(tmp_path, recursive=True)).reload()
    return Recorder(world, RecorderConfig(tests_dir=str(tmp_path)), index)


def test_start_freezes_time(recorder, world):
    recorder.start("lamp")
    assert recorder.state == RecorderState.RECORDING
    assert recorder.active
    assert world.frozen
    assert recorder.reference == Position(0, 64, 0)


def test_origin_is_first_change_and_items_are_relative(recorder, world):
    recorder.start("lamp")
    world.set_block(A, STONE)
    world.set_block(B, LAMP)
    assert recorder.origin == A

    assert recorder.advance() == 1
    world.set_block(B, BlockSpec.air())
    recorder.advance()
    recorder.assert_block(A)

    test = recorder.build_test()
    assert test.name == "lamp"
    assert test.tags == frozenset({"recorded"})
    assert list(test.timeline) == [
        Place(0, Position(0, 0, 0), STONE),
        Place(0, Position(1, 0, 0), LAMP),
        Remove(1, Position(1, 0, 0)),
        Single(2, Position(0, 0, 0), STONE),
    ]
    assert test.cleanup == Region(Position(-1, -1, -1), Position(2, 1, 1))


def test_advance_moves_world_one_tick(recorder, world):
    recorder.start("lamp")
    recorder.advance()
    recorder.advance()
    assert [n for _, n in world.calls("advance")] == [1, 1]
    assert recorder.tick == 2


def test_net_change_per_position(recorder, world):
    recorder.start("flicker")
    world.set_block(A, STONE)
    world.set_block(A, LAMP)
    world.set_block(B, STONE)
    world.set_block(B, BlockSpec.air())

    assert recorder.pending == {A: (BlockSpec.air(), LAMP)}


def test_changes_outside_radius_ignored(recorder, world):
    recorder.start("far")
    world.set_block(Position(40, 64, 0), STONE)
    assert recorder.pending == {}
    assert recorder.origin is None


def test_assert_changes_converts_pending(recorder, world):
    recorder.start("changes")
    world.set_block(A, STONE)
    world.set_block(B, LAMP)

    assert recorder.assert_changes() == 2
    assert recorder.pending == {}
    assert recorder.timeline == [Single(0, A, STONE), Single(0, B, LAMP)]


def test_assert_region_covers_air(recorder, world):
    recorder.start("box")
    world.set_block(A, STONE)
    checks = recorder.assert_region(Region.from_corners(A, B))
    assert [(c.pos, c.expected) for c in checks] == [(A, STONE), (B, BlockSpec.air())]


def test_save_writes_file_and_reloads_index(recorder, world, tmp_path):
    recorder.start("redstone/lamp")
    world.set_block(A, LAMP)
    recorder.advance()
    recorder.assert_block(A)

    saved = recorder.save()

    assert saved.path == tmp_path / "redstone" / "lamp.json"
    assert saved.path.exists()
    assert saved.test.name == "redstone_lamp"
    assert recorder.state == RecorderState.OFF
    assert not world.frozen

    loaded = recorder.index.find("redstone_lamp")
    assert loaded is not None
    assert loaded.tags == frozenset({"recorded"})
    assert loaded.tick_count == 2


def test_save_flushes_pending_changes(recorder, world):
    recorder.start("pending")
    world.set_block(A, STONE)
    saved = recorder.save()
    assert list(saved.test.timeline) == [Place(0, Position(0, 0, 0), STONE)]


def test_save_with_nothing_recorded(recorder, world):
    recorder.start("empty")
    with pytest.raises(RecorderError):
        recorder.save()
    assert recorder.state == RecorderState.OFF
    assert not world.frozen


def test_cancel_resets(recorder, world):
    recorder.start("lamp")
    world.set_block(A, STONE)
    recorder.cancel()

    assert recorder.state == RecorderState.OFF
    assert recorder.timeline == []
    assert recorder.pending == {}
    assert not world.frozen


def test_operations_need_recording(recorder):
    for op in (recorder.advance, recorder.cancel, recorder.save, recorder.assert_changes):
        with pytest.raises(RecorderError):
            op()
    assert recorder.state == RecorderState.OFF


def test_start_twice_resets_to_off(recorder, world):
    recorder.start("one")
    with pytest.raises(RecorderError):
        recorder.start("two")
    assert recorder.state == RecorderState.OFF
    assert not world.frozen


def test_start_without_reference(tmp_path):
    from tickcheck.world.memory import InMemoryWorld

    w = InMemoryWorld()
    w.connect("memory")
    with pytest.raises(RecorderError):
        Recorder(w).start("nowhere")
    assert not w.frozen


def test_polling_world_uses_snapshot_diff():
    w = PollingWorld(operator=Position(0, 64, 0))
    w.connect("memory")
    rec = Recorder(w, RecorderConfig(radius=2))

    rec.start("poll")
    w.set_block(Position(1, 64, 0), STONE)
    w.scripted(w.game_tick + 1, Position(1, 65, 0), BlockSpec("sand"))
    rec.advance()

    assert rec.timeline == [Place(0, Position(1, 64, 0), STONE)]
    assert rec.assert_changes() == 1
    assert rec.timeline[-1] == Single(1, Position(1, 65, 0), BlockSpec("sand"))


def test_test_path_nested(recorder, tmp_path):
    assert recorder.test_path("a/b/c") == tmp_path / "a" / "b" / "c.json"
    assert recorder.test_path("flat") == tmp_path / "flat.json"


def test_bounding_box():
    box = BoundingBox()
    assert not box.is_valid
    with pytest.raises(ValueError):
        box.to_region()

    box.expand(Position(1, 2, 3))
    box.expand(Position(-1, 5, 0))
    assert box.to_region(0) == Region(Position(-1, 2, 0), Position(1, 5, 3))
    assert box.to_region(1) == Region(Position(-2, 1, -1), Position(2, 6, 4))
