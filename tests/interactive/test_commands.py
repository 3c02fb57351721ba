#!filepath: tests/interactive/test_commands.py
import pytest

from tickcheck.config.recorder_config import RecorderConfig
from tickcheck.core.types import BlockSpec, Position
from tickcheck.engine.results import Outcome
from tickcheck.interactive.commands import CommandDispatcher, parse_command, parse_position
from tickcheck.loader.loader import TestIndex, TestLoader
from tickcheck.recorder.state import Recorder
from tickcheck.utils.errors import UserInputError


@pytest.fixture
def dispatcher(world, tmp_path, write_doc, lamp_doc):
    write_doc("lamp.json", lamp_doc)
    index = TestIndex(TestLoader(tmp_path)).reload()
    recorder = Recorder(world, RecorderConfig(tests_dir=str(tmp_path)), index)
    return CommandDispatcher(index, world, recorder)


@pytest.mark.parametrize(
    "message, expected",
    [
        ("<Steve> !run fence step", ("!run", ["fence", "step"])),
        ("!HELP", ("!help", [])),
        ("say !list now", ("!list", ["now"])),
        ("s", ("s", [])),
        ("<Alex>  C ", ("c", [])),
        ("hello there", None),
        ("!", None),
        ("", None),
    ],
)
def test_parse_command(message, expected):
    assert parse_command(message) == expected


def test_parse_position():
    assert parse_position(["1", "-2", "3"]) == Position(1, -2, 3)
    with pytest.raises(UserInputError):
        parse_position(["1", "2"])
    with pytest.raises(UserInputError):
        parse_position(["1", "x", "3"])


def test_non_command_is_ignored(dispatcher):
    assert dispatcher.dispatch("just chatting") == []


def test_unknown_command(dispatcher):
    assert dispatcher.dispatch("!nope")[0].startswith("Unknown command: !nope")


def test_list_and_search(dispatcher):
    assert dispatcher.dispatch("!list") == ["1 tests:", "  lamp_lights"]
    assert dispatcher.dispatch("!search LAMP") == ["1 matches:", "  lamp_lights"]
    assert dispatcher.dispatch("!search fence") == ["No matching tests"]


def test_run_to_completion(dispatcher):
    lines = dispatcher.dispatch("<Steve> !run lamp")

    assert lines[0] == "Running 1 tests"
    assert lines[1].startswith("Done: 1/1 passed")
    assert dispatcher.last_result.ok
    assert dispatcher.session is None


def test_run_unknown_test(dispatcher):
    assert dispatcher.dispatch("!run missing") == ["Test not found: missing"]


def test_run_step_then_continue(dispatcher):
    lines = dispatcher.dispatch("!run lamp_lights step")
    assert lines[0] == "Running 1 tests (step mode)"
    assert lines[1] == "Paused at tick 0 of chunk 0 [step] (lamp_lights)"
    assert dispatcher.paused

    assert dispatcher.dispatch("s")[0].startswith("Paused at tick 1")
    assert dispatcher.dispatch("!run-all") == ["A run is paused: s / c / !stop first"]

    lines = dispatcher.dispatch("c")
    assert lines[0].startswith("Done: 1/1 passed")
    assert not dispatcher.paused


def test_stop_paused_run(dispatcher):
    dispatcher.dispatch("!run lamp step")
    lines = dispatcher.dispatch("!stop")

    assert lines[0] == "Run stopped"
    assert dispatcher.last_result.per_test[0].outcome == Outcome.SKIPPED
    assert not dispatcher.exit_requested


def test_stop_without_run_exits(dispatcher):
    dispatcher.dispatch("!stop")
    assert dispatcher.exit_requested


def test_step_without_paused_run(dispatcher):
    assert dispatcher.dispatch("s") == ["No paused run"]
    assert dispatcher.dispatch("!continue") == ["No paused run"]


def test_run_tags(dispatcher):
    assert dispatcher.dispatch("!run-tags redstone")[1].startswith("Done: 1/1")
    assert dispatcher.dispatch("!run-tags fluid,ice") == ["No tests with tags fluid, ice"]


def test_record_assert_save(dispatcher, world, tmp_path):
    assert dispatcher.dispatch("!record demo/stone")[0] == "Recording 'demo/stone' (time frozen)"

    world.set_block(Position(2, 64, 0), BlockSpec("stone"))
    assert dispatcher.dispatch("!tick") == ["Stepped one tick, now recording tick 1"]
    assert dispatcher.dispatch("!assert 2 64 0") == ["Added assert at [2, 64, 0] = minecraft:stone"]

    lines = dispatcher.dispatch("!save")
    assert lines[0] == f"Saved 'demo_stone' to {tmp_path / 'demo' / 'stone.json'}"
    assert lines[1] == "To execute: !run demo_stone"
    assert not dispatcher.recorder.active


def test_pos1_turns_assert_into_box(dispatcher, world):
    dispatcher.dispatch("!record box")
    world.set_block(Position(0, 64, 0), BlockSpec("stone"))
    dispatcher.dispatch("!pos1 0 64 0")

    lines = dispatcher.dispatch("!assert 1 64 0")
    assert lines == [
        "Added assert at [0, 64, 0] = minecraft:stone",
        "Added assert at [1, 64, 0] = minecraft:air",
    ]
    assert dispatcher.pos1 is None


def test_recording_blocks_runs(dispatcher):
    dispatcher.dispatch("!record busy")
    assert dispatcher.dispatch("!run lamp") == ["Recording in progress: !save or !cancel first"]
    assert dispatcher.dispatch("!cancel") == ["Recording cancelled"]


def test_errors_become_replies(dispatcher):
    assert dispatcher.dispatch("!save") == ["Error: save: no recording in progress"]
    assert dispatcher.dispatch("!pos1 1 2") == ["Error: expected <x> <y> <z>"]


def test_reload_reports_invalid(dispatcher, write_doc):
    write_doc("broken.json", {"name": "broken", "timeline": "nope"})
    lines = dispatcher.dispatch("!reload")
    assert lines[0] == "Reloaded 1 tests"
    assert lines[1].startswith("  invalid:")
