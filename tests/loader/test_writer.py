#!filepath: tests/loader/test_writer.py
from tickcheck.core.timeline import Place, Remove, Single, StateSequence
from tickcheck.core.types import BlockSpec, Position
from tickcheck.loader.loader import TestLoader
from tickcheck.loader.writer import to_document, write_test


def test_same_tick_places_grouped(make_test):
    t = make_test(
        name="grouped",
        timeline=[
            Place(0, Position(0, 0, 0), BlockSpec("stone")),
            Place(0, Position(1, 0, 0), BlockSpec.parse("lever[powered=true]")),
            Remove(1, Position(0, 0, 0)),
            Single(1, Position(1, 0, 0), BlockSpec("lever")),
            StateSequence(Position(1, 0, 0), "powered", ((1, "true"), (2, "true"))),
        ],
    )
    doc = to_document(t)
    kinds = [(e["at"], e["do"]) for e in doc["timeline"]]

    assert kinds == [(0, "place_each"), (1, "remove"), (1, "assert"), ([1, 2], "assert_state")]
    assert doc["timeline"][0]["blocks"][1]["block"] == "minecraft:lever[powered=true]"
    assert doc["setup"]["cleanup"]["region"] == [[0, 0, 0], [4, 4, 4]]


def test_written_file_loads_back_equal(tmp_path, make_test):
    t = make_test(
        name="roundtrip",
        tags=["recorded"],
        timeline=[
            Place(0, Position(2, 0, 2), BlockSpec("stone")),
            Single(3, Position(2, 0, 2), BlockSpec("stone")),
        ],
        breakpoints=[1],
    )
    path = write_test(t, tmp_path / "sub" / "roundtrip.json")

    loaded = TestLoader.load_file(path)
    assert loaded == t
