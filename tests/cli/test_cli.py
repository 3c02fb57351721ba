#!filepath: tests/cli/test_cli.py
import json

import pytest
import yaml
from typer.testing import CliRunner

from tickcheck.cli import _drive, app
from tickcheck.core.timeline import Place, Single
from tickcheck.core.types import BlockSpec, Position
from tickcheck.engine.results import Outcome
from tickcheck.engine.runner import RunSession
from tickcheck.world.memory import InMemoryWorld

LAMP = BlockSpec.parse("minecraft:redstone_lamp[lit=false]")
P0 = Position(0, 0, 0)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("TICKCHECK_SERVER", raising=False)
    monkeypatch.chdir(tmp_path)

    def _make(**run) -> str:
        path = tmp_path / "cfg.yml"
        path.write_text(yaml.safe_dump({"run": {"settle_delay": 0, **run}}), encoding="utf-8")
        return str(path)

    return _make


def test_run_without_path_uses_configured_tests_dir(tmp_path, write_doc, lamp_doc, config_file):
    write_doc("suite/lamp.json", lamp_doc)
    write_doc("suite/other.json", dict(lamp_doc, name="other", tags=["fluid"]))
    cfg = config_file(tests_dir=str(tmp_path / "suite"))
    out = tmp_path / "result.json"

    result = CliRunner().invoke(app, ["run", "--tag", "redstone", "--config", cfg, "--json", str(out)])

    assert result.exit_code == 0, result.output
    assert "InMemoryWorld" in result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert [t["name"] for t in data["perTest"]] == ["lamp_lights"]
    assert data["summary"]["passed"] == 1


def test_run_missing_tests_dir_exits_2(tmp_path, config_file):
    cfg = config_file(tests_dir=str(tmp_path / "nowhere"))
    result = CliRunner().invoke(app, ["run", "--config", cfg])
    assert result.exit_code == 2


class _CtrlC(InMemoryWorld):
    def __init__(self):
        super().__init__(operator=Position(0, 64, 0))
        self.advances = 0
        self.connect("memory")

    def advance(self, ticks: int = 1) -> None:
        self.advances += 1
        if self.advances == 2:
            raise KeyboardInterrupt
        super().advance(ticks)


def test_ctrl_c_returns_partial_result(make_test):
    world = _CtrlC()
    t = make_test("lamp", [Place(0, P0, LAMP), Single(3, P0, LAMP)])

    result, interrupted = _drive(RunSession([t], world))

    assert interrupted
    assert result.per_test[0].outcome == Outcome.SKIPPED
    assert result.per_test[0].reason == "interrupted at tick 1"
    assert not world.frozen
    assert world.blocks == {}
