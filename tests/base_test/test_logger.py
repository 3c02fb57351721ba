#!filepath: tests/base_test/test_logger.py
import pytest
from loguru import logger

from tickcheck import init_logging, logs
from tickcheck.config.log_config import LogConfig


@pytest.fixture
def captured():
    lines = []
    logger.remove()
    logger.add(lambda msg: lines.append(msg.record["message"]), level="DEBUG")
    yield lines


def test_component_prefix_passes_through(captured):
    logs.info("[Engine] chunk 0 start")
    logs.warning("[Recorder] nothing recorded")
    assert captured == ["[Engine] chunk 0 start", "[Recorder] nothing recorded"]


def test_catch_reraises_and_logs(captured):
    @logs.catch("boom")
    def explode():
        raise ValueError("bad")

    with pytest.raises(ValueError):
        explode()
    assert any("[ERROR] explode: boom" in line for line in captured)


def test_catch_returns_result(captured):
    @logs.catch(log_inputs=True, log_outputs=True)
    def add(a, b=0):
        return a + b

    assert add(1, b=2) == 3
    assert any(line.startswith("[RETURN] add result=3") for line in captured)


def test_init_logging_applies_level(tmp_path):
    configured = init_logging(LogConfig(level="WARNING"))
    assert configured is logs
    assert logs.level == "WARNING"
    assert logs.log_dir is None
    # 恢复静默
    logger.remove()
    logger.add(lambda msg: None)
