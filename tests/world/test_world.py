#!filepath: tests/world/test_world.py
import pytest
from loguru import logger

from tickcheck.config.world_config import WorldConfig
from tickcheck.core.types import BlockSpec, Position, Region
from tickcheck.utils.errors import TransportError, UserInputError
from tickcheck.world.base import WorldClient
from tickcheck.world.factory import connect_client, load_client
from tickcheck.world.memory import InMemoryWorld, PollingWorld

STONE = BlockSpec("stone")


def test_requires_connection():
    w = InMemoryWorld()
    with pytest.raises(TransportError):
        w.advance(1)
    with pytest.raises(TransportError):
        w.query_block(Position(0, 0, 0))


def test_blocks_and_events(world):
    seen = []
    world.on_block_change(lambda pos, old, new: seen.append((pos, old.id, new.id)))

    p = Position(1, 2, 3)
    world.set_block(p, STONE)
    world.set_block(p, STONE)
    world.set_block(p, BlockSpec.air())

    assert seen == [(p, "minecraft:air", "minecraft:stone"), (p, "minecraft:stone", "minecraft:air")]
    assert world.blocks == {}


def test_fill_and_query_region(world):
    region = Region(Position(0, 0, 0), Position(1, 0, 1))
    world.fill(region, STONE)
    assert len(world.blocks) == 4
    assert set(world.query_region(region).values()) == {STONE}

    world.fill(region, BlockSpec.air())
    assert world.blocks == {}


def test_advance_applies_scripted_reactions(world):
    p = Position(0, 1, 0)
    world.scripted(3, p, STONE)

    world.advance(2)
    assert world.query_block(p).is_empty
    world.advance(1)
    assert world.query_block(p) == STONE
    assert world.game_tick == 3

    with pytest.raises(ValueError):
        world.advance(0)


def test_time_control(world):
    world.suspend_time()
    assert world.frozen
    world.resume_time()
    assert not world.frozen
    assert [c[0] for c in world.history[1:]] == ["suspend_time", "resume_time"]


def test_polling_world_has_no_events():
    w = PollingWorld()
    assert not w.supports_change_events
    with pytest.raises(NotImplementedError):
        w.on_block_change(lambda *a: None)


def test_base_client_is_abstract():
    client = WorldClient()
    assert client.operator_position() is None
    with pytest.raises(NotImplementedError):
        client.advance(1)


def test_load_client():
    client = load_client("tickcheck.world.memory:InMemoryWorld", operator=Position(1, 2, 3))
    assert isinstance(client, InMemoryWorld)
    assert client.operator_position() == Position(1, 2, 3)


@pytest.mark.parametrize(
    "dotted",
    ["no_colon", "tickcheck.world.memory:", "nope_module_xyz:Thing", "tickcheck.world.memory:Missing",
     "tickcheck.core.types:Position"],
)
def test_load_client_rejects(dotted):
    with pytest.raises(UserInputError):
        load_client(dotted)


class _Refusing(InMemoryWorld):
    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    def connect(self, address: str) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise TransportError("connection refused")
        super().connect(address)


def test_connect_client_retries():
    cfg = WorldConfig(address="test:1", connect_attempts=3, connect_delay=0)
    client = connect_client(cfg, _Refusing(failures=2))
    assert client.connected
    assert client.address == "test:1"
    assert client.attempts == 3


def test_connect_client_gives_up():
    cfg = WorldConfig(connect_attempts=2, connect_delay=0)
    with pytest.raises(TransportError):
        connect_client(cfg, _Refusing(failures=5))


def test_connect_client_from_config():
    client = connect_client(WorldConfig(connect_delay=0))
    assert isinstance(client, InMemoryWorld)
    assert client.connected


class _Plain(WorldClient):
    """只实现 connect 的外部 client"""

    def connect(self, address: str) -> None:
        self.address = address


def test_in_memory_client_warns_no_server_is_contacted():
    lines = []
    logger.remove()
    logger.add(lambda msg: lines.append(msg.record["message"]), level="WARNING")

    connect_client(WorldConfig(address="mc.example:25565", connect_delay=0))

    assert any("no physics" in line and "mc.example:25565" in line for line in lines)


def test_custom_client_is_not_warned_about():
    lines = []
    logger.remove()
    logger.add(lambda msg: lines.append(msg.record["message"]), level="WARNING")

    connect_client(WorldConfig(connect_delay=0), _Plain())

    assert lines == []
