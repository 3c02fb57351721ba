#!filepath: tickcheck/world/factory.py
from __future__ import annotations

import importlib

from tickcheck import logs
from tickcheck.config.world_config import WorldConfig
from tickcheck.utils.errors import TransportError, UserInputError
from tickcheck.utils.retry import Retry
from tickcheck.world.base import WorldClient
from tickcheck.world.memory import InMemoryWorld


def load_client(dotted: str, **kwargs) -> WorldClient:
    """
    "package.module:ClassName" → WorldClient 实例
    """
    module_name, sep, attr = dotted.partition(":")
    if not sep or not module_name or not attr:
        raise UserInputError(f"world client must look like 'module:Class', got '{dotted}'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise UserInputError(f"cannot import world client module '{module_name}': {e}") from e

    cls = getattr(module, attr, None)
    if cls is None:
        raise UserInputError(f"'{module_name}' has no attribute '{attr}'")
    if not (isinstance(cls, type) and issubclass(cls, WorldClient)):
        raise UserInputError(f"'{dotted}' is not a WorldClient")

    return cls(**kwargs)


@logs.catch("world connection failed")
def connect_client(cfg: WorldConfig, client: WorldClient | None = None) -> WorldClient:
    """
    创建并连接 WorldClient。

    只有 connect 走 Retry：它不推进世界时间，可安全重试。
    """
    client = client or load_client(cfg.client)
    if isinstance(client, InMemoryWorld):
        logs.warning(
            f"[World] {type(client).__name__} is a local dict world with no physics; "
            f"'{cfg.address}' is not contacted. Set world.client to reach a server"
        )
    logs.info(f"[World] connecting {type(client).__name__} to {cfg.address}")
    Retry.run(
        client.connect,
        cfg.address,
        exceptions=(TransportError, OSError),
        max_attempts=cfg.connect_attempts,
        delay=cfg.connect_delay,
    )
    return client
