#!filepath: tickcheck/config/world_config.py
from pydantic import BaseModel, Field


class WorldConfig(BaseModel):
    """
    WorldClient 连接配置

    client: "module:Class"，WorldClient 实现由配置注入
    """

    client: str = "tickcheck.world.memory:InMemoryWorld"
    address: str = "localhost:25565"
    connect_attempts: int = Field(3, ge=1)
    connect_delay: float = Field(1.0, ge=0.0)
