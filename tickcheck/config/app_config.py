#!filepath: tickcheck/config/app_config.py
import os

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .log_config import LogConfig
from .packing_config import PackingConfig
from .recorder_config import RecorderConfig
from .run_config import RunConfig
from .world_config import WorldConfig


def package_root() -> str:
    """
    返回 tickcheck 包目录（基于当前文件位置推导）:
    tickcheck/config/app_config.py → tickcheck/config → tickcheck
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def default_config_path() -> str:
    return os.path.join(package_root(), "config", "base.yml")


class AppConfig(BaseModel):
    log: LogConfig = Field(default_factory=LogConfig)
    world: WorldConfig = Field(default_factory=WorldConfig)
    run: RunConfig = Field(default_factory=RunConfig)
    packing: PackingConfig = Field(default_factory=PackingConfig)
    recorder: RecorderConfig = Field(default_factory=RecorderConfig)

    @classmethod
    def load(cls, path: str | None = None, env_file: str | None = ".env") -> "AppConfig":
        """
        加载 YAML 配置 + .env
        - 默认使用 tickcheck/config/base.yml
        - TICKCHECK_SERVER / TICKCHECK_LOG_LEVEL 覆盖 YAML
        """
        # 1) 先加载 .env（当前工作目录）
        if env_file:
            load_dotenv(env_file)

        # 2) 决定配置文件路径
        if path is None:
            path = default_config_path()

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        # 3) 读取 YAML
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        # 4) env 注入
        server = os.getenv("TICKCHECK_SERVER")
        if server:
            raw.setdefault("world", {})["address"] = server

        level = os.getenv("TICKCHECK_LOG_LEVEL")
        if level:
            raw.setdefault("log", {})["level"] = level

        return cls(**raw)
