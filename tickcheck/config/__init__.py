#!filepath: tickcheck/config/__init__.py
from .app_config import AppConfig
from .log_config import LogConfig
from .packing_config import PackingConfig
from .recorder_config import RecorderConfig
from .run_config import RunConfig
from .world_config import WorldConfig

__all__ = [
    "AppConfig",
    "LogConfig",
    "PackingConfig",
    "RecorderConfig",
    "RunConfig",
    "WorldConfig",
]
