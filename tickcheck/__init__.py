#!filepath: tickcheck/__init__.py

from .utils.logger import Logging, logs, init_logging
from .utils.retry import Retry
from .utils.filesystem import FileSystem
from .config.app_config import AppConfig

__version__ = "0.1.0"

# alias 简化调用
retry = Retry
fs = FileSystem

__all__ = [
    "logs", "Logging", "init_logging",
    "retry",
    "fs",
    "AppConfig",
    "__version__",
]
