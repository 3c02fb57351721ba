#!filepath: tickcheck/utils/retry.py
import random
import time
from typing import Callable, Optional, Tuple, Type

from tickcheck.utils.logger import logs

# 推进世界时间的调用：重试会多走 tick
TICK_AFFECTING = frozenset({"advance", "set_block", "fill"})


class Retry:
    """
    连接类调用的重试（指数退避 + jitter）

    设计铁律：
      - 只包裹不推进世界时间的调用（connect 等）
      - TICK_AFFECTING 中的方法拒绝包裹，直接 ValueError
    """

    @staticmethod
    def backoff_delay(attempt: int, delay: float, backoff: float, jitter: bool) -> float:
        """第 attempt 次失败之后的等待秒数（attempt 从 1 开始）"""
        wait = delay * (backoff ** (attempt - 1))
        if jitter:
            wait *= random.uniform(0.8, 1.2)
        return wait

    @staticmethod
    def run(
        func: Callable,
        *args,
        exceptions: Tuple[Type[Exception], ...] = (Exception,),
        max_attempts: int = 3,
        delay: float = 1.0,
        backoff: float = 2.0,
        jitter: bool = True,
        sleep: Optional[Callable[[float], None]] = None,
        **kwargs,
    ):
        name = getattr(func, "__name__", repr(func))
        if name in TICK_AFFECTING:
            raise ValueError(f"[Retry] refusing to retry tick-affecting call '{name}'")

        pause = sleep or time.sleep
        for attempt in range(1, max_attempts + 1):
            try:
                return func(*args, **kwargs)
            except exceptions as e:
                if attempt == max_attempts:
                    logs.error(f"[Retry] {name} gave up after {max_attempts} attempts: {e}")
                    raise

                wait = Retry.backoff_delay(attempt, delay, backoff, jitter)
                logs.warning(
                    f"[Retry] {name} attempt {attempt}/{max_attempts} failed: {e}. "
                    f"next try in {wait:.2f}s"
                )
                pause(wait)
