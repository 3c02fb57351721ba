#!filepath: tickcheck/observability/progress.py
from tickcheck import logs


class ProgressReporter:
    """
    最轻量进度系统：tick 进度只写日志，不依赖 Rich/TQDM

    every: 每推进多少 tick 才输出一次 update，避免刷屏
    """

    def __init__(self, enabled: bool = True, every: int = 20):
        self.enabled = enabled
        self.every = max(1, every)
        self._last: dict[str, int] = {}

    def start(self, task: str, total: int, unit: str = ""):
        if not self.enabled:
            return
        self._last[task] = 0
        logs.info(f"[Progress] {task} started total={total} {unit}")

    def update(self, task: str, current: int, total: int, unit: str = ""):
        if not self.enabled:
            return
        last = self._last.get(task, 0)
        if current - last < self.every and current < total:
            return
        self._last[task] = current
        logs.info(f"[Progress] {task}: {current}/{total} {unit}")

    def done(self, task: str):
        if not self.enabled:
            return
        self._last.pop(task, None)
        logs.info(f"[Progress] {task} done")
