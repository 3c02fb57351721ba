#!filepath: tickcheck/api/registry.py
from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Literal, Optional

from tickcheck.engine.executor import PausedAt
from tickcheck.engine.results import RunResult
from tickcheck.engine.runner import Command

RunStatus = Literal["PENDING", "RUNNING", "PAUSED", "FINISHED", "FAILED"]

ACTIVE_STATUSES = ("PENDING", "RUNNING", "PAUSED")


@dataclass
class RunJob:
    run_id: str
    tests: List[str]
    status: RunStatus = "PENDING"
    created_at: str = ""
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    paused_at: Optional[Dict[str, Any]] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    # RUNNING 中的 hard stop：RunSession.request_stop + 排队 STOP（见 create_app）
    stop_hook: Optional[Callable[[], None]] = field(default=None, repr=False)
    commands: "queue.Queue[Command]" = field(default_factory=queue.Queue, repr=False)
    # set = 处于稳定状态（PAUSED / FINISHED / FAILED）
    settled: threading.Event = field(default_factory=threading.Event, repr=False)

    def __post_init__(self):
        if not self.created_at:
            self.created_at = datetime.utcnow().isoformat()

    # --------------------------------------------------
    def mark_running(self) -> None:
        self.status = "RUNNING"
        self.paused_at = None
        if self.started_at is None:
            self.started_at = datetime.utcnow().isoformat()

    def mark_paused(self, p: PausedAt) -> None:
        self.status = "PAUSED"
        self.paused_at = {
            "tick": p.tick,
            "chunk_id": p.chunk_id,
            "reason": p.reason.value,
            "tests": list(p.tests),
        }
        self.settled.set()

    def mark_finished(self, result: RunResult) -> None:
        self.status = "FINISHED"
        self.result = result.to_dict()
        self.finished_at = datetime.utcnow().isoformat()
        self.settled.set()

    def mark_failed(self, error: str) -> None:
        self.status = "FAILED"
        self.error = error
        self.finished_at = datetime.utcnow().isoformat()
        self.settled.set()

    def send(self, command: Command) -> None:
        self.settled.clear()
        self.commands.put(command)

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self.settled.wait(timeout)

    @property
    def active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "tests": self.tests,
            "status": self.status,
            "created_at": self.created_at,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "paused_at": self.paused_at,
            "result": self.result,
            "error": self.error,
        }


class RunRegistry:
    def __init__(self):
        self._runs: dict[str, RunJob] = {}
        self._lock = threading.Lock()

    def add(self, job: RunJob) -> None:
        with self._lock:
            self._runs[job.run_id] = job

    def get(self, run_id: str) -> RunJob:
        return self._runs[run_id]

    def list(self) -> list[RunJob]:
        return list(self._runs.values())

    def active(self) -> Optional[RunJob]:
        for job in self._runs.values():
            if job.active:
                return job
        return None

    def clear(self) -> None:
        with self._lock:
            self._runs.clear()
