#!filepath: tickcheck/api/app.py
from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from typing import List, Optional

from flask import Flask, current_app, jsonify, request

from tickcheck import logs
from tickcheck.api.decorators import handle_run_not_found
from tickcheck.api.registry import RunJob, RunRegistry
from tickcheck.config.app_config import AppConfig
from tickcheck.core.model import TestModel
from tickcheck.engine.executor import PausedAt
from tickcheck.engine.runner import Command, RunSession
from tickcheck.interactive.commands import CommandDispatcher
from tickcheck.loader.loader import TestIndex, TestLoader
from tickcheck.recorder.state import Recorder
from tickcheck.world.base import WorldClient
from tickcheck.world.factory import connect_client

DEFAULT_WAIT_SEC = 30.0


@dataclass
class Services:
    """一个 app 实例共享的运行期对象（世界只有一个）"""

    cfg: AppConfig
    world: WorldClient
    index: TestIndex
    recorder: Recorder
    dispatcher: CommandDispatcher
    registry: RunRegistry


def _services() -> Services:
    return current_app.config["TICKCHECK"]


def _run_job(job: RunJob, session: RunSession) -> None:
    """后台线程：推进 session，暂停时阻塞等待 step / continue / stop"""
    job.mark_running()
    try:
        state = session.start()
        while isinstance(state, PausedAt):
            job.mark_paused(state)
            command = job.commands.get()
            job.mark_running()
            state = session.send(command)
        job.mark_finished(state)
    except Exception as e:
        logs.exception(f"[API] run {job.run_id} crashed")
        job.mark_failed(repr(e))


def _wait_arg(payload: dict) -> Optional[float]:
    if not payload.get("wait", True):
        return None
    return float(payload.get("timeout", DEFAULT_WAIT_SEC))


def _select_tests(svc: Services, payload: dict) -> List[TestModel]:
    names = payload.get("names") or []
    tags = payload.get("tags") or []
    if names:
        found = [svc.index.find(n) for n in names]
        return [t for t in found if t is not None]
    if tags:
        return svc.index.by_tags(tags)
    return svc.index.tests


def create_app(
    cfg: Optional[AppConfig] = None,
    world: Optional[WorldClient] = None,
    index: Optional[TestIndex] = None,
) -> Flask:
    cfg = cfg or AppConfig.load()
    world = world or connect_client(cfg.world)
    if index is None:
        index = TestIndex(TestLoader(cfg.run.tests_dir, cfg.run.recursive)).reload()
    recorder = Recorder(world, cfg.recorder, index)

    app = Flask(__name__)
    app.config["TICKCHECK"] = Services(
        cfg=cfg,
        world=world,
        index=index,
        recorder=recorder,
        dispatcher=CommandDispatcher(
            index, world, recorder, run_cfg=cfg.run, packing_cfg=cfg.packing
        ),
        registry=RunRegistry(),
    )

    # ------------------------------------------------------------------
    @app.get("/health")
    def health():
        svc = _services()
        active = svc.registry.active()
        return jsonify({
            "ok": True,
            "tests": len(svc.index.tests),
            "active_run": active.run_id if active else None,
            "recording": svc.recorder.active,
        })

    @app.get("/tests")
    def list_tests():
        svc = _services()
        return jsonify({
            "tests": [
                {"name": t.name, "tags": sorted(t.tags), "ticks": t.tick_count}
                for t in svc.index.tests
            ],
            "errors": [str(e) for e in svc.index.errors],
        })

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------
    @app.post("/runs")
    def create_run():
        svc = _services()
        payload = request.get_json(silent=True) or {}

        active = svc.registry.active()
        if active is not None:
            return jsonify({"error": "a run is already active", "run_id": active.run_id}), 409
        if svc.recorder.active or svc.dispatcher.paused:
            return jsonify({"error": "world is busy (recording or interactive run)"}), 409

        tests = _select_tests(svc, payload)
        if not tests:
            return jsonify({"error": "no tests selected"}), 400

        run_cfg = svc.cfg.run.model_copy(update={
            k: payload[k] for k in ("fail_fast", "break_after_setup", "action_delay") if k in payload
        })
        session = RunSession(
            tests,
            svc.world,
            run_cfg=run_cfg,
            packing_cfg=svc.cfg.packing,
            step_mode=bool(payload.get("step", False)),
        )

        job = RunJob(run_id=uuid.uuid4().hex[:10], tests=[t.name for t in tests])

        def _request_stop() -> None:
            # 标志覆盖 Running / chunk 之间；排队的 STOP 覆盖与挂起的竞争
            session.request_stop()
            job.commands.put(Command.STOP)

        job.stop_hook = _request_stop
        svc.registry.add(job)

        t = threading.Thread(target=_run_job, args=(job, session), daemon=True)
        t.start()

        timeout = _wait_arg(payload)
        if timeout is not None:
            job.wait(timeout)

        body = job.to_dict()
        body["status_url"] = f"/runs/{job.run_id}"
        return jsonify(body), 201

    @app.get("/runs")
    def list_runs():
        return jsonify({"runs": [j.to_dict() for j in _services().registry.list()]})

    @app.get("/runs/<run_id>")
    @handle_run_not_found
    def get_run(run_id: str):
        job = _services().registry.get(run_id)
        return jsonify(job.to_dict())

    def _send(run_id: str, command: Command):
        job = _services().registry.get(run_id)
        if job.status != "PAUSED":
            return jsonify({
                "run_id": job.run_id,
                "status": job.status,
                "error": f"'{command.value}' requires a paused run",
            }), 409

        payload = request.get_json(silent=True) or {}
        job.send(command)
        timeout = _wait_arg(payload)
        if timeout is not None:
            job.wait(timeout)
        return jsonify(job.to_dict())

    @app.post("/runs/<run_id>/step")
    @handle_run_not_found
    def step_run(run_id: str):
        return _send(run_id, Command.STEP)

    @app.post("/runs/<run_id>/continue")
    @handle_run_not_found
    def continue_run(run_id: str):
        return _send(run_id, Command.CONTINUE)

    @app.post("/runs/<run_id>/stop")
    @handle_run_not_found
    def stop_run(run_id: str):
        job = _services().registry.get(run_id)
        if not job.active:
            return jsonify({
                "run_id": job.run_id,
                "status": job.status,
                "error": "run already finished",
            }), 400
        if job.status == "PAUSED":
            return _send(run_id, Command.STOP)

        job.settled.clear()
        job.stop_hook()
        payload = request.get_json(silent=True) or {}
        timeout = _wait_arg(payload)
        if timeout is not None:
            job.wait(timeout)
        return jsonify(job.to_dict())

    # ------------------------------------------------------------------
    # Chat-style commands（recorder / interactive）
    # ------------------------------------------------------------------
    @app.post("/commands")
    def run_command():
        svc = _services()
        payload = request.get_json(silent=True) or {}
        text = payload.get("text")
        if not text:
            return jsonify({"error": "missing text"}), 400

        active = svc.registry.active()
        if active is not None:
            return jsonify({"error": "a run is active", "run_id": active.run_id}), 409

        replies = svc.dispatcher.dispatch(text, payload.get("sender"))
        return jsonify({"replies": replies})

    return app


if __name__ == "__main__":
    # 允许 python -m tickcheck.api.app 启动
    create_app().run(host="0.0.0.0", port=5000)
