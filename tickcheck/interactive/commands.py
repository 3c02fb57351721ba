#!filepath: tickcheck/interactive/commands.py
from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple

from tickcheck import logs
from tickcheck.config.packing_config import PackingConfig
from tickcheck.config.run_config import RunConfig
from tickcheck.core.model import TestModel
from tickcheck.core.types import Position, Region
from tickcheck.engine.executor import PausedAt
from tickcheck.engine.results import RunResult
from tickcheck.engine.runner import Command, RunSession
from tickcheck.loader.loader import TestIndex
from tickcheck.recorder.state import Recorder
from tickcheck.utils.errors import TickcheckError, UserInputError
from tickcheck.world.base import WorldClient

HELP = [
    "Commands: !help !list !search <p> !run <name> [step] !run-all !run-tags <a,b> !reload !stop",
    "Recorder: !record <name> [player] !tick/!next !assert <x y z> !pos1 <x y z> !assert_changes !save !cancel",
    "Paused run: s / !step, c / !continue, !stop",
]


def parse_command(message: str) -> Optional[Tuple[str, List[str]]]:
    """
    "<Steve> !run fence step" → ("!run", ["fence", "step"])

    单独的 s / c 也视为命令（暂停时的 step / continue）。
    非命令文本返回 None。
    """
    text = message.strip()
    if not text:
        return None

    # 聊天前缀 "<name> ..."
    if text.startswith("<") and ">" in text:
        text = text[text.index(">") + 1:].strip()

    if text.lower() in ("s", "c"):
        return text.lower(), []

    start = text.find("!")
    if start < 0:
        return None

    parts = text[start:].split()
    if not parts or parts[0] == "!":
        return None
    return parts[0].lower(), parts[1:]


def parse_position(args: Sequence[str]) -> Position:
    if len(args) < 3:
        raise UserInputError("expected <x> <y> <z>")
    try:
        return Position(int(args[0]), int(args[1]), int(args[2]))
    except ValueError as e:
        raise UserInputError(f"bad coordinates {' '.join(args[:3])}") from e


def format_pause(p: PausedAt) -> List[str]:
    who = f" ({', '.join(p.tests)})" if p.tests else ""
    return [
        f"Paused at tick {p.tick} of chunk {p.chunk_id} [{p.reason.value}]{who}",
        "s = step one tick, c = continue, !stop = abort",
    ]


def format_result(r: RunResult) -> List[str]:
    s = r.summary
    lines = [
        f"Done: {s['passed']}/{s['total']} passed, {s['failed']} failed, "
        f"{s['errored']} errored, {s['skipped']} skipped in {s['duration']:.2f}s"
        + (" (aborted)" if r.aborted else "")
    ]
    for f in r.failures:
        lines.append(
            f"FAIL {f.test} @ tick {f.tick} {f.position.as_list()}: expected {f.expected}, got {f.actual}"
        )
    return lines


class CommandDispatcher:
    """
    聊天式命令 → 核心操作（1:1），返回回复行。

    传输层（终端 stdin、HTTP /commands）只负责把文本送进来、把回复送出去。
    同一时刻最多一个 RunSession（世界是唯一共享资源）。
    """

    def __init__(
        self,
        index: TestIndex,
        world: WorldClient,
        recorder: Recorder,
        *,
        run_cfg: Optional[RunConfig] = None,
        packing_cfg: Optional[PackingConfig] = None,
        session_factory: Optional[Callable[..., RunSession]] = None,
    ):
        self.index = index
        self.world = world
        self.recorder = recorder
        self.run_cfg = run_cfg or RunConfig()
        self.packing_cfg = packing_cfg or PackingConfig()
        self._session_factory = session_factory or RunSession

        self.session: Optional[RunSession] = None
        self.last_result: Optional[RunResult] = None
        self.pos1: Optional[Position] = None
        self.exit_requested = False

        self._handlers = {
            "!help": self._help,
            "!list": self._list,
            "!search": self._search,
            "!run": self._run,
            "!run-all": self._run_all,
            "!run-tags": self._run_tags,
            "!reload": self._reload,
            "!stop": self._stop,
            "!record": self._record,
            "!tick": self._tick,
            "!next": self._tick,
            "!assert": self._assert,
            "!pos1": self._pos1,
            "!pos": self._pos1,
            "!assert_changes": self._assert_changes,
            "!save": self._save,
            "!cancel": self._cancel,
            "s": self._step,
            "!step": self._step,
            "c": self._continue,
            "!continue": self._continue,
        }

    # --------------------------------------------------
    def dispatch(self, message: str, sender: Optional[str] = None) -> List[str]:
        parsed = parse_command(message)
        if parsed is None:
            return []

        command, args = parsed
        handler = self._handlers.get(command)
        if handler is None:
            return [f"Unknown command: {command}. Type !help for commands."]

        logs.info(f"[Commands] {command} {' '.join(args)}".rstrip())
        try:
            return handler(args, sender)
        except TickcheckError as e:
            logs.warning(f"[Commands] {command} failed: {e}")
            return [f"Error: {e}"]

    @property
    def paused(self) -> bool:
        return self.session is not None and self.session.paused_at is not None

    # --------------------------------------------------
    # Index
    # --------------------------------------------------
    def _help(self, args, sender) -> List[str]:
        return list(HELP)

    def _list(self, args, sender) -> List[str]:
        tests = self.index.tests
        if not tests:
            return ["No tests loaded"]
        return [f"{len(tests)} tests:"] + [f"  {t.name}" for t in tests]

    def _search(self, args, sender) -> List[str]:
        if not args:
            return ["Usage: !search <pattern>"]
        found = self.index.search(" ".join(args))
        if not found:
            return ["No matching tests"]
        return [f"{len(found)} matches:"] + [f"  {t.name}" for t in found]

    def _reload(self, args, sender) -> List[str]:
        self.index.reload()
        lines = [f"Reloaded {len(self.index.tests)} tests"]
        lines += [f"  invalid: {e}" for e in self.index.errors]
        return lines

    # --------------------------------------------------
    # Runs
    # --------------------------------------------------
    def _run(self, args, sender) -> List[str]:
        if not args:
            return ["Usage: !run <test_name> [step]"]
        step_mode = len(args) > 1 and args[-1].lower() == "step"
        name = " ".join(args[:-1] if step_mode else args)
        test = self.index.find(name)
        if test is None:
            return [f"Test not found: {name}"]
        return self._start_session([test], step_mode=step_mode)

    def _run_all(self, args, sender) -> List[str]:
        return self._start_session(self.index.tests)

    def _run_tags(self, args, sender) -> List[str]:
        if not args:
            return ["Usage: !run-tags <tag1,tag2,...>"]
        tags = [t.strip() for t in args[0].split(",") if t.strip()]
        tests = self.index.by_tags(tags)
        if not tests:
            return [f"No tests with tags {', '.join(tags)}"]
        return self._start_session(tests)

    def _start_session(self, tests: List[TestModel], step_mode: bool = False) -> List[str]:
        if self.paused:
            return ["A run is paused: s / c / !stop first"]
        if self.recorder.active:
            return ["Recording in progress: !save or !cancel first"]
        if not tests:
            return ["No tests to run"]

        self.session = self._session_factory(
            tests,
            self.world,
            run_cfg=self.run_cfg,
            packing_cfg=self.packing_cfg,
            step_mode=step_mode,
        )
        lines = [f"Running {len(tests)} tests" + (" (step mode)" if step_mode else "")]
        return lines + self._render(self.session.start())

    def _step(self, args, sender) -> List[str]:
        if not self.paused:
            return ["No paused run"]
        return self._render(self.session.send(Command.STEP))

    def _continue(self, args, sender) -> List[str]:
        if not self.paused:
            return ["No paused run"]
        return self._render(self.session.send(Command.CONTINUE))

    def _stop(self, args, sender) -> List[str]:
        if self.paused:
            return ["Run stopped"] + self._render(self.session.stop())
        self.exit_requested = True
        return ["Exiting interactive mode. Goodbye!"]

    def _render(self, state) -> List[str]:
        if isinstance(state, PausedAt):
            return format_pause(state)
        self.last_result = state
        self.session = None
        return format_result(state)

    # --------------------------------------------------
    # Recorder
    # --------------------------------------------------
    def _record(self, args, sender) -> List[str]:
        if not args:
            return ["Usage: !record <test_name> [player_name]", "Example: !record fence/fence_connect"]
        if self.paused:
            return ["A run is paused: s / c / !stop first"]
        player = args[1] if len(args) > 1 else sender
        self.recorder.start(args[0], player=player)
        self.pos1 = None
        return [
            f"Recording '{args[0]}' (time frozen)",
            "Build, then !tick to advance; !assert x y z, !assert_changes, !save or !cancel",
        ]

    def _tick(self, args, sender) -> List[str]:
        tick = self.recorder.advance()
        return [f"Stepped one tick, now recording tick {tick}"]

    def _pos1(self, args, sender) -> List[str]:
        self.pos1 = parse_position(args)
        return [f"pos1 set to {self.pos1.as_list()}; next !assert covers the box"]

    def _assert(self, args, sender) -> List[str]:
        pos = parse_position(args)
        if self.pos1 is not None:
            checks = self.recorder.assert_region(Region.from_corners(self.pos1, pos))
            self.pos1 = None
        else:
            checks = [self.recorder.assert_block(pos)]
        return [f"Added assert at {c.pos.as_list()} = {c.expected}" for c in checks]

    def _assert_changes(self, args, sender) -> List[str]:
        count = self.recorder.assert_changes()
        return [f"Converted {count} changes to asserts"]

    def _save(self, args, sender) -> List[str]:
        saved = self.recorder.save()
        return [f"Saved '{saved.test.name}' to {saved.path}", f"To execute: !run {saved.test.name}"]

    def _cancel(self, args, sender) -> List[str]:
        self.recorder.cancel()
        return ["Recording cancelled"]
