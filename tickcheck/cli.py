#!filepath: tickcheck/cli.py
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich import print
from rich.console import Console
from rich.table import Table

from tickcheck import __version__, init_logging, logs
from tickcheck.config.app_config import AppConfig
from tickcheck.engine.executor import PausedAt
from tickcheck.engine.results import Outcome, RunResult
from tickcheck.engine.runner import Command, RunSession
from tickcheck.interactive.commands import CommandDispatcher, format_pause
from tickcheck.loader.loader import TestIndex, TestLoader
from tickcheck.observability.instrumentation import Instrumentation
from tickcheck.recorder.state import Recorder
from tickcheck.utils.errors import TickcheckError, UserInputError
from tickcheck.utils.filesystem import FileSystem
from tickcheck.world.factory import connect_client

app = typer.Typer(help="tickcheck: tick-synchronized tests for a live simulated world")
console = Console()

OUTCOME_STYLE = {
    Outcome.PASSED: "green",
    Outcome.FAILED: "red",
    Outcome.ERRORED: "magenta",
    Outcome.SKIPPED: "yellow",
}


def _load_config(config: Optional[Path], server: Optional[str]) -> AppConfig:
    cfg = AppConfig.load(str(config) if config else None)
    if server:
        cfg.world.address = server
    init_logging(cfg.log)
    return cfg


def _print_result(result: RunResult) -> None:
    table = Table(title="tickcheck results")
    table.add_column("test")
    table.add_column("outcome")
    table.add_column("ticks", justify="right")
    table.add_column("elapsed", justify="right")
    table.add_column("detail")

    for r in result.per_test:
        style = OUTCOME_STYLE[r.outcome]
        if r.failure:
            f = r.failure
            detail = f"tick {f.tick} {f.position.as_list()}: expected {f.expected}, got {f.actual}"
        else:
            detail = r.reason or ""
        table.add_row(
            r.name,
            f"[{style}]{r.outcome.value}[/{style}]",
            str(r.tick_count),
            f"{r.elapsed:.3f}s",
            detail,
        )
    console.print(table)

    s = result.summary
    colour = "green" if result.ok else "red"
    print(
        f"[{colour}]{s['passed']}/{s['total']} passed, {s['failed']} failed, "
        f"{s['errored']} errored, {s['skipped']} skipped in {s['duration']:.2f}s[/{colour}]"
        + (" [red](aborted)[/red]" if result.aborted else "")
    )


def _prompt_command() -> Command:
    while True:
        answer = typer.prompt("[s]tep / [c]ontinue / stop", default="c")
        try:
            return Command.parse(answer)
        except ValueError:
            print(f"[yellow]unknown answer '{answer}'[/yellow]")


def _drive(session: RunSession) -> Tuple[RunResult, bool]:
    """推进到结束；第二项 = 是否被中断"""
    try:
        state = session.start()
        while isinstance(state, PausedAt):
            for line in format_pause(state):
                print(f"[cyan]{line}[/cyan]")
            state = session.send(_prompt_command())
        return state, False
    except (KeyboardInterrupt, typer.Abort):
        print("[yellow]interrupted, stopping run[/yellow]")
        return session.stop(), True


@app.command()
def version():
    print(f"v{__version__}")


@app.command()
def run(
    path: Optional[Path] = typer.Argument(None, help="test file or directory (default: run.tests_dir)"),
    server: Optional[str] = typer.Option(None, "--server", "-s", help="world address"),
    recursive: bool = typer.Option(False, "--recursive", "-r"),
    tag: List[str] = typer.Option([], "--tag", "-t", help="only tests with any of these tags"),
    action_delay: Optional[float] = typer.Option(None, "--action-delay", help="seconds between actions"),
    fail_fast: bool = typer.Option(False, "--fail-fast"),
    break_after_setup: bool = typer.Option(False, "--break-after-setup"),
    step: bool = typer.Option(False, "--step", help="pause before every tick"),
    output: Optional[Path] = typer.Option(None, "--json", help="write RunResult JSON here"),
    config: Optional[Path] = typer.Option(None, "--config", "-c"),
):
    """
    运行测试：暂停时交互式 step / continue；有失败时退出码为 1

    Ctrl-C：当前 chunk 恢复世界时间并清场，打印部分结果
    """
    try:
        cfg = _load_config(config, server)
        run_cfg = cfg.run.model_copy(update={
            "recursive": recursive or cfg.run.recursive,
            "tags": tag or cfg.run.tags,
            "fail_fast": fail_fast or cfg.run.fail_fast,
            "break_after_setup": break_after_setup or cfg.run.break_after_setup,
            "action_delay": cfg.run.action_delay if action_delay is None else action_delay,
        })

        report = TestLoader(path or Path(run_cfg.tests_dir), run_cfg.recursive).load_all()
        world = connect_client(cfg.world)
        inst = Instrumentation()

        print(
            f"[green]Running {len(report.tests)} tests with {type(world).__name__} "
            f"({cfg.world.address})[/green]"
        )
        session = RunSession(
            report.tests,
            world,
            run_cfg=run_cfg,
            packing_cfg=cfg.packing,
            invalid=report.errors,
            step_mode=step,
            inst=inst,
        )

        state, interrupted = _drive(session)
    except UserInputError as e:
        print(f"[red]{e}[/red]")
        raise typer.Exit(2)
    except TickcheckError as e:
        logs.error(f"[CLI] run failed: {e}")
        print(f"[red]{e}[/red]")
        raise typer.Exit(2)

    _print_result(state)
    if output:
        FileSystem.safe_write_text(output, json.dumps(state.to_dict(), indent=2) + "\n")
        print(f"[blue]result written to {output}[/blue]")

    if interrupted:
        raise typer.Exit(130)
    if not state.ok:
        raise typer.Exit(1)


@app.command("list")
def list_tests(
    path: Path = typer.Argument(..., help="test file or directory"),
    recursive: bool = typer.Option(False, "--recursive", "-r"),
    tag: List[str] = typer.Option([], "--tag", "-t"),
):
    """
    列出可加载的测试（以及无效定义）
    """
    try:
        report = TestLoader(path, recursive).load_all()
    except UserInputError as e:
        print(f"[red]{e}[/red]")
        raise typer.Exit(2)

    table = Table(title=f"tests in {path}")
    table.add_column("name")
    table.add_column("tags")
    table.add_column("ticks", justify="right")
    table.add_column("cleanup")
    for t in report.tests:
        if not t.matches_tags(tag):
            continue
        table.add_row(t.name, ",".join(sorted(t.tags)), str(t.tick_count), str(t.cleanup.as_lists()))
    console.print(table)

    for e in report.errors:
        print(f"[yellow]invalid: {e}[/yellow]")


@app.command()
def interactive(
    tests_dir: Optional[Path] = typer.Option(None, "--tests-dir"),
    server: Optional[str] = typer.Option(None, "--server", "-s"),
    config: Optional[Path] = typer.Option(None, "--config", "-c"),
):
    """
    聊天式命令循环（stdin）：!help 查看命令，!stop 退出
    """
    cfg = _load_config(config, server)
    root = tests_dir or Path(cfg.run.tests_dir)
    FileSystem.ensure_dir(root)

    index = TestIndex(TestLoader(root, cfg.run.recursive)).reload()
    world = connect_client(cfg.world)
    recorder = Recorder(world, cfg.recorder.model_copy(update={"tests_dir": str(root)}), index)
    dispatcher = CommandDispatcher(index, world, recorder, run_cfg=cfg.run, packing_cfg=cfg.packing)

    print("[green]tickcheck interactive mode. Type !help for commands.[/green]")
    while not dispatcher.exit_requested:
        try:
            line = input("> ")
        except EOFError:
            break
        for reply in dispatcher.dispatch(line):
            print(reply)

    world.close()


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(5000, "--port"),
    config: Optional[Path] = typer.Option(None, "--config", "-c"),
):
    """
    启动 HTTP 控制通道（Flask）
    """
    from tickcheck.api.app import create_app

    cfg = _load_config(config, None)
    print(f"[blue]Serving control channel on http://{host}:{port}[/blue]")
    create_app(cfg).run(host=host, port=port)


if __name__ == "__main__":
    app()

# python -m tickcheck.cli run tests_world
