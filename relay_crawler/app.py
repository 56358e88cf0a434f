"""Typer CLI entrypoint for relay-crawler."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from .config import (
    ConfigRepository,
    GlobalConfig,
    JobConfig,
    PipelineSettings,
    SinkFormat,
    SinkSettings,
    TransformKind,
)
from .logging_conf import available_job_logs, configure_logging, job_log_path, job_logger, tail_log
from .orchestrator import PipelineSummary, build_pipeline
from .ui import ProgressReporter

app = typer.Typer(
    help="relay-crawler: bounded fetch → transform → persist pipeline",
    no_args_is_help=True,
    rich_markup_mode=None,
)
job_app = typer.Typer(name="job", help="Manage saved jobs", no_args_is_help=True, rich_markup_mode=None)
log_app = typer.Typer(name="log", help="Inspect log files", no_args_is_help=True, rich_markup_mode=None)
config_app = typer.Typer(name="config", help="Global configuration", no_args_is_help=True, rich_markup_mode=None)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    global_config: GlobalConfig
    verbose: bool = False


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    global_config = repository.load_global_config()
    configure_logging(verbose=verbose)
    return AppState(repository=repository, global_config=global_config, verbose=verbose)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


def _read_seeds(urls: Optional[List[str]], seeds_file: Optional[Path]) -> list[str]:
    seeds = list(urls or [])
    if seeds_file is not None:
        if not seeds_file.exists():
            raise typer.BadParameter(f"Seeds file not found: {seeds_file}", param_hint="--seeds-file")
        for line in seeds_file.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                seeds.append(line)
    return seeds


def _format_errors(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )


def _render_summary(name: str, summary: PipelineSummary, output: object | None) -> Table:
    table = Table(title=f"{name} · run summary", box=box.SIMPLE_HEAD)
    table.add_column("metric", style="cyan")
    table.add_column("count", style="green", justify="right")
    table.add_row("seeded", str(summary.seeded))
    table.add_row("fetched", str(summary.fetched))
    table.add_row("persisted", str(summary.persisted))
    table.add_row("fetch failed", str(summary.fetch_failed))
    table.add_row("transform failed", str(summary.transform_failed))
    table.add_row("persist failed", str(summary.persist_failed))
    table.add_row("elapsed", f"{summary.elapsed:.2f}s")
    if output is not None:
        table.caption = f"output: {output}"
    return table


def _execute_job(state: AppState, job: JobConfig, quiet: bool) -> PipelineSummary:
    logger = job_logger(job.name, verbose=state.verbose)
    progress_flag = state.global_config.enable_progress_bar and _progress_default_enabled() and not quiet
    progress = ProgressReporter(enabled=progress_flag, label=job.name)
    outputs_dir = state.repository.locator.resolve_outputs(state.global_config)
    run_tag = datetime.utcnow().strftime("%Y%m%d-%H%M%S")
    pipeline = build_pipeline(
        state.global_config, job, outputs_dir, run_tag=run_tag, logger=logger, progress=progress
    )
    try:
        summary = pipeline.run(job.seeds, job.headers or None)
    finally:
        pipeline.limiter.close()
        pipeline.sink.close()
    output = getattr(pipeline.sink, "path", None)
    if quiet:
        console.print(
            f"done: persisted {summary.persisted}/{summary.seeded}, failed {summary.failed}"
        )
    else:
        console.print(_render_summary(job.name, summary, output))
    return summary


app.add_typer(job_app, name="job")
app.add_typer(log_app, name="log")
app.add_typer(config_app, name="config")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("run", help="Run an ad-hoc batch of URLs through the pipeline.")
def run(
    ctx: typer.Context,
    urls: Optional[List[str]] = typer.Argument(None, help="Seed URLs."),
    seeds_file: Optional[Path] = typer.Option(None, "--seeds-file", help="File with one URL per line."),
    name: str = typer.Option("adhoc", "--name", help="Name used for output files and logs."),
    transform: TransformKind = typer.Option(TransformKind.HTML, "--transform"),
    fmt: SinkFormat = typer.Option(SinkFormat.JSONL, "--format"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", help="Maximum simultaneous fetches."),
    delay: Optional[str] = typer.Option(None, "--delay", help="Post-fetch delay, e.g. 500ms or 1.5."),
    capacity: Optional[int] = typer.Option(None, "--capacity", help="Queue capacity."),
    fetch_workers: Optional[int] = typer.Option(None, "--fetch-workers"),
    persist_workers: Optional[int] = typer.Option(None, "--persist-workers"),
    user_agent: Optional[str] = typer.Option(None, "--user-agent", help="User-Agent for requests that set none."),
    quiet: bool = typer.Option(False, "--quiet", help="Print a one-line result only."),
) -> None:
    state = _get_state(ctx)
    seeds = _read_seeds(urls, seeds_file)
    overrides = {
        "concurrency": concurrency,
        "request_delay": delay,
        "queue_capacity": capacity,
        "fetch_workers": fetch_workers,
        "persist_workers": persist_workers,
    }
    try:
        pipeline = PipelineSettings.model_validate(
            {
                **state.global_config.pipeline.model_dump(),
                **{key: value for key, value in overrides.items() if value is not None},
            }
        )
        job = JobConfig(
            name=name,
            seeds=seeds,
            transform=transform,
            sink=SinkSettings(format=fmt, output_dir=output_dir),
            pipeline=pipeline,
        )
    except ValidationError as exc:
        console.print(f"Invalid options: {_format_errors(exc)}", style="red")
        raise typer.Exit(code=2)
    if user_agent:
        fetcher = state.global_config.fetcher.model_copy(update={"user_agent": user_agent})
        state.global_config = state.global_config.model_copy(update={"fetcher": fetcher})
    _execute_job(state, job, quiet)


@job_app.command("list", help="List saved jobs.")
def job_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    jobs = state.repository.list_jobs()
    if not jobs:
        console.print("No jobs yet; create one with `relay-crawler job add`.", style="yellow")
        raise typer.Exit(code=0)
    table = Table(title=f"Jobs · {len(jobs)}", box=box.SIMPLE_HEAD)
    table.add_column("name", style="cyan", no_wrap=True)
    table.add_column("seeds", justify="right")
    table.add_column("transform", style="magenta")
    table.add_column("output", style="green")
    for job in jobs:
        table.add_row(job.name, str(len(job.seeds)), job.transform.value, job.sink.format.value)
    console.print(table)


@job_app.command("add", help="Create a job from seed URLs.")
def job_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Job name."),
    seed: Optional[List[str]] = typer.Option(None, "--seed", help="Seed URL (repeatable)."),
    seeds_file: Optional[Path] = typer.Option(None, "--seeds-file"),
    transform: TransformKind = typer.Option(TransformKind.HTML, "--transform"),
    fmt: SinkFormat = typer.Option(SinkFormat.JSONL, "--format"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing job."),
) -> None:
    state = _get_state(ctx)
    try:
        job = JobConfig(
            name=name,
            seeds=_read_seeds(seed, seeds_file),
            transform=transform,
            sink=SinkSettings(format=fmt, output_dir=output_dir),
        )
    except ValidationError as exc:
        console.print(f"Invalid job: {_format_errors(exc)}", style="red")
        raise typer.Exit(code=2)
    try:
        path = state.repository.save_job(job, overwrite=force)
    except FileExistsError as exc:
        hint = "" if force else "; pass --force to overwrite"
        console.print(f"{exc}{hint}.", style="red")
        raise typer.Exit(code=1)
    except ValueError as exc:
        console.print(f"Invalid job: {exc}", style="red")
        raise typer.Exit(code=2)
    console.print(f"Job `{job.name}` created at {path}.", style="green")


@job_app.command("show", help="Print a job definition.")
def job_show(ctx: typer.Context, name: str = typer.Argument(...)) -> None:
    state = _get_state(ctx)
    try:
        job = state.repository.load_job(name)
    except FileNotFoundError:
        console.print(f"Job `{name}` not found.", style="red")
        raise typer.Exit(code=1)
    payload = json.loads(job.model_dump_json(exclude_none=True))
    console.print(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False))


@job_app.command("run", help="Run a saved job now.")
def job_run(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    quiet: bool = typer.Option(False, "--quiet", help="Print a one-line result only."),
) -> None:
    state = _get_state(ctx)
    try:
        job = state.repository.load_job(name)
    except FileNotFoundError:
        console.print(f"Job `{name}` not found.", style="red")
        raise typer.Exit(code=1)
    _execute_job(state, job, quiet)


@job_app.command("remove", help="Delete a saved job.")
def job_remove(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt."),
) -> None:
    state = _get_state(ctx)
    if not yes and not typer.confirm(f"Delete job `{name}`?", default=False):
        console.print("Cancelled.", style="yellow")
        raise typer.Exit(code=0)
    if not state.repository.delete_job(name):
        console.print(f"Job `{name}` not found.", style="red")
        raise typer.Exit(code=1)
    console.print(f"Job `{name}` removed.", style="green")


@config_app.command("show", help="Print the effective global configuration.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    console.print(f"# {state.repository.locator.global_config_path()}", style="dim")
    payload = state.global_config.model_dump(mode="json")
    console.print(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False))


@log_app.command("list", help="List job log files.")
def log_list() -> None:
    logs = list(available_job_logs())
    if not logs:
        console.print("No job logs yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("file", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="Show the last lines of a log.")
def log_show(
    ctx: typer.Context,
    job: Optional[str] = typer.Option(None, "--job", help="Job name (global log when omitted)."),
    tail: int = typer.Option(100, "--tail", help="Number of lines to show."),
) -> None:
    state = _get_state(ctx)
    path = job_log_path(job) if job else state.repository.locator.logs_dir / "crawler.log"
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log entries yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} lines", style="cyan")
    console.print("".join(lines), markup=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
