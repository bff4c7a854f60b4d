from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from .actions import discover_collaborators
from .composer import DEFAULT_TASK, PipelineComposer
from .config import load_config, runs_dir
from .core import Mode, TaskRegistry, expand
from .errors import ActionFailure, AssetflowError
from .logging import get_logger
from .runner import Runner


app = typer.Typer(add_completion=False, help="Front-end asset build pipeline")
log = get_logger("assetflow.cli")

ConfigOption = typer.Option(None, "--config", "-c", help="Path to YAML config")
RootOption = typer.Option(None, "--root", help="Project root (defaults to cwd)")


def build_registry() -> TaskRegistry:
    return TaskRegistry.from_definitions(PipelineComposer().compose_all())


def mode_for(name: str) -> Optional[Mode]:
    """Mode a task name belongs to, if any (`build:production`, `development`, ...)."""
    if name == DEFAULT_TASK:
        return Mode.DEVELOPMENT
    suffix = name.rsplit(":", 1)[-1]
    try:
        return Mode(suffix)
    except ValueError:
        return None


def _execute(name: str, config: Optional[str], root: Optional[str]) -> None:
    try:
        params = load_config(config, root=root)
        registry = build_registry()
        runner = Runner(
            discover_collaborators(),
            params=params,
            registry=registry,
            mode=mode_for(name),
            runs_dir=runs_dir(params),
        )
    except AssetflowError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    try:
        report = runner.run_task(name)
    except ActionFailure as e:
        typer.echo(f"Task {e.task_name} failed: {e.cause}", err=True)
        raise typer.Exit(code=1)
    except AssetflowError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down")
        runner.context.stop_event.set()
        return
    finally:
        runner.context.close()
    log.info("Done: %s (%d step(s))", report.target, len(report.completed))


@app.command()
def development(config: Optional[str] = ConfigOption, root: Optional[str] = RootOption):
    """Build in development mode, serve, and rebuild on change."""
    _execute(Mode.DEVELOPMENT.value, config, root)


@app.command()
def production(config: Optional[str] = ConfigOption, root: Optional[str] = RootOption):
    """Build in production mode and serve."""
    _execute(Mode.PRODUCTION.value, config, root)


@app.command("default")
def default_task(config: Optional[str] = ConfigOption, root: Optional[str] = RootOption):
    """Same as `development`."""
    _execute(DEFAULT_TASK, config, root)


@app.command("run")
def run_task(
    name: str = typer.Argument(..., help="Task name to run, e.g. build:production"),
    config: Optional[str] = ConfigOption,
    root: Optional[str] = RootOption,
):
    """Run any registered task and its dependencies."""
    _execute(name, config, root)


@app.command("list")
def list_tasks():
    """List registered tasks."""
    for name, description in build_registry().describe():
        typer.echo(f"{name:<26} {description}")


@app.command()
def plan(name: str = typer.Argument(..., help="Task name to expand")):
    """Print the steps `name` would run, in order, without running them."""
    try:
        steps = expand(build_registry(), name)
    except AssetflowError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    for i, defn in enumerate(steps, 1):
        typer.echo(f"{i:>2}. {defn.name}")


def main():  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
