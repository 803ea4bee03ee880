# src/valfleet/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from valfleet.config.loader import load_config
from valfleet.deploy.orchestrator import run_action
from valfleet.deploy.planner import plan_action
from valfleet.dispatch.actions import ALL_ACTIONS, USAGE, parse_action
from valfleet.errors import FleetError, UnknownActionError
from valfleet.utils.execution import ExecutionContext

from valfleet.logging.log import init_logging
from valfleet.observers.dispatcher import EventBus
from valfleet.observers.logger import LoggerObserver
from valfleet.observers.jsonfile import JsonFileObserver
from valfleet.observers.events import new_ctx


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Validator fleet provisioning CLI", add_completion=False)

RUNNERS = ("native", "xpanes")


@app.command()
def main(
    action: Optional[str] = typer.Argument(
        None, help=f"One of: {', '.join(ALL_ACTIONS)}", show_default=False,
    ),
    hosts: Optional[List[str]] = typer.Argument(
        None,
        help="Host addresses. Always pass them in the same order: the first is the bootstrap peer.",
        show_default=False,
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Fleet config YAML"),
    runner: Optional[str] = typer.Option(None, "--runner", help="native (default) or xpanes"),
    parallel: Optional[int] = typer.Option(None, "--parallel", min=1, help="Max hosts worked on at once. start and logs follow every host until Ctrl-C, so they need at least one slot per host"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Prepare local files, print commands, touch no host"),
    debug: bool = typer.Option(False, "--debug"),
) -> None:
    """
    Run ACTION against every host in parallel.
    """
    if not action:
        typer.echo(USAGE, err=True)
        raise typer.Exit(1)

    # Reject bad verbs before any file (even the log) is written.
    try:
        act = parse_action(action)
    except UnknownActionError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1)

    if runner is not None and runner not in RUNNERS:
        typer.echo(f"invalid runner {runner}; expected one of {', '.join(RUNNERS)}", err=True)
        raise typer.Exit(1)

    logger, run_id, log_path = init_logging(base_dir=log_dir, action=act.value, verbose=debug)
    bus = EventBus(observers=[
        LoggerObserver(logger),
        JsonFileObserver(log_path.parent / f"{run_id}.jsonl"),
    ])
    run_ctx = new_ctx(run_id=run_id, action=act.value)
    ctx = ExecutionContext(dry_run=dry_run, max_parallel=parallel)

    try:
        cfg = load_config(config)
        if runner is not None:
            cfg = cfg.model_copy(update={"runner": runner})

        plan = plan_action(act, hosts or [], cfg, bus=bus, run_ctx=run_ctx)
        report = run_action(plan, cfg, ctx=ctx, bus=bus, run_ctx=run_ctx)
        report.raise_for_failures()
    except FleetError as e:
        logger.error(str(e))
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
