# src/assisted/cli/app.py
from __future__ import annotations

import json
import signal
import threading
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path
from typing import Iterator, List, Optional

import typer

from assisted.client.assisted import AssistedInstallerClient
from assisted.config.loader import load_config
from assisted.config.models import AssistedConfig
from assisted.errors import InstallationError, StatusSourceError
from assisted.install.models import ReconciliationRequest
from assisted.install.reconciler import InstallationReconciler
from assisted.install.status import FAILURE_STATUSES
from assisted.logging.log import RunLog, init_logging
from assisted.observers.console import ConsoleObserver
from assisted.observers.jsonfile import JsonFileObserver
from assisted.observers.logger import LoggerObserver
from assisted.state.store import StateStore


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Assisted Installer cluster installation CLI")


def build_source(cfg: AssistedConfig) -> AssistedInstallerClient:
    return AssistedInstallerClient.from_config(cfg.api)


def _split(values: Optional[str]) -> List[str]:
    return [v.strip() for v in (values or "").split(",") if v.strip()]


def _observers(run_log: RunLog, events: bool) -> list:
    observers = [
        LoggerObserver(run_log.logger),
        JsonFileObserver(run_log.path.with_suffix(".jsonl")),
    ]
    if events:
        observers.append(ConsoleObserver())
    return observers


@contextmanager
def _cancel_on_interrupt() -> Iterator[threading.Event]:
    """
    Ctrl-C cancels the running wait instead of killing the process, so the
    attempt still records the last known status.
    """
    cancel = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield cancel
        return

    def _handler(signum, frame):
        typer.echo("\nInterrupted: cancelling, the current status will be recorded...", err=True)
        cancel.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, previous)


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def install(
    cluster_id: str = typer.Argument(..., help="ID of the cluster to install"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="assisted YAML config"),
    expected_hosts: Optional[int] = typer.Option(
        None, "--expected-hosts", help="Hosts that must be discovered before installing"
    ),
    wait_for_hosts: Optional[bool] = typer.Option(
        None, "--wait-for-hosts/--no-wait-for-hosts", help="Wait for the cluster to be ready first"
    ),
    timeout_minutes: Optional[float] = typer.Option(None, "--timeout-minutes"),
    state_dir: Optional[Path] = typer.Option(None, "--state-dir"),
    events: bool = typer.Option(False, "--events", help="Print lifecycle events"),
    json_output: bool = typer.Option(False, "--json", help="Print the outcome as JSON"),
    debug: bool = typer.Option(False, "--debug"),
):
    """
    Wait for hosts, trigger the installation once and wait until the cluster
    is installed. Safe to re-run against a cluster that is already
    installing or installed.
    """
    cfg = load_config(config)
    defaults = cfg.installation

    try:
        request = ReconciliationRequest(
            cluster_id=cluster_id,
            expected_host_count=expected_hosts if expected_hosts is not None else defaults.expected_host_count,
            wait_for_hosts=wait_for_hosts if wait_for_hosts is not None else defaults.wait_for_hosts,
            timeout=timedelta(minutes=timeout_minutes if timeout_minutes is not None else defaults.timeout_minutes),
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc))

    run_log = init_logging(cluster_id=cluster_id, base_dir=cfg.log_dir, verbose=debug)

    reconciler = InstallationReconciler(
        build_source(cfg),
        observers=_observers(run_log, events),
        state_store=StateStore(state_dir or cfg.state_dir),
        env=cfg.api.env,
        run_id=run_log.run_id,
    )

    with _cancel_on_interrupt() as cancel:
        outcome = reconciler.reconcile(request, cancel_event=cancel)

    if json_output:
        typer.echo(json.dumps({**outcome.to_dict(), "log_file": str(run_log.path)}, indent=2))
    else:
        typer.echo(outcome.summary())
        typer.echo(f"log_file={run_log.path}")
    if not outcome.succeeded:
        raise typer.Exit(code=1)


@app.command()
def wait(
    cluster_id: str = typer.Argument(..., help="ID of the cluster to watch"),
    status: str = typer.Option(..., "--status", help="Comma separated target statuses, e.g. ready"),
    fail_on: Optional[str] = typer.Option(
        None, "--fail-on", help="Comma separated failure statuses (default: error,cancelled)"
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c"),
    timeout_minutes: float = typer.Option(10.0, "--timeout-minutes"),
    debug: bool = typer.Option(False, "--debug"),
):
    """Block until the cluster reaches one of the given statuses. Triggers nothing."""
    targets = _split(status)
    if not targets:
        raise typer.BadParameter("at least one --status is required")
    failures = _split(fail_on) if fail_on else [s.value for s in FAILURE_STATUSES]

    cfg = load_config(config)
    run_log = init_logging(cluster_id=cluster_id, base_dir=cfg.log_dir, verbose=debug)
    reconciler = InstallationReconciler(
        build_source(cfg),
        observers=_observers(run_log, events=False),
        env=cfg.api.env,
        run_id=run_log.run_id,
    )

    try:
        with _cancel_on_interrupt() as cancel:
            snap = reconciler.wait_for_status(
                cluster_id,
                targets,
                failures,
                timedelta(minutes=timeout_minutes),
                cancel_event=cancel,
            )
    except InstallationError as exc:
        typer.echo(f"FAILED {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"OK cluster={cluster_id} status={snap.status} hosts={snap.host_count}")


@app.command()
def status(
    cluster_id: str = typer.Argument(...),
    config: Optional[Path] = typer.Option(None, "--config", "-c"),
    state_dir: Optional[Path] = typer.Option(None, "--state-dir"),
):
    """Fetch the current status and refresh the recorded state."""
    cfg = load_config(config)
    store = StateStore(state_dir or cfg.state_dir)
    try:
        record = store.refresh(build_source(cfg), cluster_id)
    except StatusSourceError as exc:
        typer.echo(f"Could not read cluster {cluster_id}: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"cluster={record.cluster_id} status={record.status} hosts={record.host_count} info={record.status_info!r}")


@app.command()
def show(
    cluster_id: str = typer.Argument(...),
    config: Optional[Path] = typer.Option(None, "--config", "-c"),
    state_dir: Optional[Path] = typer.Option(None, "--state-dir"),
):
    """Print the recorded installation state."""
    cfg = load_config(config)
    record = StateStore(state_dir or cfg.state_dir).load(cluster_id)
    if record is None:
        typer.echo(f"No recorded state for cluster {cluster_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(record.model_dump(), indent=2))


if __name__ == "__main__":
    app()
