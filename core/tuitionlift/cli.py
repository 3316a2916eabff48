"""
Command-line interface for scholarship discovery.

    tuitionlift setup
    tuitionlift run --user-id 42 [--sensitive-band] [--scheduled]
    tuitionlift resume --user-id 42 --decision approve
    tuitionlift status --user-id 42
    tuitionlift prune --max-age-days 30
"""

import asyncio
import json
import sys
from pathlib import Path

import click

from tuitionlift.agent import DiscoveryAgent
from tuitionlift.config import DiscoverySettings
from tuitionlift.discovery import JsonProfileLoader
from tuitionlift.errors import TuitionLiftError
from tuitionlift.graph.executor import RunResult
from tuitionlift.graph.hitl import HITLProtocol, InterruptSignal
from tuitionlift.nodes import RECOVERY
from tuitionlift.observability import configure_logging
from tuitionlift.storage import FileCheckpointStore


def setup_logging(verbose: bool = False, debug: bool = False, log_format: str = "auto") -> None:
    """Configure logging for execution visibility."""
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = "WARNING"
    configure_logging(level=level, format=log_format)


def _build_agent(profiles_dir: str | None = None) -> DiscoveryAgent:
    settings = DiscoverySettings()
    loader = JsonProfileLoader(Path(profiles_dir)) if profiles_dir else None
    return DiscoveryAgent(settings=settings, profile_loader=loader)


def _emit(result: RunResult) -> int:
    """Print a run result as JSON and return the exit code."""
    if isinstance(result, InterruptSignal):
        output = {
            "status": "suspended",
            "interrupt": result.to_dict(),
            "prompt": HITLProtocol.format_for_display(result.request),
        }
        click.echo(json.dumps(output, indent=2))
        return 0

    failed = result.last_active_node == RECOVERY
    output = {
        "status": "failed" if failed else "completed",
        "state": result.model_dump(mode="json"),
    }
    click.echo(json.dumps(output, indent=2))
    return 1 if failed else 0


def _run_async(coro):
    try:
        return asyncio.run(coro)
    except TuitionLiftError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version="1.0.0")
@click.option("--verbose", "-v", is_flag=True, help="Show execution details")
@click.option("--debug", is_flag=True, help="Show debug logging")
@click.option(
    "--log-format",
    type=click.Choice(["auto", "human", "json"]),
    default="auto",
    help="Log output format",
)
def cli(verbose, debug, log_format):
    """TuitionLift - durable scholarship discovery runs."""
    setup_logging(verbose=verbose, debug=debug, log_format=log_format)


@cli.command()
def setup():
    """Create storage directories (safe to repeat)."""
    agent = _build_agent()
    _run_async(agent.setup())
    click.echo(f"Storage ready at {agent.settings.storage_path}")


@cli.command()
@click.option("--user-id", "-u", required=True, help="User to run discovery for")
@click.option("--sensitive-band", is_flag=True, help="Request SAI-band search (asks first)")
@click.option("--scheduled", is_flag=True, help="Re-prioritize only, skipping search")
@click.option("--profiles-dir", type=click.Path(file_okay=False), help="Profile JSON directory")
@click.option("--timeout", type=float, default=None, help="Wall-clock budget in seconds")
def run(user_id, sensitive_band, scheduled, profiles_dir, timeout):
    """Start or continue a discovery run."""
    agent = _build_agent(profiles_dir)
    result = _run_async(
        agent.start(
            user_id,
            sensitive_band_mode=sensitive_band,
            scheduled=scheduled,
            timeout_seconds=timeout,
        )
    )
    sys.exit(_emit(result))


@cli.command()
@click.option("--user-id", "-u", required=True, help="User whose run is suspended")
@click.option(
    "--decision",
    "-d",
    type=click.Choice(["approve", "decline"]),
    required=True,
    help="Answer to the SAI-band prompt",
)
@click.option("--timeout", type=float, default=None, help="Wall-clock budget in seconds")
def resume(user_id, decision, timeout):
    """Answer the outstanding confirmation and continue the run."""
    agent = _build_agent()
    result = _run_async(agent.answer(user_id, decision, timeout_seconds=timeout))
    sys.exit(_emit(result))


@cli.command()
@click.option("--user-id", "-u", required=True)
def status(user_id):
    """Show the last committed checkpoint (read-only)."""
    agent = _build_agent()
    checkpoint = _run_async(agent.get_state(user_id))
    if checkpoint is None:
        click.echo(json.dumps({"status": "none", "thread_id": f"user_{user_id}"}))
        return
    click.echo(checkpoint.model_dump_json(indent=2))


@cli.command()
@click.option("--max-age-days", type=int, default=30, show_default=True)
def prune(max_age_days):
    """Delete checkpoints of finished runs older than N days."""
    settings = DiscoverySettings()
    store = FileCheckpointStore(settings.checkpoint_dir)
    deleted = _run_async(store.prune(max_age_days=max_age_days))
    click.echo(f"Pruned {deleted} checkpoint(s)")


if __name__ == "__main__":
    cli()
