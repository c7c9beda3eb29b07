"""Main CLI for attempt-sync."""

import asyncio
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.table import Table

from ..core.config import DEFAULT_CONFIG_PATH, LOG_LEVELS, SyncConfig, load_config, load_profile_catalog
from ..core.controller import AttemptController, build_profile_catalog
from ..core.models import TaskAttempt
from ..errors import AttemptSyncError, ErrorTranslator, FollowUpValidationError
from ..integrations.task_server import ProcessFetcher, TaskServerClient
from ..utils.rich_logging import setup_rich_logging
from .watch import AttemptWatchView


console = Console()


def _print_error(error: Exception) -> None:
    translator = ErrorTranslator()
    console.print(translator.format_for_cli(translator.translate(error)))


async def _open_controller(
    config: SyncConfig,
    fetcher: ProcessFetcher,
    attempt_id: str,
    profile: Optional[str] = None,
) -> AttemptController:
    """Build a controller with the merged catalog and select ``attempt_id``."""
    catalog = await build_profile_catalog(fetcher, load_profile_catalog(config.profiles_path))
    controller = AttemptController.from_config(config, fetcher, catalog)

    if profile:
        attempt = TaskAttempt(id=attempt_id, profile=profile)
    else:
        attempt = await fetcher.get_attempt(attempt_id)
    await controller.select_attempt(attempt)
    return controller


@click.group()
@click.option("--config", "-c", "config_path", default=str(DEFAULT_CONFIG_PATH), help="Config file")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Override the configured log level",
)
@click.pass_context
def cli(ctx, config_path, log_level):
    """Attempt Sync - follow a task attempt's execution processes."""
    ctx.ensure_object(dict)
    try:
        config = load_config(Path(config_path))
    except (OSError, ValueError, yaml.YAMLError) as e:
        _print_error(e)
        ctx.exit(1)

    log_dir = Path(config.logging.log_dir) if config.logging.use_file else None
    setup_rich_logging(log_level or config.logging.level, log_dir=log_dir)
    ctx.obj["config"] = config


@cli.command()
@click.argument("attempt_id")
@click.option("--profile", "-p", help="Declared profile of the attempt (skips the lookup)")
@click.option("--once", is_flag=True, help="Print the current state and exit")
@click.pass_context
def watch(ctx, attempt_id, profile, once):
    """Watch an attempt until its processes stop running."""
    config = ctx.obj["config"]

    async def _watch():
        fetcher = TaskServerClient(config.server)
        controller = None
        try:
            controller = await _open_controller(config, fetcher, attempt_id, profile)
            view = AttemptWatchView(controller, console=console)
            if once:
                console.print(view.render())
            else:
                await view.run()
        finally:
            if controller is not None:
                await controller.close()
            await fetcher.aclose()

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("\n[yellow]Exited watch mode[/]")
    except AttemptSyncError as e:
        _print_error(e)
        ctx.exit(1)


@cli.command("follow-up")
@click.argument("attempt_id")
@click.argument("message")
@click.option("--variant", "-v", default=None, help="Variant to run (defaults to the attempt's last one)")
@click.option("--profile", "-p", default=None, help="Profile to run the follow-up with")
@click.pass_context
def follow_up(ctx, attempt_id, message, variant, profile):
    """Send a follow-up prompt to a finished attempt."""
    config = ctx.obj["config"]

    async def _send() -> bool:
        fetcher = TaskServerClient(config.server)
        controller = None
        try:
            controller = await _open_controller(config, fetcher, attempt_id, profile)
            submitter = controller.follow_up
            if not submitter.can_send:
                if controller.is_attempt_running:
                    console.print("[yellow]Attempt is still running; wait for it to finish[/]")
                else:
                    console.print("[yellow]Attempt has no execution processes to follow up on[/]")
                return False

            if profile:
                submitter.select_profile(profile)
            if variant is not None:
                try:
                    submitter.select_variant(variant)
                except FollowUpValidationError as e:
                    console.print(f"[red]{e.message}[/]")
                    return False

            sent = await submitter.submit(message)
            if not sent:
                console.print(f"[red]{submitter.error}[/]")
                return False

            await controller.wait_for_pending()
            chosen = submitter.selected_variant or "default"
            console.print(f"[green]✓ Follow-up sent[/] ({submitter.resolve_profile()} / {chosen})")
            return True
        finally:
            if controller is not None:
                await controller.close()
            await fetcher.aclose()

    try:
        sent = asyncio.run(_send())
    except AttemptSyncError as e:
        _print_error(e)
        ctx.exit(1)
    if not sent:
        ctx.exit(1)


@cli.command()
@click.pass_context
def profiles(ctx):
    """List agent profiles and their variants."""
    config = ctx.obj["config"]

    async def _load():
        fetcher = TaskServerClient(config.server)
        try:
            return await build_profile_catalog(fetcher, load_profile_catalog(config.profiles_path))
        finally:
            await fetcher.aclose()

    catalog = asyncio.run(_load())
    if catalog is None or not catalog.profiles:
        console.print("[yellow]No profiles found[/]")
        return

    table = Table()
    table.add_column("Profile", style="cyan")
    table.add_column("Variants")
    table.add_column("MCP config")

    for agent_profile in catalog.profiles:
        table.add_row(
            agent_profile.label,
            ", ".join(v.label for v in agent_profile.variants) or "-",
            agent_profile.mcp_config_path or "-",
        )

    console.print(table)


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", "-p", default=8090, help="Server port")
@click.pass_context
def serve(ctx, host, port):
    """Run the HTTP API."""
    from ..web.server import run_server

    config = ctx.obj["config"]
    console.print(f"[bold green]Serving attempt-sync on http://{host}:{port}[/]")
    run_server(config, host=host, port=port)


if __name__ == "__main__":
    cli()
