"""
gscore-bridge CLI.

Commands:
  gscore-bridge run                  Run the bridge until interrupted
  gscore-bridge url                  Show the derived GsCore WebSocket URL
  gscore-bridge config show|set      Inspect or change the config file
  gscore-bridge blacklist <cmd>      Manage users whose messages are not forwarded
  gscore-bridge group <cmd>          Enable or disable forwarding per group
"""

import asyncio
import logging
from typing import Any, Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install gscore-bridge[cli]")

from gscore_bridge.client import GScoreBridge
from gscore_bridge.config import CONFIG_ENV_VAR, BridgeConfig, load_config, save_config
from gscore_bridge.transport.envelope import build_ws_url
from gscore_bridge.transport.events import listen_events

console = Console()
logger = logging.getLogger("gscore_bridge.cli")

MIN_RETRY_DELAY_S = 1.0


def _load_config(ctx: click.Context) -> BridgeConfig:
    return load_config(ctx.obj.get("config_file"))


def _save_config(ctx: click.Context, config: BridgeConfig) -> None:
    save_config(config, ctx.obj.get("config_file"))


def _run(coro):
    return asyncio.run(coro)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


@click.group()
@click.version_option("0.1.0")
@click.option("--config", "config_file", envvar=CONFIG_ENV_VAR, default=None,
              type=click.Path(dir_okay=False), help="Path to config.json")
@click.option("--log-level", default="info",
              type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False))
@click.pass_context
def main(ctx: click.Context, config_file: Optional[str], log_level: str):
    """GScore bridge: connect a OneBot bot to GsCore."""
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    _setup_logging(log_level)


async def _serve(config: BridgeConfig) -> dict[str, Any]:
    bridge = GScoreBridge(config)
    await bridge.start()
    pending: set[asyncio.Task[Any]] = set()
    retry_delay = max(config.reconnect_interval / 1000, MIN_RETRY_DELAY_S)
    try:
        while True:
            try:
                async for event in listen_events(config.onebot_ws_url, config.onebot_token):
                    task = asyncio.create_task(bridge.handle_event(event))
                    pending.add(task)
                    task.add_done_callback(pending.discard)
                logger.warning("OneBot event stream closed")
            except Exception as e:
                logger.error(f"OneBot event stream failed: {e}")
            await asyncio.sleep(retry_delay)
    finally:
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        status = bridge.status()
        await bridge.stop()
        console.print(f"[dim]Uptime {status['uptime']}, GScore {status['connection']}[/dim]")


@main.command("run")
@click.pass_context
def run_cmd(ctx: click.Context):
    """Run the bridge until interrupted."""
    config = _load_config(ctx)
    console.print(f"[cyan]GsCore:[/cyan] {build_ws_url(config.gscore_url, config.gscore_token)}")
    console.print(f"[cyan]OneBot:[/cyan] {config.onebot_ws_url} (actions via {config.onebot_http_url})")
    try:
        _run(_serve(config))
    except KeyboardInterrupt:
        console.print("[green]Stopped.[/green]")


@main.command("url")
@click.pass_context
def url_cmd(ctx: click.Context):
    """Show the GsCore WebSocket URL the bridge connects to."""
    config = _load_config(ctx)
    click.echo(build_ws_url(config.gscore_url, config.gscore_token))


# Register subcommands from separate modules
from gscore_bridge.cli.config import blacklist, config_group, group

main.add_command(config_group)
main.add_command(blacklist)
main.add_command(group)


if __name__ == "__main__":
    main()
