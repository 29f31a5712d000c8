"""CLI: gscore-bridge config|blacklist|group"""

import json

import click
from rich.console import Console
from rich.table import Table

from gscore_bridge.config import CONNECTION_KEYS
from gscore_bridge.errors import ConfigError

console = Console()


def _load_config(ctx):
    from gscore_bridge.cli.main import _load_config
    return _load_config(ctx)


def _save_config(ctx, config):
    from gscore_bridge.cli.main import _save_config
    _save_config(ctx, config)


def _parse_value(raw: str):
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


@click.group("config")
def config_group():
    """Config file commands."""


@config_group.command("show")
@click.option("--json-output", "--json", is_flag=True)
@click.pass_context
def config_show(ctx, json_output):
    """Show the current configuration."""
    config = _load_config(ctx)
    data = config.model_dump()
    if json_output:
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return
    table = Table(title="Configuration")
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in data.items():
        if key == "gscore_token" or key == "onebot_token":
            value = "***" if value else ""
        table.add_row(key, json.dumps(value, ensure_ascii=False) if not isinstance(value, str) else value)
    console.print(table)


@config_group.command("set", context_settings={"ignore_unknown_options": True})
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx, key, value):
    """Set KEY to VALUE (parsed as JSON when possible)."""
    config = _load_config(ctx)
    try:
        updated = config.updated(key, _parse_value(value))
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    _save_config(ctx, updated)
    console.print(f"[green]{key} updated.[/green]")
    if key in CONNECTION_KEYS:
        console.print("[dim]Restart `gscore-bridge run` to reconnect with the new settings.[/dim]")


@click.group()
def blacklist():
    """Users whose messages are never forwarded."""


@blacklist.command("list")
@click.pass_context
def blacklist_list(ctx):
    """List blacklisted users."""
    config = _load_config(ctx)
    if not config.blacklist:
        console.print("[yellow]Blacklist is empty.[/yellow]")
        return
    for user_id in config.blacklist:
        click.echo(user_id)


@blacklist.command("add")
@click.argument("user_ids", nargs=-1, required=True)
@click.pass_context
def blacklist_add(ctx, user_ids):
    """Blacklist one or more users."""
    config = _load_config(ctx)
    for user_id in user_ids:
        if config.add_to_blacklist(user_id):
            console.print(f"[green]Blacklisted {user_id}[/green]")
        else:
            console.print(f"[yellow]{user_id} is already blacklisted[/yellow]")
    _save_config(ctx, config)


@blacklist.command("remove")
@click.argument("user_ids", nargs=-1, required=True)
@click.pass_context
def blacklist_remove(ctx, user_ids):
    """Remove users from the blacklist."""
    config = _load_config(ctx)
    for user_id in user_ids:
        if config.remove_from_blacklist(user_id):
            console.print(f"[green]Removed {user_id}[/green]")
        else:
            console.print(f"[yellow]{user_id} is not blacklisted[/yellow]")
    _save_config(ctx, config)


@click.group()
def group():
    """Per-group forwarding switches."""


@group.command("enable")
@click.argument("group_id")
@click.pass_context
def group_enable(ctx, group_id):
    """Forward messages from GROUP_ID (the default)."""
    config = _load_config(ctx)
    config.set_group_enabled(group_id, True)
    _save_config(ctx, config)
    console.print(f"[green]Group {group_id} enabled.[/green]")


@group.command("disable")
@click.argument("group_id")
@click.pass_context
def group_disable(ctx, group_id):
    """Stop forwarding messages from GROUP_ID."""
    config = _load_config(ctx)
    config.set_group_enabled(group_id, False)
    _save_config(ctx, config)
    console.print(f"[green]Group {group_id} disabled.[/green]")
