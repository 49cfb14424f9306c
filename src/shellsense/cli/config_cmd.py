"""Config CLI commands — show and edit shellsense.toml."""

from __future__ import annotations

import click

from shellsense.cli.main import ShellSenseContext, pass_context
from shellsense.core.exceptions import ConfigError


@click.group()
def config() -> None:
    """Show or change settings."""


@config.command("show")
@pass_context
def config_show(ctx: ShellSenseContext) -> None:
    """Print the effective configuration."""
    from shellsense.core.config import get_config_path, load_config

    try:
        data = load_config()
    except ConfigError as e:
        ctx.fail(e)
        return
    if ctx.json_mode:
        ctx.formatter.json(data)
        return
    rows = []
    for section, values in data.items():
        for key, value in values.items():
            rows.append([f"{section}.{key}", str(value)])
    ctx.formatter.table(
        title=str(get_config_path()),
        columns=[("Setting", "bold"), ("Value", "green")],
        rows=rows,
    )


@config.command("set")
@click.argument("key")
@click.argument("value")
@pass_context
def config_set(ctx: ShellSenseContext, key: str, value: str) -> None:
    """Set KEY (section.name) to VALUE; lists are comma separated."""
    from shellsense.core.config import set_config_value

    try:
        data = set_config_value(key, value)
    except ConfigError as e:
        ctx.fail(e)
        return
    section, _, name = key.partition(".")
    if ctx.json_mode:
        ctx.formatter.json({key: data[section][name]})
        return
    ctx.formatter.success(f"{key} = {data[section][name]}")
