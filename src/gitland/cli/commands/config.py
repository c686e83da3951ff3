from typing import NoReturn

import click

from gitland.core.config import (
    CONFIG_KEYS,
    config_path,
    get_config_value,
    save_config,
    set_config_value,
)
from gitland.core.context import LandContext
from gitland.core.errors import LandError


def _fail(message: str) -> NoReturn:
    click.echo(click.style("Error: ", fg="red") + message, err=True)
    raise SystemExit(1)


@click.group("config")
def config_group() -> None:
    """Manage gitland configuration."""


@config_group.command("list")
@click.pass_obj
def config_list(ctx: LandContext) -> None:
    """Print a list of configuration keys and values."""
    click.echo(click.style("Repository configuration:", bold=True))
    if ctx.repo_root is None:
        click.echo("  (not in a git repository)")
        return

    has_config = False
    for key in CONFIG_KEYS:
        values = get_config_value(ctx.config, key)
        if not values:
            continue
        has_config = True
        click.echo(f"  {key}={','.join(values)}")

    if not has_config:
        click.echo(f"  (no configuration - {config_path(ctx.repo_root)} does not set any keys)")


@config_group.command("get")
@click.argument("key", metavar="KEY")
@click.pass_obj
def config_get(ctx: LandContext, key: str) -> None:
    """Print the value of a given configuration key, one value per line."""
    try:
        values = get_config_value(ctx.config, key)
    except LandError as e:
        _fail(str(e))

    if not values:
        click.echo(f"Key not set: {key}", err=True)
        raise SystemExit(1)

    for value in values:
        click.echo(value)


@config_group.command("set")
@click.argument("key", metavar="KEY")
@click.argument("values", metavar="VALUE...", nargs=-1, required=True)
@click.pass_obj
def config_set(ctx: LandContext, key: str, values: tuple[str, ...]) -> None:
    """Update configuration with a value for the given key.

    land.onto accepts several values; the other keys take exactly one.
    """
    try:
        repo_root = ctx.require_repo_root()
        new_config = set_config_value(ctx.config, key, list(values))
    except LandError as e:
        _fail(str(e))

    save_config(repo_root, new_config)
    click.echo(f"Set {key}={','.join(values)}")
