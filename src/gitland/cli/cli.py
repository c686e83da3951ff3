import logging
import os
import tomllib

import click

from gitland.cli.commands.config import config_group
from gitland.cli.commands.land import land_cmd
from gitland.core.context import create_context
from gitland.core.errors import LandError

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])  # terse help flags

if os.environ.get("GITLAND_DEBUG"):
    logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="gitland")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Land local git changes onto remote branches."""
    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        try:
            ctx.obj = create_context()
        except (LandError, tomllib.TOMLDecodeError) as e:
            click.echo(click.style("Error: ", fg="red") + str(e), err=True)
            raise SystemExit(1) from None


cli.add_command(land_cmd)
cli.add_command(config_group)


def main() -> None:
    """CLI entry point used by the `gitland` console script."""
    cli()
