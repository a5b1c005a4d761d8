"""Static CLI definition for safespawn."""

import os

import click

from safespawn.cli.commands.build_cmd import build_command
from safespawn.cli.commands.run_cmd import pipe_command, run_command
from safespawn.cli.context import configure_logging, create_context

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

# Enables debug logging like --debug.
DEBUG_ENV_VAR = "SAFESPAWN_DEBUG"


@click.group(name="safespawn", context_settings=CONTEXT_SETTINGS)
@click.option("--debug", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Run commands with shell-safe parameters."""
    if ctx.obj is None:
        try:
            ctx.obj = create_context()
        except ValueError as e:
            raise click.ClickException(str(e)) from e
    configure_logging(debug or bool(os.getenv(DEBUG_ENV_VAR)), ctx.obj.config.log_level)


# Register all commands
cli.add_command(build_command)
cli.add_command(run_command)
cli.add_command(pipe_command)
