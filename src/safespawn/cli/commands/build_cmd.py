"""Build command - print the escaped command line without running it."""

import click

from safespawn.cli.commands.shared import collect_params, param_options
from safespawn.cli.context import SpawnContext
from safespawn.cli.output import machine_output


@click.command("build")
@click.argument("command")
@click.argument("words", nargs=-1)
@param_options
@click.pass_obj
def build_command(
    ctx: SpawnContext,
    command: str,
    words: tuple[str, ...],
    options: tuple[tuple[str, str], ...],
    switches: tuple[str, ...],
) -> None:
    """Print the command line for COMMAND with escaped WORDS and flags.

    Example:
        safespawn build git log -s oneline -o grep 'fix; rm -rf /'
        git log --grep fix\\;\\ rm\\ -rf\\ / --oneline
    """
    params = collect_params(words, options, switches)
    machine_output(ctx.spawner.build_command_line(command, params))
