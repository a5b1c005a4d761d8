"""Option handling shared by the CLI commands."""

from collections.abc import Callable
from typing import Any, TypeVar

import click

from safespawn.cli.output import machine_output, user_output
from safespawn.params import Flag
from safespawn.types import CommandResult

F = TypeVar("F", bound=Callable[..., Any])


def param_options(func: F) -> F:
    """Add the -o/--option and -s/--switch parameter options to a command."""
    func = click.option(
        "-s",
        "--switch",
        "switches",
        multiple=True,
        metavar="NAME",
        help="Flag without a value, e.g. '-s verbose' renders --verbose.",
    )(func)
    func = click.option(
        "-o",
        "--option",
        "options",
        type=(str, str),
        multiple=True,
        metavar="NAME VALUE",
        help="Flag with a value, e.g. '-o user_name bob' renders --user-name bob "
        "and '-o user= bob' renders --user=bob.",
    )(func)
    return func


def collect_params(
    words: tuple[str, ...],
    options: tuple[tuple[str, str], ...],
    switches: tuple[str, ...],
) -> list[object]:
    """Turn CLI arguments into a parameter sequence.

    Positional words come first, then flags with values, then switches.
    """
    params: list[object] = list(words)
    params.extend([Flag(name), value] for name, value in options)
    params.extend(Flag(name) for name in switches)
    return params


def parse_env(pairs: tuple[str, ...]) -> dict[str, str]:
    """Parse repeated KEY=VALUE options.

    Raises:
        click.BadParameter: If an entry has no '=' or an empty key
    """
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        env[key] = value
    return env


def exit_code_for(exit_status: int) -> int:
    """Map an exit status to a shell-style exit code (128+N for signal N)."""
    if exit_status < 0:
        return 128 - exit_status
    return exit_status


def relay_result(result: CommandResult) -> None:
    """Forward captured output to stdout and captured error to stderr."""
    if result.output:
        machine_output(result.output, nl=False)
    if result.error:
        user_output(str(result.error), nl=False)
