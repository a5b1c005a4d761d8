"""Run and pipe commands - execute and relay output, error and exit status."""

import logging
import time
from pathlib import Path

import click

from safespawn.cli.commands.shared import (
    F,
    collect_params,
    exit_code_for,
    param_options,
    parse_env,
    relay_result,
)
from safespawn.cli.context import SpawnContext
from safespawn.cli.output import format_result_summary, machine_output, print_summary, user_output
from safespawn.errors import CommandResultError, NoSuchCommandError, SpawnUsageError
from safespawn.spawner import Command
from safespawn.types import CommandResult

logger = logging.getLogger(__name__)

# Exit code used by shells when a command cannot be found.
COMMAND_NOT_FOUND_EXIT_CODE = 127


def _execution_options(func: F) -> F:
    """Add the options shared by run and pipe."""
    func = click.option(
        "--summary",
        is_flag=True,
        help="Print a summary panel to stderr after the run.",
    )(func)
    func = click.option(
        "--check",
        is_flag=True,
        help="Treat a non-zero exit status as an error.",
    )(func)
    func = click.option(
        "--combined",
        is_flag=True,
        help="Merge the command's stderr into its stdout.",
    )(func)
    func = click.option(
        "--stdin",
        "forward_stdin",
        is_flag=True,
        help="Read data from this process's stdin and pass it to the command.",
    )(func)
    func = click.option(
        "-e",
        "--env",
        "env_pairs",
        multiple=True,
        metavar="KEY=VALUE",
        help="Environment variable added for the command (repeatable).",
    )(func)
    func = click.option(
        "-C",
        "--chdir",
        type=click.Path(file_okay=False, path_type=Path),
        help="Working directory for the command.",
    )(func)
    return func


@click.command("run")
@click.argument("command")
@click.argument("words", nargs=-1)
@param_options
@_execution_options
@click.option(
    "--detach",
    is_flag=True,
    help="Start the command in the background and print its pid.",
)
@click.pass_obj
def run_command(
    ctx: SpawnContext,
    command: str,
    words: tuple[str, ...],
    options: tuple[tuple[str, str], ...],
    switches: tuple[str, ...],
    chdir: Path | None,
    env_pairs: tuple[str, ...],
    forward_stdin: bool,
    combined: bool,
    check: bool,
    summary: bool,
    detach: bool,
) -> None:
    """Run COMMAND with escaped WORDS and flags.

    The command's output goes to stdout, its error output to stderr, and this
    command exits with the command's exit status.

    Example:
        safespawn run echo 'hello; world' -s n
    """
    params = collect_params(words, options, switches)
    env = parse_env(env_pairs)

    if detach:
        if forward_stdin or check or summary:
            raise click.UsageError("--detach cannot be combined with --stdin, --check or --summary")
        try:
            pid = ctx.spawner.run_detached(
                command, params=params, env=env, chdir=chdir, combined_output=combined
            )
        except SpawnUsageError as e:
            raise click.UsageError(str(e)) from e
        except NoSuchCommandError as e:
            user_output(f"Error: {e}")
            raise SystemExit(COMMAND_NOT_FOUND_EXIT_CODE) from e
        machine_output(str(pid))
        return

    _execute(
        ctx,
        command,
        params=params,
        env=env,
        chdir=chdir,
        forward_stdin=forward_stdin,
        combined=combined,
        check=check,
        summary=summary,
    )


@click.command("pipe")
@click.argument("stages", nargs=-1, required=True)
@_execution_options
@click.pass_obj
def pipe_command(
    ctx: SpawnContext,
    stages: tuple[str, ...],
    chdir: Path | None,
    env_pairs: tuple[str, ...],
    forward_stdin: bool,
    combined: bool,
    check: bool,
    summary: bool,
) -> None:
    """Run STAGES as a pipeline, each stage's stdout feeding the next.

    Each stage is a complete command line and is used as given. The exit
    status is the last stage's.

    Example:
        safespawn pipe 'ls -1' 'grep py' 'wc -l'
    """
    _execute(
        ctx,
        list(stages),
        params=None,
        env=parse_env(env_pairs),
        chdir=chdir,
        forward_stdin=forward_stdin,
        combined=combined,
        check=check,
        summary=summary,
    )


def _execute(
    ctx: SpawnContext,
    command: Command,
    *,
    params: object,
    env: dict[str, str],
    chdir: Path | None,
    forward_stdin: bool,
    combined: bool,
    check: bool,
    summary: bool,
) -> None:
    in_data = click.get_binary_stream("stdin").read() if forward_stdin else None
    run = ctx.spawner.run_checked if check else ctx.spawner.run

    start_time = time.time()
    try:
        result = run(
            command,
            params=params,
            in_data=in_data,
            env=env,
            chdir=chdir,
            combined_output=combined,
        )
    except SpawnUsageError as e:
        raise click.UsageError(str(e)) from e
    except NoSuchCommandError as e:
        user_output(f"Error: {e}")
        raise SystemExit(COMMAND_NOT_FOUND_EXIT_CODE) from e
    except CommandResultError as e:
        _finish(e.result, summary, time.time() - start_time)
        user_output(f"Error: {e}")
        raise SystemExit(exit_code_for(e.result.exit_status)) from e

    _finish(result, summary, time.time() - start_time)
    if result.failure:
        raise SystemExit(exit_code_for(result.exit_status))


def _finish(result: CommandResult, summary: bool, duration: float) -> None:
    logger.debug("Finished with exit status %s", result.exit_status)
    relay_result(result)
    if summary:
        print_summary(format_result_summary(result, duration))
