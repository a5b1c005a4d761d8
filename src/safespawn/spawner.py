"""Run facade: validate options, build the command line, launch, wrap the outcome.

Example:
    >>> result = run("echo", params={None: "hi"})
    >>> result.output
    'hi\\n'
    >>> run_checked("false")
    Traceback (most recent call last):
    ...
    safespawn.errors.CommandResultError: false exit code: 1
"""

import logging
import os
from collections.abc import Callable, Mapping
from typing import Any

from safespawn.command_line import build_command_line, build_pipeline
from safespawn.config import SpawnConfig
from safespawn.errors import CommandResultError, NoSuchCommandError, SpawnUsageError
from safespawn.launcher.abc import Launcher
from safespawn.launcher.real import DEFAULT_SHELL, SubprocessLauncher
from safespawn.options import (
    SpawnOptions,
    stringify_env,
    validate_detached_options,
    validate_run_options,
)
from safespawn.types import CommandResult

Command = str | os.PathLike[str] | list[Any] | tuple[Any, ...]


class Spawner:
    """Runs commands through an injected launcher.

    Attributes:
        launcher: Launcher used to spawn processes
        logger: Receives failure messages from run_checked(); silent unless the
            application configures logging
    """

    def __init__(
        self,
        launcher: Launcher | None = None,
        *,
        logger: logging.Logger | None = None,
        shell: str = DEFAULT_SHELL,
        env: Mapping[str, object] | None = None,
    ) -> None:
        """Initialize the spawner.

        Args:
            launcher: Launcher to use; defaults to a SubprocessLauncher
            logger: Logger for run_checked() failures; defaults to the
                "safespawn" logger, which has only a NullHandler
            shell: Shell for the default launcher
            env: Environment overlay applied to every run, under per-call env
        """
        self.launcher = launcher if launcher is not None else SubprocessLauncher(shell)
        self.logger = logger if logger is not None else logging.getLogger("safespawn")
        self._env = stringify_env(env)

    @classmethod
    def from_config(
        cls,
        config: SpawnConfig,
        launcher: Launcher | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> "Spawner":
        """Create a spawner using the shell and environment from configuration."""
        return cls(launcher, logger=logger, shell=config.shell, env=config.env)

    def build_command_line(self, command: str | os.PathLike[str], params: object = None) -> str:
        """Build a command line without running it (see command_line module)."""
        return build_command_line(command, params)

    def run(
        self,
        command: Command,
        *,
        params: object = None,
        in_data: str | bytes | None = None,
        env: Mapping[str, object] | None = None,
        chdir: str | os.PathLike[str] | None = None,
        combined_output: bool = False,
        binary: bool = False,
        on_spawn: Callable[[int], None] | None = None,
        **spawn_kwargs: Any,
    ) -> CommandResult:
        """Run a command (or pipeline) and collect its output, error and exit status.

        A non-zero exit status is not an error here; check `result.success`.

        Args:
            command: Command to run, or a list of stages for a pipeline where
                each stage is a command or a `(command, params)` pair
            params: Command line parameters, escaped before use
            in_data: Data written to stdin (first stage of a pipeline)
            env: Variables added to the inherited environment
            chdir: Working directory
            combined_output: Merge stderr into output; error is then empty
            binary: Return bytes instead of UTF-8 decoded text
            on_spawn: Called with the pid (last stage of a pipeline) as soon as
                the process is running, from the calling thread; the pid can be
                used to terminate a run that takes too long
            **spawn_kwargs: Extra subprocess.Popen keywords (no stream redirection)

        Returns:
            CommandResult for the command

        Raises:
            SpawnUsageError: If options conflict, before anything is spawned
            NoSuchCommandError: If the executable cannot be found
            FileNotFoundError: If chdir does not exist
        """
        options = SpawnOptions(
            params=params,
            in_data=in_data,
            env=env,
            chdir=chdir,
            combined_output=combined_output,
            binary=binary,
            spawn_kwargs=spawn_kwargs,
            on_spawn=on_spawn,
        )
        validate_run_options(options)
        command_line = self._build(command, options.params)
        launch_options = options.launch_options()
        overlay = self._environment(options.env)

        try:
            if isinstance(command_line, tuple):
                outcome = self.launcher.launch_pipeline(overlay, command_line, launch_options)
            else:
                outcome = self.launcher.launch(overlay, command_line, launch_options)
        except FileNotFoundError as err:
            if _is_missing_command(err, launch_options.chdir):
                raise NoSuchCommandError.from_os_error(err, _first(command_line)) from err
            raise

        return CommandResult(
            command_line=command_line,
            output=_decode(outcome.output, binary),
            error=_decode(outcome.error, binary),
            exit_status=outcome.exit_status,
            pid=outcome.pid,
        )

    def run_checked(self, command: Command, **options: Any) -> CommandResult:
        """Same as run(), additionally raising if the exit status is not 0.

        Raises:
            CommandResultError: With message `<command> exit code: <status>`,
                after logging the message and the captured error text
        """
        result = self.run(command, **options)
        if result.failure:
            message = CommandResultError.default_message(_describe(command), result.exit_status)
            self.logger.error("safespawn: %s", message)
            self.logger.error("safespawn: %s", result.error)
            raise CommandResultError(message, result)
        return result

    def run_detached(
        self,
        command: str | os.PathLike[str],
        *,
        params: object = None,
        in_data: str | bytes | None = None,
        env: Mapping[str, object] | None = None,
        chdir: str | os.PathLike[str] | None = None,
        combined_output: bool = False,
        **spawn_kwargs: Any,
    ) -> int:
        """Start a command without waiting for it.

        Stdout and stderr are discarded unless given in spawn_kwargs, and the
        child gets its own process group unless the caller chose otherwise.

        Returns:
            Pid of the started process

        Raises:
            SpawnUsageError: If in_data is given, or options conflict
            NoSuchCommandError: If the executable cannot be found
            FileNotFoundError: If chdir does not exist
        """
        options = SpawnOptions(
            params=params,
            in_data=in_data,
            env=env,
            chdir=chdir,
            combined_output=combined_output,
            spawn_kwargs=spawn_kwargs,
        )
        validate_detached_options(options)
        if _is_pipeline(command):
            raise SpawnUsageError("run_detached does not support pipelines")
        command_line = self._build(command, options.params)
        assert isinstance(command_line, str)

        try:
            return self.launcher.launch_detached(
                self._environment(options.env), command_line, options.launch_options()
            )
        except FileNotFoundError as err:
            if _is_missing_command(err, options.chdir):
                raise NoSuchCommandError.from_os_error(err, command_line) from err
            raise

    def _build(self, command: Command, params: object) -> str | tuple[str, ...]:
        if _is_pipeline(command):
            if params is not None:
                raise SpawnUsageError(
                    "params cannot be combined with a pipeline; pass (command, params) per stage"
                )
            if not command:
                raise SpawnUsageError("a pipeline needs at least one command")
            return build_pipeline(command)  # type: ignore[arg-type]
        command_line = build_command_line(command, params)  # type: ignore[arg-type]
        if not command_line.strip():
            raise SpawnUsageError("command cannot be empty")
        return command_line

    def _environment(self, env: Mapping[str, object] | None) -> dict[str, str | None]:
        return {**self._env, **stringify_env(env)}


def _is_pipeline(command: object) -> bool:
    return isinstance(command, (list, tuple))


def _describe(command: Command) -> str:
    if _is_pipeline(command):
        stages = [
            stage[0] if isinstance(stage, (list, tuple)) else stage
            for stage in command  # type: ignore[union-attr]
        ]
        return " | ".join(os.fspath(stage) for stage in stages)
    return os.fspath(command)  # type: ignore[arg-type]


def _is_missing_command(err: OSError, chdir: str | os.PathLike[str] | None) -> bool:
    if not NoSuchCommandError.detected(err):
        return False
    # A missing working directory is reported with the directory as filename.
    if chdir is not None and err.filename is not None:
        return os.fspath(err.filename) != os.fspath(chdir)
    return True


def _first(command_line: str | tuple[str, ...]) -> str:
    return command_line[0] if isinstance(command_line, tuple) else command_line


def _decode(data: bytes | None, binary: bool) -> str | bytes:
    if data is None:
        data = b""
    if binary:
        return data
    return data.decode("utf-8", errors="replace")


_default_spawner = Spawner()


def run(command: Command, **options: Any) -> CommandResult:
    """Run a command with the default spawner (see Spawner.run)."""
    return _default_spawner.run(command, **options)


def run_checked(command: Command, **options: Any) -> CommandResult:
    """Run a command with the default spawner, raising on failure (see Spawner.run_checked)."""
    return _default_spawner.run_checked(command, **options)


def run_detached(command: str | os.PathLike[str], **options: Any) -> int:
    """Start a command with the default spawner (see Spawner.run_detached)."""
    return _default_spawner.run_detached(command, **options)
