"""Production launcher built on subprocess.Popen.

Output and error of a run are read through OS pipes by worker threads while the
calling thread waits for the processes to exit, and stdin data is written by a
third worker. Pipe buffers are bounded, so reading one stream at a time (or
writing all input before reading) could block the child forever.

A command line runs through the shell only when it needs one: shell
metacharacters (which is what escaped parameters produce), a leading variable
assignment, or a leading reserved word. Anything else is split and executed
directly, so a missing executable raises FileNotFoundError instead of a shell
"not found" exit status.
"""

import logging
import os
import shlex
import subprocess
import threading
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import IO, Any

from safespawn.errors import SpawnUsageError
from safespawn.launcher.abc import Launcher
from safespawn.options import LaunchOptions, merge_environment
from safespawn.types import ProcessOutcome

logger = logging.getLogger(__name__)

DEFAULT_SHELL = "/bin/sh"

_SHELL_METACHARACTERS = frozenset("*?{}[]<>()~&|\\$;'`\"\n#")

_SHELL_RESERVED_WORDS = frozenset(
    {
        "!", ".", ":", "break", "case", "continue", "do", "done", "elif", "else",
        "esac", "eval", "exec", "exit", "export", "fi", "for", "if", "in",
        "readonly", "return", "set", "shift", "then", "times", "trap", "unset",
        "until", "while",
    }
)  # fmt: skip


def needs_shell(command_line: str) -> bool:
    """Check whether a command line only makes sense to a shell."""
    if any(character in _SHELL_METACHARACTERS for character in command_line):
        return True
    words = command_line.split()
    if not words:
        return False
    return "=" in words[0] or words[0] in _SHELL_RESERVED_WORDS


def to_argv(command_line: str, shell: str) -> list[str]:
    """Turn a command line into the argument vector to execute.

    Args:
        command_line: Fully built command line
        shell: Shell used for command lines that need one

    Returns:
        `[shell, "-c", command_line]`, or the split words of the command line

    Raises:
        SpawnUsageError: If the command line is blank
    """
    if needs_shell(command_line):
        return [shell, "-c", command_line]
    argv = shlex.split(command_line)
    if not argv:
        raise SpawnUsageError("command line cannot be empty")
    return argv


class SubprocessLauncher(Launcher):
    """Launcher that runs real processes.

    Example:
        launcher = SubprocessLauncher()
        outcome = launcher.launch({}, "echo hi", LaunchOptions())
        assert outcome.output == b"hi\\n"
    """

    def __init__(self, shell: str = DEFAULT_SHELL) -> None:
        """Initialize the launcher.

        Args:
            shell: Shell that runs command lines containing metacharacters
        """
        self._shell = shell

    def launch(
        self,
        env: Mapping[str, str | None],
        command_line: str,
        options: LaunchOptions,
    ) -> ProcessOutcome:
        """Run one command line; a pipeline with a single stage."""
        return self.launch_pipeline(env, [command_line], options)

    def launch_pipeline(
        self,
        env: Mapping[str, str | None],
        command_lines: Sequence[str],
        options: LaunchOptions,
    ) -> ProcessOutcome:
        """Run stages connected stdout to stdin and capture the final streams.

        Every stage writes its stderr to the shared error pipe (or to the output
        pipe in combined output mode). Once all stages are running, the
        on_spawn callback receives the last stage's pid. If a stage fails to
        spawn, or the callback raises, the stages already started are killed
        and reaped before the error propagates.
        """
        if not command_lines:
            raise SpawnUsageError("a pipeline needs at least one command")

        popen_env = merge_environment(env)
        output_read, output_write = os.pipe()
        error_read, error_write = os.pipe()
        output_stream = os.fdopen(output_read, "rb")
        error_stream = os.fdopen(error_read, "rb")

        processes: list[subprocess.Popen[bytes]] = []
        try:
            previous_stdout: IO[bytes] | None = None
            last_index = len(command_lines) - 1
            for index, command_line in enumerate(command_lines):
                process = self._spawn(
                    command_line,
                    popen_env,
                    options.chdir,
                    stdin=subprocess.PIPE if previous_stdout is None else previous_stdout,
                    stdout=output_write if index == last_index else subprocess.PIPE,
                    stderr=output_write if options.combined_output else error_write,
                    **options.spawn_kwargs,
                )
                processes.append(process)
                # The next stage holds its own copy of the read end.
                if previous_stdout is not None:
                    previous_stdout.close()
                previous_stdout = process.stdout
            if options.on_spawn is not None:
                options.on_spawn(processes[-1].pid)
        except BaseException:
            _abort(processes)
            output_stream.close()
            error_stream.close()
            raise
        finally:
            os.close(output_write)
            os.close(error_write)

        return _collect(processes, output_stream, error_stream, options.in_data)

    def launch_detached(
        self,
        env: Mapping[str, str | None],
        command_line: str,
        options: LaunchOptions,
    ) -> int:
        """Start a process in its own process group and return its pid.

        Streams the caller did not redirect explicitly are discarded. A daemon
        thread reaps the child when it exits.
        """
        spawn_kwargs = dict(options.spawn_kwargs)
        spawn_kwargs.setdefault("stdout", subprocess.DEVNULL)
        spawn_kwargs.setdefault(
            "stderr", subprocess.STDOUT if options.combined_output else subprocess.DEVNULL
        )
        _isolate_process_group(spawn_kwargs)

        process = self._spawn(command_line, merge_environment(env), options.chdir, **spawn_kwargs)
        reaper = threading.Thread(
            target=process.wait, name=f"safespawn-reaper-{process.pid}", daemon=True
        )
        reaper.start()
        return process.pid

    def _spawn(
        self,
        command_line: str,
        env: dict[str, str] | None,
        chdir: Path | None,
        **popen_kwargs: Any,
    ) -> subprocess.Popen[bytes]:
        argv = to_argv(command_line, self._shell)
        process = subprocess.Popen(argv, cwd=chdir, env=env, **popen_kwargs)
        logger.debug("Started pid %s: %s", process.pid, argv[0])
        return process


def _collect(
    processes: list[subprocess.Popen[bytes]],
    output_stream: IO[bytes],
    error_stream: IO[bytes],
    in_data: bytes | None,
) -> ProcessOutcome:
    with ThreadPoolExecutor(max_workers=3, thread_name_prefix="safespawn") as executor:
        output_future = executor.submit(_drain, output_stream)
        error_future = executor.submit(_drain, error_stream)
        feed_future = executor.submit(_feed, processes[0].stdin, in_data)

        exit_statuses = [process.wait() for process in processes]
        feed_future.result()
        output = output_future.result()
        error = error_future.result()

    last = processes[-1]
    logger.debug("pid %s exited with status %s", last.pid, exit_statuses[-1])
    return ProcessOutcome(output, error, exit_statuses[-1], last.pid)


def _drain(stream: IO[bytes]) -> bytes:
    with stream:
        return stream.read()


def _feed(stream: IO[bytes] | None, data: bytes | None) -> None:
    if stream is None:
        return
    try:
        if data:
            stream.write(data)
    except BrokenPipeError:
        logger.debug("Process exited before reading all of its input")
    finally:
        try:
            stream.close()
        except BrokenPipeError:
            logger.debug("Process exited before reading all of its input")


def _abort(processes: list[subprocess.Popen[bytes]]) -> None:
    for process in processes:
        process.kill()
        for stream in (process.stdin, process.stdout):
            if stream is not None:
                stream.close()
        process.wait()


def _isolate_process_group(spawn_kwargs: dict[str, Any]) -> None:
    if os.name == "nt":
        spawn_kwargs.setdefault("creationflags", subprocess.CREATE_NEW_PROCESS_GROUP)
        return
    if "process_group" not in spawn_kwargs and "start_new_session" not in spawn_kwargs:
        spawn_kwargs["process_group"] = 0
