"""In-memory launchers for testing code that runs commands.

FakeLauncher records every call and answers with configured outcomes, so tests
can exercise the run facade (and code built on it) without spawning anything.
DisabledLauncher refuses to spawn at all, for suites that must never reach the
operating system.
"""

import errno
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from safespawn.errors import NO_SUCH_FILE_MESSAGE
from safespawn.launcher.abc import Launcher
from safespawn.options import LaunchOptions
from safespawn.types import ProcessOutcome

SPAWNING_DISABLED_MESSAGE = (
    "Spawning is not permitted in tests. Please configure a FakeLauncher instead."
)


@dataclass(frozen=True)
class LaunchCall:
    """One recorded launch.

    Attributes:
        kind: "launch", "pipeline" or "detached"
        env: Environment overlay passed by the facade
        command_lines: The command line(s) that would have been executed
        options: Launch options passed by the facade
    """

    kind: str
    env: dict[str, str | None]
    command_lines: tuple[str, ...]
    options: LaunchOptions


class FakeLauncher(Launcher):
    """Launcher that records calls and returns predetermined outcomes.

    Outcomes are looked up by the first word of the (last) command line, falling
    back to `default_outcome`. Commands listed in `missing_commands` raise
    FileNotFoundError the way a real spawn does. An on_spawn callback receives
    the outcome's pid before the outcome is returned.

    Examples:
        >>> launcher = FakeLauncher(outcomes={"git": ProcessOutcome(b"main\\n", b"", 0, 100)})
        >>> spawner = Spawner(launcher=launcher)
        >>> spawner.run("git", params=["branch", Flag("show_current")]).output
        'main\\n'
        >>> launcher.calls[0].command_lines
        ('git branch --show-current',)
    """

    def __init__(
        self,
        *,
        outcomes: Mapping[str, ProcessOutcome] | None = None,
        default_outcome: ProcessOutcome | None = None,
        missing_commands: Sequence[str] = (),
        detached_pid: int = 4242,
    ) -> None:
        """Initialize fake with canned outcomes.

        Args:
            outcomes: Outcome per command name (first word of the command line)
            default_outcome: Outcome for commands not in `outcomes`; defaults to
                an empty successful run
            missing_commands: Command names that raise FileNotFoundError
            detached_pid: Pid returned from launch_detached()
        """
        self._outcomes = dict(outcomes or {})
        self._default_outcome = default_outcome or ProcessOutcome(b"", b"", 0, 1234)
        self._missing_commands = frozenset(missing_commands)
        self._detached_pid = detached_pid
        self.calls: list[LaunchCall] = []

    def launch(
        self,
        env: Mapping[str, str | None],
        command_line: str,
        options: LaunchOptions,
    ) -> ProcessOutcome:
        self._check_missing([command_line])
        self.calls.append(LaunchCall("launch", dict(env), (command_line,), options))
        return self._finish(self._outcome_for(command_line), options)

    def launch_pipeline(
        self,
        env: Mapping[str, str | None],
        command_lines: Sequence[str],
        options: LaunchOptions,
    ) -> ProcessOutcome:
        self._check_missing(command_lines)
        self.calls.append(LaunchCall("pipeline", dict(env), tuple(command_lines), options))
        return self._finish(self._outcome_for(command_lines[-1]), options)

    def launch_detached(
        self,
        env: Mapping[str, str | None],
        command_line: str,
        options: LaunchOptions,
    ) -> int:
        self._check_missing([command_line])
        self.calls.append(LaunchCall("detached", dict(env), (command_line,), options))
        return self._detached_pid

    def _check_missing(self, command_lines: Sequence[str]) -> None:
        for command_line in command_lines:
            name = _command_name(command_line)
            if name in self._missing_commands:
                raise FileNotFoundError(errno.ENOENT, NO_SUCH_FILE_MESSAGE, name)

    def _outcome_for(self, command_line: str) -> ProcessOutcome:
        return self._outcomes.get(_command_name(command_line), self._default_outcome)

    def _finish(self, outcome: ProcessOutcome, options: LaunchOptions) -> ProcessOutcome:
        if options.on_spawn is not None and outcome.pid is not None:
            options.on_spawn(outcome.pid)
        return outcome


class DisabledLauncher(Launcher):
    """Launcher that fails every spawn attempt with a RuntimeError."""

    def launch(
        self,
        env: Mapping[str, str | None],
        command_line: str,
        options: LaunchOptions,
    ) -> ProcessOutcome:
        raise RuntimeError(SPAWNING_DISABLED_MESSAGE)

    def launch_pipeline(
        self,
        env: Mapping[str, str | None],
        command_lines: Sequence[str],
        options: LaunchOptions,
    ) -> ProcessOutcome:
        raise RuntimeError(SPAWNING_DISABLED_MESSAGE)

    def launch_detached(
        self,
        env: Mapping[str, str | None],
        command_line: str,
        options: LaunchOptions,
    ) -> int:
        raise RuntimeError(SPAWNING_DISABLED_MESSAGE)


def _command_name(command_line: str) -> str:
    words = command_line.split()
    return words[0] if words else ""
