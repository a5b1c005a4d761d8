"""Options accepted by the run entry points and their validation.

Standard streams belong to the launcher: a synchronous run captures stdout and
stderr and feeds stdin itself, so callers may not redirect them. A detached run
waits on nothing, so it accepts explicit redirection but no stdin data.
"""

import os
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from safespawn.errors import SpawnUsageError

# Popen keywords that redirect a standard stream.
STREAM_KEYS = ("stdin", "stdout", "stderr", "input", "capture_output")

# Popen keywords the launcher sets itself.
MANAGED_KEYS = (
    "args",
    "cwd",
    "env",
    "shell",
    "text",
    "encoding",
    "errors",
    "universal_newlines",
    "bufsize",
)

# Keywords a detached run cannot honour: subprocess.run only, or tied to waiting.
RUN_ONLY_KEYS = ("input", "capture_output", "on_spawn")


@dataclass(frozen=True)
class LaunchOptions:
    """Options handed from the facade to a launcher.

    Attributes:
        in_data: Bytes to write to stdin of the (first) process, if any
        chdir: Working directory for the process, None to inherit
        combined_output: Whether stderr is merged into the captured output
        spawn_kwargs: Extra keyword arguments for subprocess.Popen
        on_spawn: Called with the pid once every process has started, while
            the run is still in progress
    """

    in_data: bytes | None = None
    chdir: Path | None = None
    combined_output: bool = False
    spawn_kwargs: Mapping[str, Any] = field(default_factory=dict)
    on_spawn: Callable[[int], None] | None = None


@dataclass(frozen=True)
class SpawnOptions:
    """Every option a caller can pass when running a command.

    Attributes:
        params: Command line parameters (see build_command_line)
        in_data: Data written to stdin; str is encoded as UTF-8
        env: Variables added to the inherited environment; a None value
            removes the variable
        chdir: Working directory for the process
        combined_output: Merge stderr into the captured output
        binary: Return output and error as bytes instead of str
        spawn_kwargs: Platform-specific subprocess.Popen keywords, e.g. umask
        on_spawn: Called with the pid (last stage of a pipeline) before the
            run finishes, e.g. to kill it from another thread
    """

    params: object = None
    in_data: str | bytes | None = None
    env: Mapping[str, object] | None = None
    chdir: str | os.PathLike[str] | None = None
    combined_output: bool = False
    binary: bool = False
    spawn_kwargs: Mapping[str, Any] = field(default_factory=dict)
    on_spawn: Callable[[int], None] | None = None

    def launch_options(self) -> LaunchOptions:
        return LaunchOptions(
            in_data=encode_in_data(self.in_data),
            chdir=Path(self.chdir) if self.chdir is not None else None,
            combined_output=self.combined_output,
            spawn_kwargs=dict(self.spawn_kwargs),
            on_spawn=self.on_spawn,
        )


def validate_run_options(options: SpawnOptions) -> None:
    """Reject options that conflict with captured streams.

    Raises:
        SpawnUsageError: Listing every conflicting key
    """
    conflicts = _conflicting_keys(options.spawn_kwargs, STREAM_KEYS + MANAGED_KEYS)
    if conflicts:
        raise SpawnUsageError(f"options cannot contain {', '.join(conflicts)}")


def validate_detached_options(options: SpawnOptions) -> None:
    """Reject options that make no sense for a process nobody waits on.

    Raises:
        SpawnUsageError: Listing every conflicting key
    """
    conflicts = _conflicting_keys(options.spawn_kwargs, RUN_ONLY_KEYS + MANAGED_KEYS)
    if options.in_data is not None:
        conflicts.insert(0, "in_data")
    if conflicts:
        raise SpawnUsageError(f"options cannot contain {', '.join(conflicts)}")


def _conflicting_keys(spawn_kwargs: Iterable[str], forbidden: tuple[str, ...]) -> list[str]:
    return [key for key in spawn_kwargs if key in forbidden]


def encode_in_data(in_data: str | bytes | None) -> bytes | None:
    """Convert stdin data to bytes."""
    if in_data is None:
        return None
    if isinstance(in_data, str):
        return in_data.encode("utf-8")
    if isinstance(in_data, (bytes, bytearray, memoryview)):
        return bytes(in_data)
    raise TypeError(f"in_data must be str or bytes, not {type(in_data).__name__}")


def stringify_env(env: Mapping[object, object] | None) -> dict[str, str | None]:
    """Stringify environment keys and values, keeping None as "unset"."""
    if not env:
        return {}
    return {str(key): None if value is None else str(value) for key, value in env.items()}


def merge_environment(overlay: Mapping[str, str | None]) -> dict[str, str] | None:
    """Merge an overlay on top of the inherited environment.

    Returns:
        None when there is nothing to overlay (the child inherits as is),
        otherwise the full environment for the child
    """
    if not overlay:
        return None
    merged = dict(os.environ)
    for key, value in overlay.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged
