"""Run external programs with shell-safe command lines and captured output."""

import logging

from safespawn.command_line import build_command_line, build_pipeline
from safespawn.errors import CommandResultError, NoSuchCommandError, SpawnUsageError
from safespawn.params import Flag
from safespawn.sanitize import sanitize_value, shell_escape
from safespawn.spawner import Spawner, run, run_checked, run_detached
from safespawn.types import CommandResult, ProcessOutcome

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Running
    "Spawner",
    "run",
    "run_checked",
    "run_detached",
    # Command lines
    "Flag",
    "build_command_line",
    "build_pipeline",
    "sanitize_value",
    "shell_escape",
    # Results and errors
    "CommandResult",
    "ProcessOutcome",
    "CommandResultError",
    "NoSuchCommandError",
    "SpawnUsageError",
]
