"""Context object shared by CLI commands."""

import logging
from dataclasses import dataclass

from safespawn.config import ConfigOps, FilesystemConfigOps, SpawnConfig
from safespawn.launcher import Launcher
from safespawn.spawner import Spawner

DEBUG_FORMAT = "[DEBUG %(name)s:%(lineno)d] %(message)s"

# Receives run_checked() failures; the commands report those themselves.
FAILURE_LOGGER_NAME = "safespawn.cli.failures"


@dataclass(frozen=True)
class SpawnContext:
    """Dependencies for CLI commands, created once at the entry point.

    Tests build one around a FakeLauncher and pass it as `obj` to CliRunner.
    """

    spawner: Spawner
    config: SpawnConfig


def create_context(
    config_ops: ConfigOps | None = None, launcher: Launcher | None = None
) -> SpawnContext:
    """Load configuration and build the production context.

    Raises:
        ValueError: If the configuration file is malformed
    """
    ops = config_ops if config_ops is not None else FilesystemConfigOps()
    config = ops.load()
    spawner = Spawner.from_config(
        config, launcher, logger=logging.getLogger(FAILURE_LOGGER_NAME)
    )
    return SpawnContext(spawner=spawner, config=config)


def configure_logging(debug: bool, log_level: str) -> None:
    """Set up root logging for a CLI invocation.

    Outside debug mode, failures logged by run_checked() are muted: the
    commands already print the error and relay the command's stderr.
    """
    failure_logger = logging.getLogger(FAILURE_LOGGER_NAME)
    if debug:
        failure_logger.setLevel(logging.NOTSET)
        logging.basicConfig(level=logging.DEBUG, format=DEBUG_FORMAT)
        return
    failure_logger.setLevel(logging.CRITICAL)
    logging.basicConfig(level=getattr(logging, log_level), format="%(levelname)s %(message)s")
