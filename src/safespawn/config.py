"""Configuration data structures and loading.

Provides immutable configuration loaded from a TOML file, by default
~/.config/safespawn/config.toml (overridden by $SAFESPAWN_CONFIG):

    shell = "/bin/bash"
    log_level = "INFO"

    [env]
    LC_ALL = "C"

Loaded once at the CLI entry point. Library callers pass settings to Spawner
directly and never touch the file.
"""

import os
import tomllib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

CONFIG_PATH_ENV_VAR = "SAFESPAWN_CONFIG"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class SpawnConfig:
    """Immutable configuration data.

    Attributes:
        shell: Shell that runs command lines containing metacharacters
        env: Environment overlay applied to every run
        log_level: Level for the CLI's logging setup
    """

    shell: str = "/bin/sh"
    env: dict[str, str] = field(default_factory=dict)
    log_level: str = "WARNING"


class ConfigFile(BaseModel):
    """Schema of the TOML configuration file."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    shell: str = "/bin/sh"
    env: dict[str, str | int | float | bool] = Field(default_factory=dict)
    log_level: str = "WARNING"

    @field_validator("shell")
    @classmethod
    def validate_shell(cls, v: str) -> str:
        """Validate shell is non-empty."""
        if not v.strip():
            msg = "shell cannot be empty"
            raise ValueError(msg)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log_level names a logging level."""
        level = v.upper()
        if level not in _LOG_LEVELS:
            msg = f"log_level must be one of {', '.join(_LOG_LEVELS)}"
            raise ValueError(msg)
        return level

    def to_config(self) -> SpawnConfig:
        return SpawnConfig(
            shell=self.shell,
            env={key: _env_text(value) for key, value in self.env.items()},
            log_level=self.log_level,
        )


def _env_text(value: str | int | float | bool) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ConfigOps(ABC):
    """Abstract interface for configuration access.

    Provides dependency injection for config loading, enabling in-memory
    implementations for tests without touching the filesystem.
    """

    @abstractmethod
    def exists(self) -> bool:
        """Check if a configuration file exists."""
        ...

    @abstractmethod
    def load(self) -> SpawnConfig:
        """Load configuration.

        Returns:
            SpawnConfig with loaded values, or defaults when nothing exists

        Raises:
            ValueError: If the configuration is malformed
        """
        ...

    @abstractmethod
    def path(self) -> Path:
        """Get the path to the configuration file (for error messages)."""
        ...


class FilesystemConfigOps(ConfigOps):
    """Production implementation that reads the TOML configuration file."""

    def __init__(self, config_path: Path | None = None) -> None:
        """Initialize with an explicit path, or resolve it from the environment."""
        self._config_path = config_path

    def exists(self) -> bool:
        return self.path().exists()

    def load(self) -> SpawnConfig:
        """Load configuration from disk.

        A missing file yields the defaults.

        Raises:
            ValueError: If the file is not valid TOML or fails validation
        """
        config_path = self.path()
        if not config_path.exists():
            return SpawnConfig()

        try:
            data = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

        try:
            return ConfigFile.model_validate(data).to_config()
        except ValidationError as e:
            raise ValueError(f"Invalid configuration in {config_path}:\n{e}") from e

    def path(self) -> Path:
        if self._config_path is not None:
            return self._config_path
        override = os.environ.get(CONFIG_PATH_ENV_VAR)
        if override:
            return Path(override).expanduser()
        return Path.home() / ".config" / "safespawn" / "config.toml"


class InMemoryConfigOps(ConfigOps):
    """In-memory implementation for tests.

    Examples:
        >>> ops = InMemoryConfigOps(SpawnConfig(shell="/bin/bash"))
        >>> ops.load().shell
        '/bin/bash'
    """

    def __init__(self, config: SpawnConfig | None = None) -> None:
        self._config = config

    def exists(self) -> bool:
        return self._config is not None

    def load(self) -> SpawnConfig:
        return self._config if self._config is not None else SpawnConfig()

    def path(self) -> Path:
        return Path("/fake/safespawn/config.toml")
