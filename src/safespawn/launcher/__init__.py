"""Process launchers: the interface, the subprocess implementation and test doubles."""

from safespawn.launcher.abc import Launcher
from safespawn.launcher.fake import DisabledLauncher, FakeLauncher, LaunchCall
from safespawn.launcher.real import DEFAULT_SHELL, SubprocessLauncher

__all__ = [
    "DEFAULT_SHELL",
    "DisabledLauncher",
    "FakeLauncher",
    "LaunchCall",
    "Launcher",
    "SubprocessLauncher",
]
