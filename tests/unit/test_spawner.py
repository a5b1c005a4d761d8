"""Tests for the run facade using FakeLauncher."""

import copy
import errno
import logging
from collections.abc import Mapping

import pytest

from safespawn.config import SpawnConfig
from safespawn.errors import CommandResultError, NoSuchCommandError, SpawnUsageError
from safespawn.launcher import DisabledLauncher, FakeLauncher
from safespawn.options import LaunchOptions
from safespawn.params import Flag
from safespawn.spawner import Spawner
from safespawn.types import ProcessOutcome


def test_run_builds_command_line_and_wraps_outcome() -> None:
    launcher = FakeLauncher(outcomes={"echo": ProcessOutcome(b"hi\n", b"", 0, 321)})
    spawner = Spawner(launcher)

    result = spawner.run("echo", params={None: "hi"})

    assert result.command_line == "echo hi"
    assert result.output == "hi\n"
    assert result.error == ""
    assert result.exit_status == 0
    assert result.pid == 321
    assert launcher.calls[0].kind == "launch"
    assert launcher.calls[0].command_lines == ("echo hi",)


def test_run_escapes_hostile_params() -> None:
    launcher = FakeLauncher()
    spawner = Spawner(launcher)

    spawner.run("grep", params=[[Flag("regexp"), "; rm -rf /"], "file name"])

    assert launcher.calls[0].command_lines == ("grep --regexp \\;\\ rm\\ -rf\\ / file\\ name",)


def test_run_nonzero_exit_is_not_an_error() -> None:
    launcher = FakeLauncher(outcomes={"false": ProcessOutcome(b"", b"", 1, 5)})

    result = Spawner(launcher).run("false")

    assert result.failure
    assert result.exit_status == 1


def test_run_passes_launch_options() -> None:
    launcher = FakeLauncher()

    Spawner(launcher).run("cat", in_data="abc", chdir="..", combined_output=True, umask=0o22)

    options = launcher.calls[0].options
    assert options.in_data == b"abc"
    assert str(options.chdir) == ".."
    assert options.combined_output is True
    assert options.spawn_kwargs == {"umask": 0o22}


def test_run_decodes_output_with_replacement() -> None:
    launcher = FakeLauncher(default_outcome=ProcessOutcome(b"caf\xc3\xa9 \xff", b"", 0, 1))

    result = Spawner(launcher).run("cat")

    assert result.output == "café �"


def test_run_binary_keeps_bytes() -> None:
    launcher = FakeLauncher(default_outcome=ProcessOutcome(b"\x00\xff", b"e", 0, 1))

    result = Spawner(launcher).run("cat", binary=True)

    assert result.output == b"\x00\xff"
    assert result.error == b"e"


def test_run_rejects_stream_options_before_launching() -> None:
    launcher = FakeLauncher()

    with pytest.raises(SpawnUsageError, match="options cannot contain stdout, stderr"):
        Spawner(launcher).run("true", stdout=None, stderr=None)

    assert launcher.calls == []


def test_run_does_not_mutate_params() -> None:
    params = {"--user": "bob", None: ["a", "b"]}
    snapshot = copy.deepcopy(params)

    Spawner(FakeLauncher()).run("true", params=params)

    assert params == snapshot


def test_run_translates_missing_command() -> None:
    launcher = FakeLauncher(missing_commands=["XXXXX"])

    with pytest.raises(NoSuchCommandError) as exc_info:
        Spawner(launcher).run("XXXXX", params={"--user=": "bob"})

    assert str(exc_info.value) == "No such file or directory - XXXXX"
    assert isinstance(exc_info.value.__cause__, FileNotFoundError)


def test_run_other_errors_propagate_unchanged() -> None:
    with pytest.raises(RuntimeError, match="Spawning is not permitted"):
        Spawner(DisabledLauncher()).run("true")


@pytest.mark.parametrize("command", ["", "   "])
def test_run_rejects_empty_command(command: str) -> None:
    with pytest.raises(SpawnUsageError, match="command cannot be empty"):
        Spawner(FakeLauncher()).run(command)


def test_run_environment_overlay() -> None:
    """Test that per-call env wins over the spawner's env and values become text."""
    launcher = FakeLauncher()
    spawner = Spawner(launcher, env={"LC_ALL": "C", "SHARED": "spawner"})

    spawner.run("env", env={"SHARED": "call", "COUNT": 3, "UNSET_ME": None})

    assert launcher.calls[0].env == {
        "LC_ALL": "C",
        "SHARED": "call",
        "COUNT": "3",
        "UNSET_ME": None,
    }


def test_run_pipeline() -> None:
    launcher = FakeLauncher(outcomes={"wc": ProcessOutcome(b"2\n", b"", 0, 77)})

    result = Spawner(launcher).run(["ls", ("grep", {None: "a b"}), ("wc", ["-l"])], in_data="x")

    assert result.command_line == ("ls", "grep a\\ b", "wc -l")
    assert result.output == "2\n"
    assert result.pid == 77
    call = launcher.calls[0]
    assert call.kind == "pipeline"
    assert call.options.in_data == b"x"


def test_run_pipeline_rejects_params() -> None:
    with pytest.raises(SpawnUsageError, match="params cannot be combined with a pipeline"):
        Spawner(FakeLauncher()).run(["ls", "wc"], params=["-l"])


def test_run_pipeline_rejects_empty_list() -> None:
    with pytest.raises(SpawnUsageError, match="at least one command"):
        Spawner(FakeLauncher()).run([])


def test_run_pipeline_missing_stage() -> None:
    launcher = FakeLauncher(missing_commands=["nosuchstage"])

    with pytest.raises(NoSuchCommandError, match="nosuchstage"):
        Spawner(launcher).run(["echo hi", "nosuchstage"])


def test_run_checked_returns_result_on_success() -> None:
    result = Spawner(FakeLauncher()).run_checked("true")

    assert result.success


def test_run_checked_raises_and_logs(caplog: pytest.LogCaptureFixture) -> None:
    launcher = FakeLauncher(outcomes={"false": ProcessOutcome(b"", b"it broke\n", 1, 5)})
    spawner = Spawner(launcher)

    with caplog.at_level(logging.ERROR, logger="safespawn"):
        with pytest.raises(CommandResultError) as exc_info:
            spawner.run_checked("false")

    assert str(exc_info.value) == "false exit code: 1"
    assert exc_info.value.result.error == "it broke\n"
    messages = [record.getMessage() for record in caplog.records]
    assert messages == ["safespawn: false exit code: 1", "safespawn: it broke\n"]


def test_run_checked_message_excludes_params() -> None:
    launcher = FakeLauncher(default_outcome=ProcessOutcome(b"", b"", 2, 5))

    with pytest.raises(CommandResultError, match=r"^login exit code: 2$"):
        Spawner(launcher).run_checked("login", params={"--password": "hunter2"})


def test_run_checked_pipeline_message() -> None:
    launcher = FakeLauncher(default_outcome=ProcessOutcome(b"", b"", 1, 5))

    with pytest.raises(CommandResultError, match=r"ls \| grep exit code: 1"):
        Spawner(launcher).run_checked(["ls", ("grep", ["x"])])


def test_run_checked_uses_injected_logger(caplog: pytest.LogCaptureFixture) -> None:
    launcher = FakeLauncher(default_outcome=ProcessOutcome(b"", b"", 3, 5))
    spawner = Spawner(launcher, logger=logging.getLogger("myapp.commands"))

    with caplog.at_level(logging.ERROR, logger="myapp.commands"):
        with pytest.raises(CommandResultError):
            spawner.run_checked("thing")

    assert {record.name for record in caplog.records} == {"myapp.commands"}


def test_run_detached_returns_pid() -> None:
    launcher = FakeLauncher(detached_pid=999)

    pid = Spawner(launcher).run_detached("sleep", params=[5], chdir="/tmp")

    assert pid == 999
    call = launcher.calls[0]
    assert call.kind == "detached"
    assert call.command_lines == ("sleep 5",)


def test_run_detached_rejects_in_data() -> None:
    launcher = FakeLauncher()

    with pytest.raises(SpawnUsageError, match="options cannot contain in_data"):
        Spawner(launcher).run_detached("cat", in_data="x")

    assert launcher.calls == []


def test_run_detached_allows_stream_redirection() -> None:
    launcher = FakeLauncher()

    Spawner(launcher).run_detached("daemon", stdout=None)

    assert launcher.calls[0].options.spawn_kwargs == {"stdout": None}


def test_run_detached_rejects_pipeline() -> None:
    with pytest.raises(SpawnUsageError, match="pipelines"):
        Spawner(FakeLauncher()).run_detached(["ls", "wc"])  # type: ignore[arg-type]


def test_run_detached_translates_missing_command() -> None:
    launcher = FakeLauncher(missing_commands=["nope"])

    with pytest.raises(NoSuchCommandError, match="No such file or directory - nope"):
        Spawner(launcher).run_detached("nope", params=["--flag"])


def test_from_config_applies_env() -> None:
    launcher = FakeLauncher()
    spawner = Spawner.from_config(SpawnConfig(env={"LC_ALL": "C"}), launcher)

    spawner.run("true")

    assert launcher.calls[0].env == {"LC_ALL": "C"}


def test_build_command_line_does_not_launch() -> None:
    launcher = FakeLauncher()

    command_line = Spawner(launcher).build_command_line("git", ["log", Flag("oneline")])

    assert command_line == "git log --oneline"
    assert launcher.calls == []


def test_run_on_spawn_receives_pid_before_result() -> None:
    launcher = FakeLauncher(outcomes={"sleep": ProcessOutcome(b"", b"", 0, 808)})
    seen: list[int] = []

    result = Spawner(launcher).run("sleep", params=[1], on_spawn=seen.append)

    assert seen == [808]
    assert result.pid == 808


def test_run_pipeline_on_spawn_receives_last_stage_pid() -> None:
    launcher = FakeLauncher(outcomes={"wc": ProcessOutcome(b"", b"", 0, 31)})
    seen: list[int] = []

    Spawner(launcher).run(["ls", "wc"], on_spawn=seen.append)

    assert seen == [31]


def test_run_detached_rejects_capture_output() -> None:
    launcher = FakeLauncher()

    with pytest.raises(SpawnUsageError, match="options cannot contain capture_output"):
        Spawner(launcher).run_detached("true", capture_output=True)

    assert launcher.calls == []


class _MissingDirectoryLauncher(FakeLauncher):
    """Raises the error Popen gives for a working directory that does not exist."""

    def launch(
        self,
        env: Mapping[str, str | None],
        command_line: str,
        options: LaunchOptions,
    ) -> ProcessOutcome:
        raise FileNotFoundError(errno.ENOENT, "No such file or directory", str(options.chdir))


def test_run_missing_working_directory_is_not_a_missing_command() -> None:
    spawner = Spawner(_MissingDirectoryLauncher())

    with pytest.raises(FileNotFoundError) as exc_info:
        spawner.run("echo", chdir="/nonexistent dir/x")

    assert not isinstance(exc_info.value, NoSuchCommandError)
    assert exc_info.value.filename == "/nonexistent dir/x"
