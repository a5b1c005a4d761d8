"""Integration tests for SubprocessLauncher against real processes.

These tests spawn POSIX utilities (echo, cat, sh, sleep) and are skipped on
other platforms.
"""

import os
import sys
import time
from pathlib import Path

import pytest

from safespawn.launcher import SubprocessLauncher
from safespawn.options import LaunchOptions

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="requires POSIX utilities")


def test_launch_captures_output() -> None:
    outcome = SubprocessLauncher().launch({}, "echo hi", LaunchOptions())

    assert outcome.output == b"hi\n"
    assert outcome.error == b""
    assert outcome.exit_status == 0
    assert outcome.pid is not None


def test_launch_feeds_stdin() -> None:
    outcome = SubprocessLauncher().launch({}, "cat", LaunchOptions(in_data=b"line1\nline2\n"))

    assert outcome.output == b"line1\nline2\n"


def test_launch_closes_stdin_without_data() -> None:
    """Test that a command reading stdin sees EOF instead of hanging."""
    outcome = SubprocessLauncher().launch({}, "cat", LaunchOptions())

    assert outcome.output == b""
    assert outcome.exit_status == 0


def test_launch_large_streams_do_not_deadlock() -> None:
    """Test input and output far larger than a pipe buffer in both directions."""
    data = b"0123456789abcdef" * 64 * 1024

    outcome = SubprocessLauncher().launch({}, "cat", LaunchOptions(in_data=data))

    assert outcome.output == data


def test_launch_large_error_output_does_not_deadlock() -> None:
    command_line = "head -c 200000 /dev/zero >&2; echo done"

    outcome = SubprocessLauncher().launch({}, command_line, LaunchOptions())

    assert len(outcome.error) == 200000
    assert outcome.output == b"done\n"


def test_launch_separates_error_output() -> None:
    outcome = SubprocessLauncher().launch({}, "echo out; echo err >&2; exit 3", LaunchOptions())

    assert outcome.output == b"out\n"
    assert outcome.error == b"err\n"
    assert outcome.exit_status == 3


def test_launch_combined_output() -> None:
    outcome = SubprocessLauncher().launch(
        {}, "echo out; echo err >&2", LaunchOptions(combined_output=True)
    )

    assert outcome.output == b"out\nerr\n"
    assert outcome.error == b""


def test_launch_missing_executable_raises() -> None:
    with pytest.raises(FileNotFoundError):
        SubprocessLauncher().launch({}, "doesnotexist123 --flag", LaunchOptions())


def test_launch_working_directory(tmp_path: Path) -> None:
    outcome = SubprocessLauncher().launch({}, "pwd", LaunchOptions(chdir=tmp_path))

    assert Path(outcome.output.decode().strip()).resolve() == tmp_path.resolve()


def test_launch_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SAFESPAWN_INHERITED", "yes")
    monkeypatch.setenv("SAFESPAWN_REMOVED", "yes")
    env = {"SAFESPAWN_ADDED": "added", "SAFESPAWN_REMOVED": None}
    command_line = 'echo "$SAFESPAWN_INHERITED:$SAFESPAWN_ADDED:${SAFESPAWN_REMOVED-unset}"'

    outcome = SubprocessLauncher().launch(env, command_line, LaunchOptions())

    assert outcome.output == b"yes:added:unset\n"


def test_launch_signal_exit_status_is_negative() -> None:
    outcome = SubprocessLauncher().launch({}, "kill -9 $$", LaunchOptions())

    assert outcome.exit_status == -9


def test_pipeline_passes_data_through_stages() -> None:
    outcome = SubprocessLauncher().launch_pipeline({}, ["cat", "cat"], LaunchOptions(in_data=b"x"))

    assert outcome.output == b"x"
    assert outcome.exit_status == 0


def test_pipeline_exit_status_is_last_stage() -> None:
    launcher = SubprocessLauncher()

    failing_last = launcher.launch_pipeline({}, ["echo hi", "false"], LaunchOptions())
    failing_first = launcher.launch_pipeline({}, ["false", "cat"], LaunchOptions())

    assert failing_last.exit_status == 1
    assert failing_first.exit_status == 0


def test_pipeline_collects_error_output_of_every_stage() -> None:
    outcome = SubprocessLauncher().launch_pipeline(
        {}, ["echo one >&2; echo data", "echo two >&2; cat"], LaunchOptions()
    )

    assert outcome.output == b"data\n"
    assert sorted(outcome.error.splitlines()) == [b"one", b"two"]


def test_pipeline_missing_stage_raises() -> None:
    with pytest.raises(FileNotFoundError):
        SubprocessLauncher().launch_pipeline({}, ["echo hi", "doesnotexist123"], LaunchOptions())


def test_custom_shell() -> None:
    outcome = SubprocessLauncher(shell="/bin/sh").launch({}, "echo $0", LaunchOptions())

    assert outcome.output == b"/bin/sh\n"


def test_detached_returns_pid_and_discards_output(tmp_path: Path) -> None:
    marker = tmp_path / "marker"

    pid = SubprocessLauncher().launch_detached(
        {}, f"echo noise; touch {marker}", LaunchOptions(chdir=tmp_path)
    )

    assert pid > 0
    deadline = time.monotonic() + 10
    while not marker.exists() and time.monotonic() < deadline:
        time.sleep(0.05)
    assert marker.exists()


def test_detached_runs_in_own_process_group() -> None:
    pid = SubprocessLauncher().launch_detached({}, "sleep 5", LaunchOptions())
    try:
        assert os.getpgid(pid) == pid
    finally:
        os.kill(pid, 9)


def test_on_spawn_failure_kills_started_processes() -> None:
    """Test that a raising callback leaves no running pipeline behind."""
    pids: list[int] = []

    def record_and_fail(pid: int) -> None:
        pids.append(pid)
        raise RuntimeError("stop")

    with pytest.raises(RuntimeError, match="stop"):
        SubprocessLauncher().launch_pipeline(
            {}, ["sleep 30", "sleep 30"], LaunchOptions(on_spawn=record_and_fail)
        )

    assert len(pids) == 1
    with pytest.raises(ProcessLookupError):
        os.kill(pids[0], 0)
