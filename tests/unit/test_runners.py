"""Unit tests for the shell command runner."""

import asyncio
import sys

import pytest

from taskwave.execution import ShellCommandRunner

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell required")


def test_format_command_quotes_fields() -> None:
    runner = ShellCommandRunner("echo {id} {title}")

    assert runner.format_command({"id": "T1", "title": "two words"}) == "echo T1 'two words'"


def test_format_command_non_mapping_payload() -> None:
    runner = ShellCommandRunner("echo {payload}")

    assert runner.format_command("T1") == "echo T1"


def test_unknown_field() -> None:
    runner = ShellCommandRunner("echo {missing}")

    with pytest.raises(ValueError) as exc_info:
        runner.format_command({"id": "T1"})

    assert "missing" in str(exc_info.value)


@pytest.mark.asyncio
async def test_success_captures_output() -> None:
    runner = ShellCommandRunner("echo built {id}")

    success, output = await runner({"id": "T1"})

    assert success is True
    assert output == "built T1"


@pytest.mark.asyncio
async def test_failure_reports_status_and_stderr() -> None:
    runner = ShellCommandRunner("echo oops >&2; exit 3")

    success, message = await runner({"id": "T1"})

    assert success is False
    assert "status 3" in message
    assert "oops" in message


@pytest.mark.asyncio
async def test_cwd_and_env(tmp_path) -> None:
    runner = ShellCommandRunner('echo "$GREETING" > out.txt', cwd=tmp_path, env={"GREETING": "hi"})

    success, _ = await runner({"id": "T1"})

    assert success is True
    assert (tmp_path / "out.txt").read_text().strip() == "hi"


@pytest.mark.asyncio
async def test_doubled_braces_are_literal() -> None:
    runner = ShellCommandRunner("echo '{{print $1}}' {id}")

    assert runner.format_command({"id": "T1"}) == "echo '{print $1}' T1"

    success, output = await runner({"id": "T1"})

    assert success is True
    assert output == "{print $1} T1"


@pytest.mark.asyncio
async def test_cancelled_process_is_reaped(monkeypatch: pytest.MonkeyPatch) -> None:
    processes: list[asyncio.subprocess.Process] = []
    original = asyncio.create_subprocess_shell

    async def recording(*args, **kwargs):
        process = await original(*args, **kwargs)
        processes.append(process)
        return process

    monkeypatch.setattr(asyncio, "create_subprocess_shell", recording)
    runner = ShellCommandRunner("sleep 30")

    with pytest.raises(TimeoutError):
        await asyncio.wait_for(runner({"id": "T1"}), timeout=0.2)

    assert len(processes) == 1
    assert processes[0].returncode is not None
