"""
Tests for core/process_runner.py

Runs real short-lived shell commands to check exit status, output caps,
timeouts and signal reporting.
"""

import asyncio
import time

import pytest

from linkdigest.core.errors import ProcessSpawnError, ProcessTimeoutError
from linkdigest.core.process_runner import run_process


class TestRunProcess:
    """Tests for run_process() coroutine"""

    @pytest.mark.unit
    def test_collects_stdout_from_argv(self):
        """Should run an argv command and capture stdout"""
        result = asyncio.run(run_process(['printf', 'hello']))

        assert result.exit_code == 0
        assert result.ok is True
        assert result.stdout == 'hello'
        assert result.signal is None

    @pytest.mark.unit
    def test_runs_string_through_shell(self):
        """Should run a string command through the shell"""
        result = asyncio.run(run_process("printf 'a b' | tr ' ' '-'"))

        assert result.stdout == 'a-b'

    @pytest.mark.unit
    def test_reports_non_zero_exit(self):
        """Should return (not raise) a failed exit with stderr"""
        result = asyncio.run(run_process("echo oops >&2; exit 3"))

        assert result.exit_code == 3
        assert result.ok is False
        assert result.stderr.strip() == 'oops'

    @pytest.mark.unit
    def test_caps_stdout(self):
        """Should keep only stdout_limit bytes and drain the rest"""
        result = asyncio.run(run_process("head -c 100000 /dev/zero | tr '\\0' 'a'", stdout_limit=10))

        assert result.exit_code == 0
        assert result.stdout == 'a' * 10

    @pytest.mark.unit
    def test_caps_stderr(self):
        """Should keep only stderr_limit bytes"""
        result = asyncio.run(run_process("printf 'abcdefghij' >&2", stderr_limit=4))

        assert result.stderr == 'abcd'

    @pytest.mark.unit
    def test_timeout_kills_process(self):
        """Should kill a hung process and raise ProcessTimeoutError"""
        start = time.monotonic()
        with pytest.raises(ProcessTimeoutError) as exc_info:
            asyncio.run(run_process("sleep 10", timeout=0.3, label='sleeper'))

        assert time.monotonic() - start < 5
        assert str(exc_info.value).startswith('sleeper: timed out')

    @pytest.mark.unit
    def test_reports_signal(self):
        """Should report the signal name when the process is killed"""
        result = asyncio.run(run_process("kill -9 $$"))

        assert result.exit_code is None
        assert result.signal == 'SIGKILL'
        assert result.ok is False

    @pytest.mark.unit
    def test_spawn_failure_raises(self):
        """Should raise ProcessSpawnError for a missing executable"""
        with pytest.raises(ProcessSpawnError) as exc_info:
            asyncio.run(run_process(['/nonexistent/linkdigest-binary']))

        assert 'linkdigest-binary' in str(exc_info.value)

    @pytest.mark.unit
    def test_uses_working_directory(self, tmp_path):
        """Should run the command in cwd"""
        result = asyncio.run(run_process(['pwd'], cwd=tmp_path))

        assert result.stdout.strip() == str(tmp_path.resolve())

    @pytest.mark.unit
    def test_cancellation_kills_process(self):
        """Should kill the child and propagate cancellation"""
        async def scenario():
            task = asyncio.create_task(run_process("sleep 10"))
            await asyncio.sleep(0.2)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        start = time.monotonic()
        asyncio.run(scenario())
        assert time.monotonic() - start < 5
