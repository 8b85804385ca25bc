"""
Process Runner

Spawns external tools (yt-dlp, ffmpeg, whisper.cpp, ONNX CLIs) with a timeout
and bounded output capture. Each child runs in its own session so a timeout or
a cancelled task kills the whole process group, shell children included.
"""

import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from linkdigest.core.config import Config
from linkdigest.core.errors import ProcessSpawnError, ProcessTimeoutError

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 65536


@dataclass
class ProcessResult:
    exit_code: Optional[int]
    stdout: str
    stderr: str
    signal: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


async def _read_bounded(stream: Optional[asyncio.StreamReader], limit: int) -> bytes:
    """Drain a pipe, keeping at most `limit` bytes"""
    if stream is None:
        return b''
    buffer = bytearray()
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        remaining = limit - len(buffer)
        if remaining > 0:
            buffer.extend(chunk[:remaining])
    return bytes(buffer)


def _signal_name(returncode: Optional[int]) -> Optional[str]:
    if returncode is None or returncode >= 0:
        return None
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return f"SIG{-returncode}"


def _kill_process_group(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        if hasattr(os, 'killpg'):
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass


async def run_process(
    command: Union[str, Sequence[str]],
    *,
    cwd: Optional[Union[str, Path]] = None,
    timeout: Optional[float] = None,
    env: Optional[Mapping[str, str]] = None,
    label: Optional[str] = None,
    stdout_limit: int = Config.MAX_STDOUT_BYTES,
    stderr_limit: int = Config.MAX_STDERR_BYTES,
) -> ProcessResult:
    """
    Run a command and collect its exit status and bounded output

    Args:
        command: argv sequence (executed directly) or a string (run through the shell)
        cwd: Working directory for the child
        timeout: Seconds before the process group is killed
        env: Full environment for the child (inherits ours when omitted)
        label: Stage name used in error messages (defaults to the executable)
        stdout_limit: Bytes of stdout kept; the rest is read and dropped
        stderr_limit: Bytes of stderr kept; the rest is read and dropped

    Returns:
        ProcessResult (non-zero exits are returned, not raised)

    Raises:
        ProcessSpawnError: executable could not be started
        ProcessTimeoutError: timeout expired and the process was killed
    """
    shell = isinstance(command, str)
    if label is None:
        label = command.split(' ', 1)[0] if shell else Path(str(command[0])).name

    spawn_kwargs = dict(
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd else None,
        env=dict(env) if env is not None else None,
        start_new_session=True,
    )

    try:
        if shell:
            proc = await asyncio.create_subprocess_shell(command, **spawn_kwargs)
        else:
            proc = await asyncio.create_subprocess_exec(*[str(arg) for arg in command], **spawn_kwargs)
    except OSError as e:
        raise ProcessSpawnError(label, f"failed to start: {e}") from e

    logger.debug(f"🔧 [PROCESS] Started {label} (pid {proc.pid})")

    async def _collect():
        return await asyncio.gather(
            _read_bounded(proc.stdout, stdout_limit),
            _read_bounded(proc.stderr, stderr_limit),
            proc.wait(),
        )

    try:
        stdout, stderr, returncode = await asyncio.wait_for(_collect(), timeout=timeout)
    except asyncio.TimeoutError:
        _kill_process_group(proc)
        await proc.wait()
        logger.warning(f"⏱️ [PROCESS] {label} killed after {timeout}s")
        raise ProcessTimeoutError(label, timeout)
    except asyncio.CancelledError:
        _kill_process_group(proc)
        await proc.wait()
        logger.warning(f"🛑 [PROCESS] {label} killed (cancelled)")
        raise

    signal_name = _signal_name(returncode)
    return ProcessResult(
        exit_code=None if signal_name else returncode,
        stdout=stdout.decode('utf-8', errors='replace'),
        stderr=stderr.decode('utf-8', errors='replace'),
        signal=signal_name,
    )
