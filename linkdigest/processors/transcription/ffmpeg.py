"""
ffmpeg helpers shared by the local transcription engines.
"""

import contextlib
import logging
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import AsyncIterator, List, Optional

from linkdigest.core.config import Config
from linkdigest.core.errors import ProcessNonZeroExitError
from linkdigest.core.process_runner import run_process

logger = logging.getLogger(__name__)


def is_wav_media(media_type: Optional[str], file_path: Optional[Path] = None) -> bool:
    lower = (media_type or '').lower()
    if 'wav' in lower or 'wave' in lower:
        return True
    return bool(file_path and file_path.suffix.lower() == '.wav')


def is_ffmpeg_available(ffmpeg_path: Optional[str] = None) -> bool:
    return shutil.which(ffmpeg_path or 'ffmpeg') is not None


async def transcode_to_wav(input_path: Path, output_path: Path, ffmpeg_path: Optional[str] = None,
                           runner=run_process) -> None:
    """
    Transcode any media to 16 kHz mono WAV

    Raises:
        ProcessNonZeroExitError / ProcessTimeoutError / ProcessSpawnError
    """
    command: List[str] = [
        ffmpeg_path or 'ffmpeg',
        '-hide_banner', '-loglevel', 'error',
        '-y',
        '-i', str(input_path),
        '-vn',
        '-ac', '1',
        '-ar', '16000',
        '-f', 'wav',
        str(output_path),
    ]
    result = await runner(command, timeout=Config.FFMPEG_TIMEOUT, label='ffmpeg')
    if not result.ok:
        raise ProcessNonZeroExitError('ffmpeg', result.exit_code, result.stderr, result.signal)


@contextlib.asynccontextmanager
async def wav_input(file_path: Path, media_type: Optional[str], notes: List[str], label: str,
                    ffmpeg_path: Optional[str] = None, runner=run_process) -> AsyncIterator[Path]:
    """
    Yield a WAV version of the input, falling back to the original file

    A transcoded temp file is removed when the block exits. When ffmpeg is
    missing or fails the original path is yielded and a note recorded.
    """
    if is_wav_media(media_type, file_path):
        yield file_path
        return

    if not is_ffmpeg_available(ffmpeg_path):
        notes.append(f"{label}: proceeding without ffmpeg transcode (input not WAV)")
        yield file_path
        return

    output_path = Path(tempfile.gettempdir()) / f"linkdigest-{uuid.uuid4().hex}.wav"
    failure = None
    transcoded = False
    try:
        await transcode_to_wav(file_path, output_path, ffmpeg_path, runner=runner)
        transcoded = True
    except Exception as e:
        failure = e
    finally:
        if not transcoded:
            output_path.unlink(missing_ok=True)

    if failure is not None:
        logger.warning(f"⚠️ [FFMPEG] Transcode failed, using original input: {failure}")
        notes.append(f"{label}: ffmpeg transcode to WAV failed ({failure}); using original input")
        yield file_path
        return

    notes.append(f"{label}: transcoded media to 16kHz WAV via ffmpeg")
    try:
        yield output_path
    finally:
        output_path.unlink(missing_ok=True)
