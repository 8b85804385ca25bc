"""
whisper.cpp Transcriber

Local speech-to-text via the whisper.cpp CLI (`whisper-cli`) and a ggml model
file. whisper.cpp reads 16 kHz WAV, so other inputs are transcoded first.
"""

import logging
import shutil
from pathlib import Path
from typing import List, Optional

from linkdigest.core.config import Config
from linkdigest.core.errors import (
    CommandNotConfiguredError,
    EmptyProviderOutputError,
    ProcessNonZeroExitError,
    wrap_error,
)
from linkdigest.core.process_runner import run_process
from linkdigest.core.types import PROVIDER_WHISPER_CPP
from linkdigest.processors.transcription.ffmpeg import wav_input
from linkdigest.processors.transcription.types import ProviderResult


class WhisperCppProvider:
    provider_id = PROVIDER_WHISPER_CPP

    def __init__(
        self,
        binary: str = 'whisper-cli',
        model_path: Optional[str] = None,
        ffmpeg_path: Optional[str] = None,
        timeout: float = Config.TRANSCRIBE_COMMAND_TIMEOUT,
        runner=run_process,
    ):
        self.binary = binary
        self.model_path = Path(model_path).expanduser() if model_path else None
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout
        self.runner = runner
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def is_available(self) -> bool:
        """Ready when the binary is on PATH and the model file exists"""
        return (
            shutil.which(self.binary) is not None
            and self.model_path is not None
            and self.model_path.is_file()
        )

    async def transcribe(self, file_path: Path, media_type: Optional[str]) -> ProviderResult:
        notes: List[str] = []
        provider = self.provider_id

        if self.model_path is None or not self.model_path.is_file():
            return ProviderResult.failure(
                CommandNotConfiguredError(provider, 'WHISPER_CPP_MODEL_PATH', 'a ggml model file'),
                provider,
                notes,
            )

        try:
            async with wav_input(Path(file_path), media_type, notes, 'whisper.cpp',
                                 ffmpeg_path=self.ffmpeg_path, runner=self.runner) as input_path:
                self.logger.info(f"🎙️ [WHISPER.CPP] Transcribing {input_path.name} locally...")
                result = await self.runner(
                    [self.binary, '-m', str(self.model_path), '-f', str(input_path), '-nt', '-np'],
                    timeout=self.timeout,
                    label=provider,
                )
        except Exception as e:
            return ProviderResult.failure(wrap_error(f"{provider} failed", e), provider, notes)

        if not result.ok:
            return ProviderResult.failure(
                ProcessNonZeroExitError(provider, result.exit_code, result.stderr, result.signal),
                provider,
                notes,
            )

        text = ' '.join(line.strip() for line in result.stdout.splitlines() if line.strip())
        if not text:
            return ProviderResult.failure(EmptyProviderOutputError(provider), provider, notes)

        self.logger.info(f"✅ [WHISPER.CPP] Transcription complete ({len(text):,} chars)")
        return ProviderResult.success(text, provider, notes)
