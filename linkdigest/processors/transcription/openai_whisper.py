#!/usr/bin/env python3
"""
OpenAI Whisper Transcriber

Transcribes audio/video files using the OpenAI Whisper API.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from openai import OpenAI

from linkdigest.core.config import Config
from linkdigest.core.errors import EmptyProviderOutputError, PipelineError, wrap_error
from linkdigest.core.types import PROVIDER_WHISPER
from linkdigest.processors.transcription.types import ProviderResult


class OpenAIWhisperProvider:
    provider_id = PROVIDER_WHISPER

    def __init__(self, api_key: Optional[str], client: Optional[OpenAI] = None,
                 model: str = Config.WHISPER_MODEL):
        self.api_key = api_key
        self.model = model
        self._client = client
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def is_available(self) -> bool:
        return bool(self.api_key) or self._client is not None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def _transcribe_sync(self, file_path: Path) -> str:
        file_size = file_path.stat().st_size
        max_size = Config.MAX_WHISPER_FILE_SIZE_MB * 1024 * 1024
        if file_size > max_size:
            raise PipelineError(
                self.provider_id,
                f"file size ({file_size / 1024 / 1024:.1f}MB) exceeds OpenAI Whisper limit of "
                f"{Config.MAX_WHISPER_FILE_SIZE_MB}MB"
            )

        with open(file_path, 'rb') as audio_file:
            self.logger.info("📡 Sending file to OpenAI Whisper API...")
            transcript = self.client.audio.transcriptions.create(model=self.model, file=audio_file)

        return (getattr(transcript, 'text', None) or '').strip()

    async def transcribe(self, file_path: Path, media_type: Optional[str]) -> ProviderResult:
        notes: List[str] = []
        provider = self.provider_id
        try:
            text = await asyncio.to_thread(self._transcribe_sync, Path(file_path))
        except PipelineError as e:
            return ProviderResult.failure(e, provider, notes)
        except Exception as e:
            self.logger.warning(f"⚠️ [WHISPER] Transcription failed: {e}")
            return ProviderResult.failure(wrap_error(f"{provider} failed", e), provider, notes)

        if not text:
            return ProviderResult.failure(EmptyProviderOutputError(provider), provider, notes)

        self.logger.info(f"✅ [WHISPER] Transcription completed ({len(text):,} chars)")
        return ProviderResult.success(text, provider, notes)
