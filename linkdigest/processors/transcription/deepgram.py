#!/usr/bin/env python3
"""
DeepGram Transcriber

Transcribes audio/video files with the DeepGram API (nova-2, smart formatting).
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from deepgram import DeepgramClient

from linkdigest.core.config import Config
from linkdigest.core.errors import EmptyProviderOutputError, wrap_error
from linkdigest.core.types import PROVIDER_DEEPGRAM
from linkdigest.processors.transcription.types import ProviderResult


class DeepgramProvider:
    provider_id = PROVIDER_DEEPGRAM

    def __init__(self, api_key: Optional[str], client: Optional[DeepgramClient] = None,
                 language: Optional[str] = None):
        self.api_key = api_key
        self.language = language
        self._client = client
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def is_available(self) -> bool:
        return bool(self.api_key) or self._client is not None

    @property
    def client(self) -> DeepgramClient:
        if self._client is None:
            self._client = DeepgramClient(api_key=self.api_key)
        return self._client

    def _transcribe_sync(self, file_path: Path) -> str:
        with open(file_path, 'rb') as audio_file:
            buffer_data = audio_file.read()

        options = {
            "model": Config.DEEPGRAM_MODEL,
            "smart_format": True,
            "punctuate": True,
            "paragraphs": True,
            "diarize": False,
        }
        if self.language:
            options["language"] = self.language

        self.logger.info(f"📡 Sending audio to DeepGram API ({len(buffer_data) / 1024 / 1024:.1f}MB)...")
        response = self.client.listen.v1.media.transcribe_file(request=buffer_data, **options)

        alternative = response.results.channels[0].alternatives[0]
        return (alternative.transcript or '').strip()

    async def transcribe(self, file_path: Path, media_type: Optional[str]) -> ProviderResult:
        notes: List[str] = []
        provider = self.provider_id
        try:
            text = await asyncio.to_thread(self._transcribe_sync, Path(file_path))
        except Exception as e:
            self.logger.warning(f"⚠️ [DEEPGRAM] Transcription failed: {e}")
            return ProviderResult.failure(wrap_error(f"{provider} failed", e), provider, notes)

        if not text:
            return ProviderResult.failure(EmptyProviderOutputError(provider), provider, notes)

        self.logger.info(f"✅ [DEEPGRAM] Transcription completed ({len(text):,} chars)")
        return ProviderResult.success(text, provider, notes)
