#!/usr/bin/env python3
"""
Transcript Resolver

Turns a classified media source into transcript text:

1. Non-media pages short-circuit with no transcript
2. The transcript cache is consulted (unless bypassed); a hit is final
3. YouTube sources try published captions first
4. Media is acquired once (yt-dlp, direct download or the local file)
5. Available providers run one at a time until one returns text

Provider failures never escape: they are folded into diagnostics notes and the
resolution ends with text=None when every candidate failed.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable, Dict, List, Optional, Sequence

from linkdigest.core.errors import (
    AllProvidersExhaustedError,
    PipelineError,
    ResolutionTimeoutError,
    wrap_error,
)
from linkdigest.core.text_utils import join_notes
from linkdigest.core.types import (
    CACHE_BYPASSED,
    CACHE_HIT,
    CACHE_MISS,
    CACHE_MODE_BYPASS,
    CACHE_MODE_DEFAULT,
    MediaSource,
    SOURCE_FILE,
    SOURCE_YOUTUBE,
    TranscriptDiagnostics,
    TranscriptResolution,
    YT_DLP_SOURCE_PREFIX,
)
from linkdigest.processors.audio_extractor import AudioExtractor, downloaded_media
from linkdigest.processors.transcription.types import ProviderResult


@dataclass
class CachedTranscript:
    text: str
    source: Optional[str] = None


class TranscriptCache:
    """Interface for transcript result caches keyed by source URL or path"""

    async def get(self, key: str) -> Optional[CachedTranscript]:
        raise NotImplementedError

    async def set(self, key: str, text: str, source: Optional[str]) -> None:
        raise NotImplementedError


class MemoryTranscriptCache(TranscriptCache):
    """In-process transcript cache"""

    def __init__(self):
        self._entries: Dict[str, CachedTranscript] = {}

    async def get(self, key: str) -> Optional[CachedTranscript]:
        return self._entries.get(key)

    async def set(self, key: str, text: str, source: Optional[str]) -> None:
        self._entries[key] = CachedTranscript(text=text, source=source)

    def __len__(self) -> int:
        return len(self._entries)


def _cache_key(source: MediaSource) -> str:
    if source.kind == SOURCE_FILE and source.file_path is not None:
        return str(Path(source.file_path).resolve())
    return source.url or ''


class TranscriptResolver:
    """Resolves transcripts by trying providers in a fixed order"""

    def __init__(
        self,
        providers: Sequence,
        audio_extractor: Optional[AudioExtractor] = None,
        caption_provider=None,
        transcript_cache: Optional[TranscriptCache] = None,
        media_downloader: Callable[[str], contextlib.AbstractAsyncContextManager] = downloaded_media,
    ):
        self.providers = list(providers)
        self.audio_extractor = audio_extractor or AudioExtractor()
        self.caption_provider = caption_provider
        self.transcript_cache = transcript_cache
        self.media_downloader = media_downloader
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def candidate_providers(self) -> List:
        """Providers ready to run, in resolution order"""
        return [provider for provider in self.providers if provider.is_available()]

    async def resolve(
        self,
        source: MediaSource,
        cache_mode: str = CACHE_MODE_DEFAULT,
        timeout: Optional[float] = None,
    ) -> TranscriptResolution:
        """
        Resolve a transcript for a classified source

        Args:
            source: Output of SourceDetector.classify (or a podcast enclosure)
            cache_mode: 'default' or 'bypass'
            timeout: Optional deadline in seconds for the whole resolution

        Returns:
            TranscriptResolution; text is None when nothing could be transcribed

        Raises:
            ResolutionTimeoutError: the deadline expired (in-flight work is cancelled)
        """
        if timeout is None:
            return await self._resolve(source, cache_mode)
        try:
            return await asyncio.wait_for(self._resolve(source, cache_mode), timeout)
        except asyncio.TimeoutError:
            self.logger.warning(f"⏱️ [TRANSCRIPT] Resolution timed out after {timeout}s")
            raise ResolutionTimeoutError(timeout) from None

    async def _resolve(self, source: MediaSource, cache_mode: str) -> TranscriptResolution:
        diagnostics = TranscriptDiagnostics(cache_mode=cache_mode)
        notes: List[str] = []

        if not source.is_media:
            return TranscriptResolution(text=None, source=None, diagnostics=diagnostics)

        key = _cache_key(source)
        use_cache = self.transcript_cache is not None and cache_mode != CACHE_MODE_BYPASS

        if cache_mode == CACHE_MODE_BYPASS:
            diagnostics.cache_status = CACHE_BYPASSED
            notes.append("Cache bypass requested")
        elif use_cache:
            try:
                cached = await self.transcript_cache.get(key)
            except Exception as e:
                self.logger.warning(f"⚠️ [TRANSCRIPT] Cache lookup failed for {key}: {e}")
                notes.append(f"transcript cache: {str(e) or e.__class__.__name__}")
                cached = None
            if cached is not None and cached.text:
                self.logger.info(f"💾 [TRANSCRIPT] Cache hit for {key}")
                diagnostics.cache_status = CACHE_HIT
                diagnostics.text_provided = True
                diagnostics.provider = cached.source
                return TranscriptResolution(text=cached.text, source=cached.source, diagnostics=diagnostics)
            diagnostics.cache_status = CACHE_MISS

        resolution = await self._run_chain(source, diagnostics, notes)
        diagnostics.notes = join_notes(notes)

        if resolution.text and use_cache:
            try:
                await self.transcript_cache.set(key, resolution.text, resolution.source)
            except Exception as e:
                self.logger.warning(f"⚠️ [TRANSCRIPT] Failed to cache transcript for {key}: {e}")

        return resolution

    async def _run_chain(self, source: MediaSource, diagnostics: TranscriptDiagnostics,
                         notes: List[str]) -> TranscriptResolution:
        attempted = diagnostics.attempted_providers
        reasons: List[str] = []

        if source.kind == SOURCE_YOUTUBE and self.caption_provider is not None:
            attempted.append(self.caption_provider.provider_id)
            self.logger.info(f"🎬 [TRANSCRIPT] Trying YouTube captions for {source.url}")
            result = await self._call(self.caption_provider.provider_id,
                                      self.caption_provider.fetch(source.url))
            if self._accept(result, result.provider, diagnostics, notes, reasons):
                return TranscriptResolution(text=result.text.strip(), source=result.provider,
                                            diagnostics=diagnostics)

        candidates = self.candidate_providers()
        if not candidates:
            notes.append("no transcription providers configured")
            self.logger.warning("⚠️ [TRANSCRIPT] No transcription providers available")
            return self._exhausted(attempted, reasons, diagnostics)

        async with contextlib.AsyncExitStack() as stack:
            try:
                media_path = await stack.enter_async_context(self._acquire_media(source))
            except Exception as e:
                error = e if isinstance(e, PipelineError) else wrap_error('media', e)
                self.logger.warning(f"❌ [TRANSCRIPT] Media acquisition failed: {error}")
                notes.append(str(error))
                return TranscriptResolution(text=None, source=None, diagnostics=diagnostics, error=error)

            media_type = 'audio/mpeg' if source.kind == SOURCE_YOUTUBE else source.media_type
            for provider in candidates:
                provider_id = provider.provider_id
                attempted.append(provider_id)
                self.logger.info(f"🎙️ [TRANSCRIPT] Trying provider: {provider_id}")
                result = await self._call(provider_id, provider.transcribe(media_path, media_type))

                source_name = provider_id
                if source.kind == SOURCE_YOUTUBE:
                    source_name = f"{YT_DLP_SOURCE_PREFIX}{provider_id}"
                if self._accept(result, source_name, diagnostics, notes, reasons):
                    return TranscriptResolution(text=result.text.strip(), source=source_name,
                                                diagnostics=diagnostics)

        return self._exhausted(attempted, reasons, diagnostics)

    async def _call(self, provider_id: str, attempt) -> ProviderResult:
        try:
            return await attempt
        except Exception as e:
            return ProviderResult.failure(wrap_error(provider_id, e), provider_id)

    def _accept(self, result: ProviderResult, source_name: str, diagnostics: TranscriptDiagnostics,
                notes: List[str], reasons: List[str]) -> bool:
        notes.extend(result.notes)
        if result.ok and result.text.strip():
            self.logger.info(f"✅ [TRANSCRIPT] Transcript from {source_name} ({len(result.text):,} chars)")
            diagnostics.text_provided = True
            diagnostics.provider = source_name
            return True

        reason = str(result.error) if result.error else f"{result.provider}: returned empty text"
        self.logger.warning(f"⚠️ [TRANSCRIPT] {reason}")
        notes.append(reason)
        reasons.append(reason)
        return False

    def _exhausted(self, attempted: List[str], reasons: List[str],
                   diagnostics: TranscriptDiagnostics) -> TranscriptResolution:
        error = AllProvidersExhaustedError(attempted, reasons)
        self.logger.warning(f"❌ [TRANSCRIPT] {error}")
        return TranscriptResolution(text=None, source=None, diagnostics=diagnostics, error=error)

    @contextlib.asynccontextmanager
    async def _acquire_media(self, source: MediaSource) -> AsyncIterator[Path]:
        """Yield a local media file for the source, cleaning up downloads on exit"""
        if source.kind == SOURCE_FILE:
            if source.file_path is None or not Path(source.file_path).is_file():
                raise PipelineError('media', f"file not found: {source.file_path}")
            yield Path(source.file_path)
        elif source.kind == SOURCE_YOUTUBE:
            async with self.audio_extractor.extracted(source.url) as path:
                yield path
        else:
            async with self.media_downloader(source.url) as path:
                yield path
