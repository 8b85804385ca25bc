"""
YouTube Captions

Reads published captions through youtube-transcript-api. Manual English
captions are preferred over auto-generated ones.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from youtube_transcript_api import YouTubeTranscriptApi

from linkdigest.core.content_detector import extract_youtube_video_id
from linkdigest.core.errors import EmptyProviderOutputError, PipelineError, wrap_error
from linkdigest.core.types import PROVIDER_YOUTUBE_CAPTIONS
from linkdigest.processors.transcription.types import ProviderResult


class YouTubeCaptionsProvider:
    """Handles YouTube caption extraction"""

    provider_id = PROVIDER_YOUTUBE_CAPTIONS

    def __init__(self, languages: Sequence[str] = ('en',), api: Optional[YouTubeTranscriptApi] = None):
        self.languages = list(languages)
        self._api = api
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def api(self) -> YouTubeTranscriptApi:
        if self._api is None:
            self._api = YouTubeTranscriptApi()
        return self._api

    def get_caption_entries(self, video_id: str) -> Dict:
        """
        Extract caption entries from a YouTube video

        Args:
            video_id: YouTube video ID

        Returns:
            Dictionary with 'entries' (start/text/duration dicts) and 'type'

        Raises:
            PipelineError when no caption track is available
        """
        transcript_list = self.api.list(video_id)

        # Try to get a manually created transcript first
        try:
            transcript = transcript_list.find_manually_created_transcript(self.languages)
            transcript_data = transcript.fetch()
            transcript_type = 'manual'
        except Exception:
            # Fall back to auto-generated transcript
            try:
                transcript = transcript_list.find_generated_transcript(self.languages)
                transcript_data = transcript.fetch()
                transcript_type = 'auto_generated'
            except Exception:
                raise PipelineError(self.provider_id, f"no {'/'.join(self.languages)} captions available")

        entries = []
        for entry in transcript_data:
            entries.append({
                'start': getattr(entry, 'start', 0),
                'text': entry.text,
                'duration': getattr(entry, 'duration', 0),
            })

        return {'entries': entries, 'type': transcript_type}

    async def fetch(self, url_or_id: str) -> ProviderResult:
        """Fetch captions for a YouTube URL or bare video id"""
        notes: List[str] = []
        provider = self.provider_id
        video_id = extract_youtube_video_id(url_or_id) or url_or_id

        try:
            data = await asyncio.to_thread(self.get_caption_entries, video_id)
        except PipelineError as e:
            self.logger.info(f"ℹ️ [CAPTIONS] {e}")
            return ProviderResult.failure(e, provider, notes)
        except Exception as e:
            self.logger.warning(f"⚠️ [CAPTIONS] Could not extract captions for {video_id}: {e}")
            return ProviderResult.failure(wrap_error(provider, e), provider, notes)

        text = ' '.join(
            entry['text'].replace('\n', ' ').strip() for entry in data['entries'] if entry['text']
        ).strip()
        if not text:
            return ProviderResult.failure(EmptyProviderOutputError(provider), provider, notes)

        if data['type'] == 'auto_generated':
            notes.append("youtube-captions: using auto-generated captions")
        self.logger.info(f"✅ [CAPTIONS] {len(data['entries'])} caption entries ({data['type']})")
        return ProviderResult.success(text, provider, notes)
