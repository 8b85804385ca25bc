"""
Value objects shared by the content extraction pipeline.

All records are created fresh per request. Diagnostics are appended to while a
single resolution runs and handed over untouched afterwards.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

# Cache modes
CACHE_MODE_DEFAULT = 'default'
CACHE_MODE_BYPASS = 'bypass'
CACHE_MODES = (CACHE_MODE_DEFAULT, CACHE_MODE_BYPASS)

# Cache statuses
CACHE_UNKNOWN = 'unknown'
CACHE_MISS = 'miss'
CACHE_HIT = 'hit'
CACHE_BYPASSED = 'bypassed'

# Source kinds
SOURCE_YOUTUBE = 'youtube'
SOURCE_PODCAST = 'podcast'
SOURCE_MEDIA_URL = 'media_url'
SOURCE_FILE = 'file'
SOURCE_PAGE = 'page'

# Provider ids
PROVIDER_YOUTUBE_CAPTIONS = 'youtube-captions'
PROVIDER_WHISPER = 'whisper'
PROVIDER_DEEPGRAM = 'deepgram'
PROVIDER_WHISPER_CPP = 'whisper-cpp'
PROVIDER_ONNX_PARAKEET = 'onnx-parakeet'
PROVIDER_ONNX_CANARY = 'onnx-canary'

YT_DLP_SOURCE_PREFIX = 'yt-dlp+'


@dataclass
class TranscriptDiagnostics:
    cache_mode: str = CACHE_MODE_DEFAULT
    cache_status: str = CACHE_UNKNOWN
    text_provided: bool = False
    provider: Optional[str] = None
    attempted_providers: List[str] = field(default_factory=list)
    notes: Optional[str] = None


@dataclass
class FirecrawlDiagnostics:
    attempted: bool = False
    used: bool = False
    cache_mode: str = CACHE_MODE_DEFAULT
    cache_status: str = CACHE_UNKNOWN
    notes: Optional[str] = None


@dataclass
class ContentDiagnostics:
    """Which strategy produced the content, plus backend diagnostics"""
    strategy: str
    firecrawl: FirecrawlDiagnostics
    transcript: TranscriptDiagnostics


@dataclass
class TranscriptResolution:
    """
    Outcome of transcript resolution.

    ``text`` is None when no transcript was obtainable; ``error`` then holds
    the failure that ended the attempt (if any provider or download ran).
    """
    text: Optional[str] = None
    source: Optional[str] = None
    diagnostics: Optional[TranscriptDiagnostics] = None
    error: Optional[Exception] = None


@dataclass(frozen=True)
class ExtractedLinkContent:
    url: str
    title: Optional[str]
    description: Optional[str]
    site_name: Optional[str]
    content: str
    truncated: bool
    total_characters: int
    word_count: int
    transcript_characters: Optional[int]
    transcript_lines: Optional[int]
    transcript_source: Optional[str]
    diagnostics: ContentDiagnostics


@dataclass(frozen=True)
class ModelArtifacts:
    model_dir: Path
    model_path: Path
    vocab_path: Path


@dataclass
class MediaSource:
    """Classified input: where spoken content (if any) comes from"""
    kind: str
    url: str
    file_path: Optional[Path] = None
    media_type: Optional[str] = None
    title: Optional[str] = None

    @property
    def is_media(self) -> bool:
        return self.kind != SOURCE_PAGE
