#!/usr/bin/env python3
"""
Link Content

Builds an ExtractedLinkContent record for a URL or local media file:

- Classifies the input (YouTube, direct media, local file, podcast feed, page)
- Fetches the HTML document and/or scrapes it with Firecrawl
- Resolves a transcript for spoken content
- Chooses transcript text over page text and applies the content budget
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import httpx

from linkdigest.core.config import Config, TranscriptionSettings
from linkdigest.core.content_detector import SourceDetector, looks_like_feed, looks_like_feed_url
from linkdigest.core.document_parser import (
    ParsedDocument,
    parse_html_document,
    parse_podcast_feed,
    safe_hostname,
)
from linkdigest.core.errors import PipelineError
from linkdigest.core.fetcher import (
    FirecrawlScraper,
    ScrapePayload,
    fetch_html_document,
    fetch_with_firecrawl,
)
from linkdigest.core.text_utils import (
    ContentBudget,
    append_note,
    apply_budget,
    count_words,
    normalize_text,
    summarize_transcript,
)
from linkdigest.core.types import (
    CACHE_BYPASSED,
    CACHE_MISS,
    CACHE_MODE_BYPASS,
    CACHE_MODE_DEFAULT,
    CACHE_MODES,
    CACHE_UNKNOWN,
    ContentDiagnostics,
    ExtractedLinkContent,
    FirecrawlDiagnostics,
    MediaSource,
    SOURCE_FILE,
    SOURCE_MEDIA_URL,
    SOURCE_PODCAST,
    TranscriptDiagnostics,
    TranscriptResolution,
)
from linkdigest.processors.audio_extractor import AudioExtractor, default_yt_dlp_command
from linkdigest.processors.transcript_resolver import TranscriptCache, TranscriptResolver
from linkdigest.processors.transcription import YouTubeCaptionsProvider, build_providers

logger = logging.getLogger(__name__)

FIRECRAWL_OFF = 'off'
FIRECRAWL_AUTO = 'auto'
FIRECRAWL_ALWAYS = 'always'
FIRECRAWL_MODES = (FIRECRAWL_OFF, FIRECRAWL_AUTO, FIRECRAWL_ALWAYS)

STRATEGY_HTML = 'html'
STRATEGY_FIRECRAWL = 'firecrawl'
STRATEGY_TRANSCRIPT = 'transcript'
STRATEGY_FILE = 'file'


@dataclass
class FetchOptions:
    cache_mode: str = CACHE_MODE_DEFAULT
    max_characters: Optional[int] = None
    timeout: Optional[float] = None
    fetch_timeout: Optional[float] = None
    firecrawl: str = FIRECRAWL_AUTO

    def __post_init__(self):
        if self.cache_mode not in CACHE_MODES:
            raise ValueError(f"Unknown cache mode: {self.cache_mode}")
        if self.firecrawl not in FIRECRAWL_MODES:
            raise ValueError(f"Unknown Firecrawl mode: {self.firecrawl}")


def resolve_max_characters(requested: Optional[int]) -> Optional[int]:
    """
    Resolve the caller's content budget

    Returns None when no budget applies; requests at or below the floor
    get DEFAULT_MAX_CONTENT_CHARACTERS.
    """
    if requested is None or requested <= 0:
        return None
    if requested <= Config.DEFAULT_MAX_CONTENT_CHARACTERS:
        return Config.DEFAULT_MAX_CONTENT_CHARACTERS
    return int(requested)


def select_base_content(source_content: str, transcript_text: Optional[str]) -> str:
    """Prefer 'Transcript:' content whenever a non-empty transcript exists"""
    if not transcript_text:
        return source_content
    normalized = normalize_text(transcript_text)
    if not normalized:
        return source_content
    return f"Transcript:\n{normalized}"


def ensure_transcript_diagnostics(resolution: TranscriptResolution, cache_mode: str) -> TranscriptDiagnostics:
    """Return the resolver's diagnostics, or synthesize them from the cache mode"""
    if resolution.diagnostics is not None:
        return resolution.diagnostics

    has_text = bool(resolution.text)
    if cache_mode == CACHE_MODE_BYPASS:
        cache_status = CACHE_BYPASSED
    elif has_text:
        cache_status = CACHE_MISS
    else:
        cache_status = CACHE_UNKNOWN
    return TranscriptDiagnostics(
        cache_mode=cache_mode,
        cache_status=cache_status,
        text_provided=has_text,
        provider=resolution.source,
        attempted_providers=[resolution.source] if resolution.source else [],
        notes='Cache bypass requested' if cache_mode == CACHE_MODE_BYPASS else None,
    )


def _budget(text: str, max_characters: Optional[int]) -> ContentBudget:
    if max_characters is not None:
        return apply_budget(text, max_characters)
    normalized = normalize_text(text)
    return ContentBudget(
        content=normalized,
        truncated=False,
        total_characters=len(normalized),
        word_count=count_words(normalized),
    )


def assemble_link_content(
    url: str,
    document: ParsedDocument,
    transcript_resolution: TranscriptResolution,
    max_characters: Optional[int],
    firecrawl_diagnostics: FirecrawlDiagnostics,
    cache_mode: str = CACHE_MODE_DEFAULT,
    strategy: str = STRATEGY_HTML,
) -> ExtractedLinkContent:
    """
    Assemble the final content record

    Args:
        url: Original input URL or path
        document: Parsed document (title/description/site name/text)
        transcript_resolution: Resolver output (text may be None)
        max_characters: Requested budget, resolved via resolve_max_characters
        firecrawl_diagnostics: Scrape diagnostics, passed through unchanged
        cache_mode: Cache mode of the request
        strategy: Which backend produced the document text
    """
    base_content = select_base_content(document.text, transcript_resolution.text)
    budget = _budget(base_content, resolve_max_characters(max_characters))
    transcript_characters, transcript_lines = summarize_transcript(transcript_resolution.text)

    if base_content.startswith('Transcript:\n') and transcript_resolution.text:
        strategy = STRATEGY_TRANSCRIPT

    return ExtractedLinkContent(
        url=url,
        title=document.title,
        description=document.description,
        site_name=document.site_name,
        content=budget.content,
        truncated=budget.truncated,
        total_characters=budget.total_characters,
        word_count=budget.word_count,
        transcript_characters=transcript_characters,
        transcript_lines=transcript_lines,
        transcript_source=transcript_resolution.source,
        diagnostics=ContentDiagnostics(
            strategy=strategy,
            firecrawl=firecrawl_diagnostics,
            transcript=ensure_transcript_diagnostics(transcript_resolution, cache_mode),
        ),
    )


def _document_from_scrape(payload: ScrapePayload, url: str) -> ParsedDocument:
    parsed = parse_html_document(payload.html, url) if payload.html else ParsedDocument()
    metadata = payload.metadata or {}
    return ParsedDocument(
        title=normalize_text(metadata.get('title') or metadata.get('ogTitle')) or parsed.title,
        description=normalize_text(metadata.get('description') or metadata.get('ogDescription')) or parsed.description,
        site_name=normalize_text(metadata.get('ogSiteName')) or parsed.site_name or safe_hostname(url),
        text=normalize_text(payload.markdown) or parsed.text,
    )


class LinkContentClient:
    """Fetches link content and transcripts for URLs and local media files"""

    def __init__(
        self,
        settings: Optional[TranscriptionSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        scraper: Optional[FirecrawlScraper] = None,
        resolver: Optional[TranscriptResolver] = None,
        transcript_cache: Optional[TranscriptCache] = None,
        event_emitter=None,
    ):
        self.settings = settings or TranscriptionSettings.from_env()
        self.http_client = http_client or httpx.AsyncClient()
        self._owns_http_client = http_client is None
        if scraper is None and self.settings.firecrawl_api_key:
            scraper = FirecrawlScraper(self.settings.firecrawl_api_key, self.http_client)
        self.scraper = scraper
        self.resolver = resolver or TranscriptResolver(
            build_providers(self.settings),
            audio_extractor=AudioExtractor(command=default_yt_dlp_command(self.settings.yt_dlp_path)),
            caption_provider=YouTubeCaptionsProvider(),
            transcript_cache=transcript_cache,
        )
        self.event_emitter = event_emitter
        self.detector = SourceDetector()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def aclose(self):
        if self._owns_http_client:
            await self.http_client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def _emit(self, event_type: str, data: Optional[dict] = None):
        if self.event_emitter:
            await self.event_emitter.emit(event_type, data)

    async def fetch_link_content(self, target: str, options: Optional[FetchOptions] = None) -> ExtractedLinkContent:
        """
        Extract budgeted content for a URL or local file

        Args:
            target: http(s) URL, file:// URL or local path
            options: FetchOptions (cache mode, budget, timeouts, Firecrawl mode)

        Returns:
            ExtractedLinkContent

        Raises:
            PipelineError: the document could not be fetched and no transcript was available
            ResolutionTimeoutError: transcript resolution exceeded options.timeout
        """
        options = options or FetchOptions()
        source = self.detector.classify(target)
        self.logger.info(f"🔗 [LINK] Extracting {target} ({source.kind})")

        firecrawl_diagnostics = FirecrawlDiagnostics(
            cache_mode=options.cache_mode,
            cache_status=CACHE_BYPASSED if options.cache_mode == CACHE_MODE_BYPASS else CACHE_UNKNOWN,
        )
        fetch_error: Optional[PipelineError] = None
        strategy = STRATEGY_HTML

        if source.kind == SOURCE_FILE:
            strategy = STRATEGY_FILE
            document = ParsedDocument(title=source.title, text='')
            firecrawl_diagnostics.notes = 'Skipped Firecrawl for local file'
        elif source.kind == SOURCE_MEDIA_URL:
            document = ParsedDocument(title=source.title, site_name=safe_hostname(source.url), text='')
            firecrawl_diagnostics.notes = 'Skipped Firecrawl for direct media URL'
        else:
            await self._emit('fetch_start', {'url': source.url})
            document, firecrawl_diagnostics, fetch_error, strategy, podcast = await self._fetch_document(
                source.url, options
            )
            if podcast is not None:
                source = podcast
            await self._emit('fetch_complete', {
                'strategy': strategy,
                'characters': len(document.text),
                'error': str(fetch_error) if fetch_error else None,
            })

        resolution = TranscriptResolution(text=None, source=None, diagnostics=None)
        if source.is_media:
            await self._emit('transcript_start', {'kind': source.kind})
            resolution = await self.resolver.resolve(source, cache_mode=options.cache_mode, timeout=options.timeout)
            await self._emit('transcript_complete', {
                'source': resolution.source,
                'characters': len(resolution.text) if resolution.text else 0,
            })

        if fetch_error is not None and not resolution.text:
            self.logger.error(f"❌ [LINK] {fetch_error}")
            raise fetch_error

        return assemble_link_content(
            target,
            document,
            resolution,
            options.max_characters,
            firecrawl_diagnostics,
            cache_mode=options.cache_mode,
            strategy=strategy,
        )

    async def _fetch_document(
        self, url: str, options: FetchOptions
    ) -> Tuple[ParsedDocument, FirecrawlDiagnostics, Optional[PipelineError], str, Optional[MediaSource]]:
        """
        Fetch page text according to the Firecrawl mode

        Returns:
            (document, firecrawl diagnostics, fetch error, strategy, podcast source)
        """
        cache_mode = options.cache_mode
        scrape_timeout = options.timeout or Config.DEFAULT_TIMEOUT

        if options.firecrawl == FIRECRAWL_ALWAYS:
            scraped = await fetch_with_firecrawl(url, self.scraper, timeout=scrape_timeout, cache_mode=cache_mode)
            if scraped.payload is not None:
                scraped.diagnostics.used = True
                return _document_from_scrape(scraped.payload, url), scraped.diagnostics, None, STRATEGY_FIRECRAWL, None
            firecrawl_diagnostics = scraped.diagnostics
        else:
            firecrawl_diagnostics = FirecrawlDiagnostics(
                cache_mode=cache_mode,
                cache_status=CACHE_BYPASSED if cache_mode == CACHE_MODE_BYPASS else CACHE_UNKNOWN,
                notes='Firecrawl disabled' if options.firecrawl == FIRECRAWL_OFF else None,
            )

        document = ParsedDocument(site_name=safe_hostname(url))
        fetch_error: Optional[PipelineError] = None
        try:
            fetched = await fetch_html_document(self.http_client, url, timeout=options.fetch_timeout)
        except PipelineError as e:
            self.logger.warning(f"⚠️ [FETCH] {e}")
            fetch_error = e
        else:
            if looks_like_feed_url(fetched.url) or looks_like_feed(fetched.content_type, fetched.body):
                episode = parse_podcast_feed(fetched.body)
                if episode is not None:
                    podcast = MediaSource(
                        kind=SOURCE_PODCAST,
                        url=episode.enclosure_url,
                        media_type=episode.media_type,
                        title=episode.title,
                    )
                    document = ParsedDocument(
                        title=episode.title or episode.feed_title,
                        description=episode.description,
                        site_name=episode.feed_title or safe_hostname(url),
                        text=episode.description or '',
                    )
                    return document, firecrawl_diagnostics, None, STRATEGY_HTML, podcast
            document = parse_html_document(fetched.body, fetched.url)

        needs_scrape = fetch_error is not None or len(document.text) < Config.MIN_HTML_CONTENT_CHARACTERS
        if options.firecrawl == FIRECRAWL_AUTO and needs_scrape:
            scraped = await fetch_with_firecrawl(url, self.scraper, timeout=scrape_timeout, cache_mode=cache_mode)
            firecrawl_diagnostics = scraped.diagnostics
            if scraped.payload is not None:
                scraped_document = _document_from_scrape(scraped.payload, url)
                if scraped_document.text:
                    firecrawl_diagnostics.used = True
                    return scraped_document, firecrawl_diagnostics, None, STRATEGY_FIRECRAWL, None
                firecrawl_diagnostics.notes = append_note(
                    firecrawl_diagnostics.notes, 'Firecrawl payload had no text'
                )

        return document, firecrawl_diagnostics, fetch_error, STRATEGY_HTML, None
