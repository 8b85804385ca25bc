"""
Tests for processors/link_content.py

HTTP traffic goes through httpx.MockTransport and transcript resolution is
replaced by a recording fake resolver.
"""

import asyncio

import httpx
import pytest

from linkdigest.core.config import Config, TranscriptionSettings
from linkdigest.core.document_parser import ParsedDocument
from linkdigest.core.errors import FetchHttpError
from linkdigest.core.event_emitter import ProgressEventEmitter
from linkdigest.core.fetcher import FirecrawlScraper
from linkdigest.core.types import (
    FirecrawlDiagnostics,
    TranscriptDiagnostics,
    TranscriptResolution,
)
from linkdigest.processors.link_content import (
    FetchOptions,
    LinkContentClient,
    assemble_link_content,
    ensure_transcript_diagnostics,
    resolve_max_characters,
    select_base_content,
)


class FakeResolver:
    """Records resolve() calls and answers with a fixed transcript"""

    def __init__(self, text=None, source=None):
        self.text = text
        self.source = source
        self.calls = []

    async def resolve(self, source, cache_mode='default', timeout=None):
        self.calls.append((source, cache_mode, timeout))
        diagnostics = TranscriptDiagnostics(
            cache_mode=cache_mode,
            text_provided=bool(self.text),
            provider=self.source,
            attempted_providers=[self.source] if self.source else [],
        )
        return TranscriptResolution(text=self.text, source=self.source, diagnostics=diagnostics)


class Router:
    """MockTransport handler dispatching on the request URL"""

    def __init__(self, routes):
        self.routes = routes
        self.requested = []

    def __call__(self, request):
        url = str(request.url)
        self.requested.append(url)
        for prefix, response in self.routes.items():
            if url.startswith(prefix):
                return response(request) if callable(response) else response
        return httpx.Response(404)


def _extract(router, target, options=None, resolver=None, firecrawl=False, event_emitter=None):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as http_client:
            scraper = FirecrawlScraper('fc-test', http_client) if firecrawl else None
            client = LinkContentClient(
                settings=TranscriptionSettings(),
                http_client=http_client,
                scraper=scraper,
                resolver=resolver or FakeResolver(),
                event_emitter=event_emitter,
            )
            return await client.fetch_link_content(target, options)
    return asyncio.run(scenario())


def _html(body):
    return httpx.Response(200, text=body, headers={'content-type': 'text/html; charset=utf-8'})


def _firecrawl(markdown, metadata=None):
    return httpx.Response(200, json={
        'success': True,
        'data': {'markdown': markdown, 'html': None, 'metadata': metadata or {}},
    })


class TestResolveMaxCharacters:
    """Tests for resolve_max_characters() function"""

    @pytest.mark.unit
    @pytest.mark.parametrize("requested,expected", [
        (None, None), (0, None), (-5, None), (100, 8000), (8000, 8000), (12000, 12000),
    ])
    def test_budget_floor(self, requested, expected):
        """Should apply no budget for non-positive requests and floor small ones"""
        assert resolve_max_characters(requested) == expected


class TestSelectBaseContent:
    """Tests for select_base_content() function"""

    @pytest.mark.unit
    def test_prefers_transcript(self):
        """Should label and normalize transcript text"""
        assert select_base_content('page text', 'Hello  there\r\nfriend') == 'Transcript:\nHello there\nfriend'

    @pytest.mark.unit
    def test_blank_transcript_keeps_page(self):
        """Should keep page text when the transcript is blank"""
        assert select_base_content('page text', '  \n ') == 'page text'
        assert select_base_content('page text', None) == 'page text'


class TestEnsureTranscriptDiagnostics:
    """Tests for ensure_transcript_diagnostics() function"""

    @pytest.mark.unit
    def test_passes_through_resolver_diagnostics(self):
        """Should return existing diagnostics unchanged"""
        diagnostics = TranscriptDiagnostics(cache_status='hit', provider='whisper')
        resolution = TranscriptResolution(text='x', source='whisper', diagnostics=diagnostics)

        assert ensure_transcript_diagnostics(resolution, 'default') is diagnostics

    @pytest.mark.unit
    def test_synthesizes_bypass(self):
        """Should report a bypassed cache when diagnostics are missing"""
        diagnostics = ensure_transcript_diagnostics(TranscriptResolution(), 'bypass')

        assert diagnostics.cache_status == 'bypassed'
        assert diagnostics.notes == 'Cache bypass requested'
        assert diagnostics.text_provided is False

    @pytest.mark.unit
    def test_synthesizes_from_text(self):
        """Should derive provider and miss status from a transcript"""
        diagnostics = ensure_transcript_diagnostics(TranscriptResolution(text='words', source='deepgram'), 'default')

        assert diagnostics.cache_status == 'miss'
        assert diagnostics.provider == 'deepgram'
        assert diagnostics.attempted_providers == ['deepgram']

    @pytest.mark.unit
    def test_synthesizes_unknown(self):
        """Should report unknown status without text or bypass"""
        assert ensure_transcript_diagnostics(TranscriptResolution(), 'default').cache_status == 'unknown'


class TestAssembleLinkContent:
    """Tests for assemble_link_content() function"""

    @pytest.mark.unit
    def test_budget_truncates_page_text(self):
        """Should truncate to the floored budget and keep the full length"""
        document = ParsedDocument(title='Long', text='word ' * 5000)

        result = assemble_link_content(
            'https://example.com/long', document, TranscriptResolution(), 100, FirecrawlDiagnostics(),
        )

        assert result.truncated is True
        assert len(result.content) <= Config.DEFAULT_MAX_CONTENT_CHARACTERS
        assert result.total_characters == len(('word ' * 5000).strip())
        assert result.word_count == len(result.content.split())
        assert result.transcript_characters is None
        assert result.diagnostics.strategy == 'html'

    @pytest.mark.unit
    def test_transcript_stats(self):
        """Should report transcript characters and non-blank lines"""
        transcript = 'First line\n\nSecond line\n'
        resolution = TranscriptResolution(text=transcript, source='whisper', diagnostics=TranscriptDiagnostics())

        result = assemble_link_content('/tmp/a.mp3', ParsedDocument(text=''), resolution, None,
                                       FirecrawlDiagnostics(), strategy='file')

        assert result.content == 'Transcript:\nFirst line\n\nSecond line'
        assert result.truncated is False
        assert result.transcript_characters == len(transcript)
        assert result.transcript_lines == 2
        assert result.transcript_source == 'whisper'
        assert result.diagnostics.strategy == 'transcript'


class TestFetchOptions:
    """Tests for FetchOptions validation"""

    @pytest.mark.unit
    def test_rejects_unknown_modes(self):
        """Should reject unknown cache and Firecrawl modes"""
        with pytest.raises(ValueError):
            FetchOptions(cache_mode='refresh')
        with pytest.raises(ValueError):
            FetchOptions(firecrawl='sometimes')


class TestFetchLinkContent:
    """Tests for LinkContentClient.fetch_link_content()"""

    @pytest.mark.unit
    def test_html_page_without_firecrawl(self, sample_urls, sample_article_html):
        """Should extract page text when Firecrawl is off and skip transcription"""
        router = Router({sample_urls['blog_post']: _html(sample_article_html)})
        resolver = FakeResolver(text='unused', source='whisper')

        result = _extract(router, sample_urls['blog_post'], FetchOptions(firecrawl='off'), resolver=resolver)

        assert result.title == 'Testing Python Pipelines'
        assert result.site_name == 'Example Blog'
        assert 'Python testing with pytest' in result.content
        assert result.transcript_source is None
        assert result.diagnostics.strategy == 'html'
        assert result.diagnostics.firecrawl.notes == 'Firecrawl disabled'
        assert result.diagnostics.firecrawl.attempted is False
        assert result.diagnostics.transcript.cache_status == 'unknown'
        assert resolver.calls == []

    @pytest.mark.unit
    def test_youtube_prefers_transcript(self, sample_urls):
        """Should label transcript content and pass cache mode and timeout through"""
        router = Router({'https://www.youtube.com/': _html('<html><head><title>Video - YouTube</title></head></html>')})
        resolver = FakeResolver(text='Never gonna give you up', source='yt-dlp+whisper')
        options = FetchOptions(cache_mode='bypass', timeout=30)

        result = _extract(router, sample_urls['youtube'], options, resolver=resolver)

        assert result.content == 'Transcript:\nNever gonna give you up'
        assert result.title == 'Video'
        assert result.transcript_source == 'yt-dlp+whisper'
        assert result.diagnostics.strategy == 'transcript'
        assert result.diagnostics.firecrawl.notes == 'Skipped Firecrawl for YouTube URL'
        source, cache_mode, timeout = resolver.calls[0]
        assert source.kind == 'youtube'
        assert cache_mode == 'bypass'
        assert timeout == 30

    @pytest.mark.unit
    def test_auto_firecrawl_for_thin_pages(self, sample_urls):
        """Should scrape with Firecrawl when the HTML text is too short"""
        router = Router({
            Config.FIRECRAWL_API_URL: _firecrawl('# Rendered\n\nClient-side rendered article body.',
                                                 {'title': 'Rendered Title', 'ogSiteName': 'Example'}),
            sample_urls['blog_post']: _html('<html><body><div id="app"></div></body></html>'),
        })

        result = _extract(router, sample_urls['blog_post'], firecrawl=True)

        assert result.title == 'Rendered Title'
        assert result.site_name == 'Example'
        assert 'Client-side rendered article body.' in result.content
        assert result.diagnostics.strategy == 'firecrawl'
        assert result.diagnostics.firecrawl.attempted is True
        assert result.diagnostics.firecrawl.used is True

    @pytest.mark.unit
    def test_auto_skips_firecrawl_for_full_pages(self, sample_urls, sample_article_html):
        """Should not scrape when the HTML fetch produced enough text"""
        router = Router({
            Config.FIRECRAWL_API_URL: _firecrawl('unused'),
            sample_urls['blog_post']: _html(sample_article_html),
        })

        result = _extract(router, sample_urls['blog_post'], firecrawl=True)

        assert result.diagnostics.strategy == 'html'
        assert result.diagnostics.firecrawl.attempted is False
        assert Config.FIRECRAWL_API_URL not in router.requested

    @pytest.mark.unit
    def test_always_firecrawl_skips_html_fetch(self, sample_urls):
        """Should use Firecrawl first and not fetch HTML when it succeeds"""
        router = Router({Config.FIRECRAWL_API_URL: _firecrawl('Scraped body text', {'title': 'Scraped'})})

        result = _extract(router, sample_urls['blog_post'], FetchOptions(firecrawl='always'), firecrawl=True)

        assert result.content == 'Scraped body text'
        assert result.diagnostics.strategy == 'firecrawl'
        assert router.requested == [Config.FIRECRAWL_API_URL]

    @pytest.mark.unit
    def test_fetch_error_without_transcript(self, sample_urls):
        """Should raise the fetch error when nothing else produced content"""
        with pytest.raises(FetchHttpError) as exc_info:
            _extract(Router({}), sample_urls['blog_post'], FetchOptions(firecrawl='off'))

        assert exc_info.value.status == 404

    @pytest.mark.unit
    def test_fetch_error_with_failed_scrape(self, sample_urls):
        """Should raise the fetch error and keep Firecrawl failures soft"""
        router = Router({Config.FIRECRAWL_API_URL: httpx.Response(500, json={})})

        with pytest.raises(FetchHttpError):
            _extract(router, sample_urls['blog_post'], firecrawl=True)

    @pytest.mark.unit
    def test_podcast_feed_resolves_enclosure(self, sample_urls, sample_feed_xml):
        """Should transcribe the newest feed enclosure"""
        router = Router({sample_urls['podcast_feed']: httpx.Response(
            200, text=sample_feed_xml, headers={'content-type': 'application/rss+xml'},
        )})
        resolver = FakeResolver(text='Welcome to episode forty two', source='whisper')

        result = _extract(router, sample_urls['podcast_feed'], FetchOptions(firecrawl='off'), resolver=resolver)

        source = resolver.calls[0][0]
        assert source.kind == 'podcast'
        assert source.url == 'https://cdn.example.com/audio/episode_42.mp3'
        assert source.media_type == 'audio/mpeg'
        assert result.title == 'Episode 42: Testing Everything'
        assert result.site_name == 'The Example Podcast'
        assert result.content == 'Transcript:\nWelcome to episode forty two'
        assert result.transcript_source == 'whisper'

    @pytest.mark.unit
    def test_direct_media_url(self, sample_urls):
        """Should skip page fetching for direct media links"""
        router = Router({})
        resolver = FakeResolver(text='Audio words', source='deepgram')

        result = _extract(router, sample_urls['mp3'], resolver=resolver)

        assert router.requested == []
        assert result.title == 'Episode 42'
        assert result.site_name == 'cdn.example.com'
        assert result.diagnostics.firecrawl.notes == 'Skipped Firecrawl for direct media URL'
        assert resolver.calls[0][0].kind == 'media_url'

    @pytest.mark.unit
    def test_local_file(self, tmp_path):
        """Should transcribe local files without any HTTP traffic"""
        audio = tmp_path / 'standup_notes.m4a'
        audio.write_bytes(b'\x00\x00\x00\x20ftypM4A ')
        router = Router({})
        resolver = FakeResolver(text='Standup transcript', source='whisper-cpp')

        result = _extract(router, str(audio), resolver=resolver)

        assert router.requested == []
        assert result.title == 'Standup Notes'
        assert result.content == 'Transcript:\nStandup transcript'
        assert result.diagnostics.firecrawl.notes == 'Skipped Firecrawl for local file'
        assert result.diagnostics.strategy == 'transcript'

    @pytest.mark.unit
    def test_emits_progress_events(self, sample_urls):
        """Should emit fetch and transcript events in order"""
        router = Router({'https://www.youtube.com/': _html('<html></html>')})
        resolver = FakeResolver(text='Caption text', source='youtube-captions')

        async def scenario():
            emitter = ProgressEventEmitter()
            async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as http_client:
                client = LinkContentClient(settings=TranscriptionSettings(), http_client=http_client,
                                           resolver=resolver, event_emitter=emitter)
                await client.fetch_link_content(sample_urls['youtube'])
            await emitter.complete()
            return [event async for event in emitter.stream()]

        events = asyncio.run(scenario())

        assert [event['type'] for event in events] == [
            'fetch_start', 'fetch_complete', 'transcript_start', 'transcript_complete', 'complete',
        ]
        assert events[3]['data'] == {'source': 'youtube-captions', 'characters': len('Caption text')}
