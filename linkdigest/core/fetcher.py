"""
Media Fetcher

Retrieves remote documents over HTTP and delegates to the Firecrawl scrape
backend when configured. Scrape failures are never fatal: they are folded
into FirecrawlDiagnostics notes.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from linkdigest.core.config import Config
from linkdigest.core.content_detector import is_youtube_url
from linkdigest.core.errors import FetchHttpError, FetchTimeoutError, ScrapeUnavailableError, wrap_error
from linkdigest.core.text_utils import append_note
from linkdigest.core.types import (
    CACHE_BYPASSED,
    CACHE_MODE_BYPASS,
    CACHE_MODE_DEFAULT,
    CACHE_UNKNOWN,
    FirecrawlDiagnostics,
)

logger = logging.getLogger(__name__)


@dataclass
class FetchedDocument:
    url: str
    body: str
    content_type: Optional[str]
    status: int


@dataclass
class ScrapePayload:
    markdown: Optional[str] = None
    html: Optional[str] = None
    metadata: Dict = field(default_factory=dict)


@dataclass
class FirecrawlFetchResult:
    payload: Optional[ScrapePayload]
    diagnostics: FirecrawlDiagnostics


async def fetch_html_document(
    client: httpx.AsyncClient,
    url: str,
    timeout: Optional[float] = None,
) -> FetchedDocument:
    """
    Fetch a remote document, following redirects

    Args:
        client: Shared async HTTP client
        url: Document URL
        timeout: Seconds for the whole request (default Config.DOCUMENT_FETCH_TIMEOUT)

    Raises:
        FetchTimeoutError: request did not complete in time
        FetchHttpError: non-2xx response
    """
    effective_timeout = timeout if timeout and timeout > 0 else Config.DOCUMENT_FETCH_TIMEOUT
    logger.info(f"🌐 [FETCH] GET {url} (timeout {effective_timeout}s)")

    try:
        response = await client.get(
            url,
            headers=Config.get_default_headers(),
            follow_redirects=True,
            timeout=effective_timeout,
        )
    except httpx.TimeoutException as e:
        raise FetchTimeoutError('fetch', effective_timeout) from e
    except httpx.HTTPError as e:
        raise wrap_error('fetch', e) from e

    if not response.is_success:
        raise FetchHttpError('fetch', response.status_code)

    return FetchedDocument(
        url=str(response.url),
        body=response.text,
        content_type=response.headers.get('content-type'),
        status=response.status_code,
    )


class FirecrawlScraper:
    """Scrape backend backed by the Firecrawl HTTP API"""

    def __init__(self, api_key: str, client: httpx.AsyncClient, api_url: str = Config.FIRECRAWL_API_URL):
        self.api_key = api_key
        self.client = client
        self.api_url = api_url
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def scrape(self, url: str, timeout: Optional[float] = None,
                     cache_mode: str = CACHE_MODE_DEFAULT) -> Optional[ScrapePayload]:
        """
        Scrape a URL into markdown/html

        Returns:
            ScrapePayload, or None when Firecrawl answered without content

        Raises:
            ScrapeUnavailableError: request failed or was rejected
        """
        timeout = timeout or Config.DEFAULT_TIMEOUT
        body = {
            'url': url,
            'formats': ['markdown', 'html'],
            'onlyMainContent': True,
            'timeout': int(timeout * 1000),
        }
        if cache_mode == CACHE_MODE_BYPASS:
            body['maxAge'] = 0

        self.logger.info(f"🔥 [FIRECRAWL] Scraping {url}")
        try:
            response = await self.client.post(
                self.api_url,
                json=body,
                headers={'Authorization': f"Bearer {self.api_key}"},
                timeout=timeout + Config.SHORT_TIMEOUT,
            )
        except httpx.HTTPError as e:
            raise ScrapeUnavailableError('firecrawl', str(e) or e.__class__.__name__) from e

        if not response.is_success:
            raise ScrapeUnavailableError('firecrawl', f"request failed (status {response.status_code})")

        data = response.json()
        if not data.get('success'):
            raise ScrapeUnavailableError('firecrawl', data.get('error') or 'scrape unsuccessful')

        content = data.get('data') or {}
        if not content.get('markdown') and not content.get('html'):
            return None
        return ScrapePayload(
            markdown=content.get('markdown'),
            html=content.get('html'),
            metadata=content.get('metadata') or {},
        )


async def fetch_with_firecrawl(
    url: str,
    scraper: Optional[FirecrawlScraper],
    timeout: Optional[float] = None,
    cache_mode: str = CACHE_MODE_DEFAULT,
) -> FirecrawlFetchResult:
    """Try the scrape backend, recording why it was skipped or failed"""
    diagnostics = FirecrawlDiagnostics(
        attempted=False,
        used=False,
        cache_mode=cache_mode,
        cache_status=CACHE_BYPASSED if cache_mode == CACHE_MODE_BYPASS else CACHE_UNKNOWN,
    )

    if is_youtube_url(url):
        diagnostics.notes = append_note(diagnostics.notes, 'Skipped Firecrawl for YouTube URL')
        return FirecrawlFetchResult(payload=None, diagnostics=diagnostics)

    if scraper is None:
        diagnostics.notes = append_note(diagnostics.notes, 'Firecrawl is not configured')
        return FirecrawlFetchResult(payload=None, diagnostics=diagnostics)

    diagnostics.attempted = True
    try:
        payload = await scraper.scrape(url, timeout=timeout, cache_mode=cache_mode)
    except Exception as e:
        logger.warning(f"⚠️ [FIRECRAWL] Scrape failed: {e}")
        diagnostics.notes = append_note(diagnostics.notes, f"Firecrawl error: {e}")
        return FirecrawlFetchResult(payload=None, diagnostics=diagnostics)

    if payload is None:
        diagnostics.notes = append_note(diagnostics.notes, 'Firecrawl returned no content payload')
        return FirecrawlFetchResult(payload=None, diagnostics=diagnostics)

    return FirecrawlFetchResult(payload=payload, diagnostics=diagnostics)
