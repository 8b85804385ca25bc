"""
Document Parsing

Pulls title, description, site name and readable body text out of fetched
HTML, and picks the newest audio enclosure out of podcast RSS feeds.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import feedparser
from bs4 import BeautifulSoup

from linkdigest.core.text_utils import normalize_text

logger = logging.getLogger(__name__)

NOISE_TAGS = ['script', 'style', 'noscript', 'template', 'svg', 'nav', 'footer', 'header', 'aside', 'form', 'iframe']
MAIN_CONTENT_SELECTORS = ['article', 'main', '[role="main"]', '.post-content', '.entry-content', '.article-content']
WWW_PREFIX_PATTERN = re.compile(r'^www\.', re.IGNORECASE)


@dataclass
class ParsedDocument:
    title: Optional[str] = None
    description: Optional[str] = None
    site_name: Optional[str] = None
    text: str = ''


@dataclass
class PodcastEpisode:
    feed_title: Optional[str]
    title: Optional[str]
    description: Optional[str]
    enclosure_url: str
    media_type: str


def safe_hostname(url: str) -> Optional[str]:
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    return WWW_PREFIX_PATTERN.sub('', host) if host else None


def _meta_content(soup: BeautifulSoup, *selectors: str) -> Optional[str]:
    for selector in selectors:
        element = soup.select_one(selector)
        if element:
            value = element.get('content') or element.get_text(strip=True)
            value = normalize_text(value)
            if value:
                return value
    return None


def parse_html_document(html: str, url: str) -> ParsedDocument:
    """
    Extract metadata and readable text from an HTML document

    Args:
        html: Raw HTML
        url: URL the document came from (used for the site name fallback)

    Returns:
        ParsedDocument with normalized fields
    """
    soup = BeautifulSoup(html, 'html.parser')

    title = _meta_content(soup, 'meta[property="og:title"]', 'meta[name="twitter:title"]', 'title', 'h1')
    if title:
        title = title.replace(' - YouTube', '').strip()
    description = _meta_content(
        soup,
        'meta[property="og:description"]',
        'meta[name="description"]',
        'meta[name="twitter:description"]',
    )
    site_name = _meta_content(soup, 'meta[property="og:site_name"]') or safe_hostname(url)

    for tag in soup(NOISE_TAGS):
        tag.decompose()

    container = None
    for selector in MAIN_CONTENT_SELECTORS:
        container = soup.select_one(selector)
        if container and len(container.get_text(strip=True)) > 0:
            break
        container = None
    if container is None:
        container = soup.body or soup

    text = normalize_text(container.get_text('\n'))
    return ParsedDocument(title=title, description=description, site_name=site_name, text=text)


def _entry_date(entry) -> tuple:
    return tuple(entry.get('published_parsed') or entry.get('updated_parsed') or ())


def parse_podcast_feed(body: str) -> Optional[PodcastEpisode]:
    """
    Find the newest episode with an audio/video enclosure in an RSS/Atom feed

    Entries are ordered by publish (or update) date, newest first; undated
    entries follow in document order.

    Returns:
        PodcastEpisode or None when the feed has no playable enclosure
    """
    feed = feedparser.parse(body)
    feed_title = feed.feed.get('title') if feed.feed else None

    for entry in sorted(feed.entries, key=_entry_date, reverse=True):
        for enclosure in entry.get('enclosures', []):
            href = enclosure.get('href')
            media_type = (enclosure.get('type') or '').lower()
            if not href:
                continue
            if media_type and not media_type.startswith(('audio/', 'video/')):
                continue
            description = entry.get('summary') or entry.get('description')
            if description:
                description = normalize_text(BeautifulSoup(description, 'html.parser').get_text('\n'))
            logger.info(f"🎙️ [PODCAST] Found enclosure for '{entry.get('title')}': {href[:100]}")
            return PodcastEpisode(
                feed_title=feed_title,
                title=entry.get('title'),
                description=description or None,
                enclosure_url=href,
                media_type=media_type or 'audio/mpeg',
            )

    logger.info("ℹ️ [PODCAST] Feed has no audio enclosures")
    return None
