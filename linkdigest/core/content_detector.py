"""
Source Detection Module

Classifies an input (URL or local path) as a YouTube video, a direct media
file, a local file or a regular page. Podcast feeds are recognised from the
fetched document, see looks_like_feed().
"""

import logging
import mimetypes
import re
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import parse_qs, unquote, urlparse

from linkdigest.core.types import (
    MediaSource,
    SOURCE_FILE,
    SOURCE_MEDIA_URL,
    SOURCE_PAGE,
    SOURCE_YOUTUBE,
)

logger = logging.getLogger(__name__)

YOUTUBE_HOSTS = {'youtube.com', 'www.youtube.com', 'm.youtube.com', 'music.youtube.com', 'youtu.be',
                 'www.youtube-nocookie.com', 'youtube-nocookie.com'}
YOUTUBE_PATH_PATTERN = re.compile(r'^/(?:embed|shorts|live|v)/([a-zA-Z0-9_-]{6,})')
FEED_PATH_HINTS = ('/rss', '/feed', '/atom', '.rss', '.xml', 'rss.xml', 'feed.xml', 'atom.xml')


def is_youtube_url(url: str) -> bool:
    try:
        host = (urlparse(url).hostname or '').lower()
    except ValueError:
        return False
    return host in YOUTUBE_HOSTS


def extract_youtube_video_id(url: str) -> Optional[str]:
    """
    Extract the video id from any common YouTube URL shape

    Examples:
        >>> extract_youtube_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
        'dQw4w9WgXcQ'
        >>> extract_youtube_video_id("https://youtu.be/dQw4w9WgXcQ?t=10")
        'dQw4w9WgXcQ'
    """
    if not is_youtube_url(url):
        return None
    parsed = urlparse(url)
    host = (parsed.hostname or '').lower()

    if host == 'youtu.be':
        video_id = parsed.path.lstrip('/').split('/')[0]
        return video_id or None

    query_id = parse_qs(parsed.query).get('v')
    if query_id and query_id[0]:
        return query_id[0]

    match = YOUTUBE_PATH_PATTERN.match(parsed.path)
    if match:
        return match.group(1)
    return None


def looks_like_feed_url(url: str) -> bool:
    path = urlparse(url).path.lower()
    return any(path.endswith(hint) for hint in FEED_PATH_HINTS) or '/feeds.' in url.lower()


def looks_like_feed(content_type: Optional[str], body: str) -> bool:
    """Check whether a fetched document is an RSS/Atom feed"""
    content_type = (content_type or '').lower()
    if 'rss' in content_type or 'atom' in content_type:
        return True
    head = body.lstrip()[:512].lower()
    if 'xml' in content_type or head.startswith('<?xml'):
        return '<rss' in head or '<feed' in head or '<rss' in body[:4096].lower()
    return False


class SourceDetector:
    """Decides where spoken content for an input would come from"""

    # Supported video file extensions
    VIDEO_EXTENSIONS = {'.mp4', '.mov', '.avi', '.mkv', '.webm', '.flv', '.wmv', '.m4v', '.mpg', '.mpeg'}
    # Supported audio file extensions
    AUDIO_EXTENSIONS = {'.mp3', '.wav', '.m4a', '.aac', '.ogg', '.flac', '.wma', '.opus'}

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def is_direct_media_url(self, url: str) -> Tuple[bool, Optional[str]]:
        """
        Check if URL points directly to a video or audio file

        Returns:
            Tuple of (is_media, media_type) where media_type is 'video', 'audio', or None
        """
        path = unquote(urlparse(url).path.lower())

        for ext in self.VIDEO_EXTENSIONS:
            if path.endswith(ext):
                self.logger.info(f"🎥 Detected direct video file URL: {ext}")
                return True, 'video'

        for ext in self.AUDIO_EXTENSIONS:
            if path.endswith(ext):
                self.logger.info(f"🎵 Detected direct audio file URL: {ext}")
                return True, 'audio'

        return False, None

    def classify(self, target: str) -> MediaSource:
        """
        Classify a URL or local path

        Args:
            target: http(s) URL, file:// URL or filesystem path

        Returns:
            MediaSource describing the input
        """
        parsed = urlparse(target)

        if parsed.scheme == 'file':
            return self._classify_file(Path(unquote(parsed.path)), target)
        if parsed.scheme not in ('http', 'https'):
            path = Path(target).expanduser()
            if path.is_file():
                return self._classify_file(path, target)
            return MediaSource(kind=SOURCE_PAGE, url=target)

        if is_youtube_url(target) and extract_youtube_video_id(target):
            return MediaSource(kind=SOURCE_YOUTUBE, url=target, media_type='video/youtube')

        is_media, _ = self.is_direct_media_url(target)
        if is_media:
            media_type, _ = mimetypes.guess_type(parsed.path)
            return MediaSource(
                kind=SOURCE_MEDIA_URL,
                url=target,
                media_type=media_type or 'application/octet-stream',
                title=_title_from_filename(unquote(parsed.path)),
            )

        return MediaSource(kind=SOURCE_PAGE, url=target)

    def _classify_file(self, path: Path, original: str) -> MediaSource:
        media_type, _ = mimetypes.guess_type(path.name)
        self.logger.info(f"📁 [SOURCE] Local file: {path} ({media_type or 'unknown type'})")
        return MediaSource(
            kind=SOURCE_FILE,
            url=original,
            file_path=path,
            media_type=media_type or 'application/octet-stream',
            title=_title_from_filename(path.name),
        )


def _title_from_filename(path: str) -> Optional[str]:
    name = Path(path).name
    if not name:
        return None
    return name.rsplit('.', 1)[0].replace('_', ' ').replace('-', ' ').strip().title() or None
