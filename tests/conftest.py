"""
Shared pytest fixtures for linkdigest tests

This file contains fixtures that are available to all test files.
"""

import pytest
from typing import Callable, Dict, List, Optional
from unittest.mock import Mock

import requests

from linkdigest.core.process_runner import ProcessResult
from linkdigest.processors.transcription.types import ProviderResult


class FakeRunner:
    """Stand-in for run_process that records calls and delegates to a handler"""

    def __init__(self, handler: Optional[Callable] = None):
        self.handler = handler
        self.calls: List = []

    async def __call__(self, command, **kwargs):
        self.calls.append((command, kwargs))
        if self.handler is not None:
            return self.handler(command, **kwargs)
        return ProcessResult(exit_code=0, stdout='', stderr='')


class FakeProvider:
    """Transcription provider returning canned results"""

    def __init__(self, provider_id: str, text: Optional[str] = None, error: Optional[Exception] = None,
                 available: bool = True, notes: Optional[List[str]] = None):
        self.provider_id = provider_id
        self.text = text
        self.error = error
        self.available = available
        self.notes = notes or []
        self.calls: List = []

    def is_available(self) -> bool:
        return self.available

    async def transcribe(self, file_path, media_type):
        self.calls.append((file_path, media_type))
        if self.text is not None:
            return ProviderResult.success(self.text, self.provider_id, self.notes)
        error = self.error or RuntimeError(f"{self.provider_id}: failed")
        return ProviderResult.failure(error, self.provider_id, self.notes)


@pytest.fixture
def fake_runner_factory():
    """Build FakeRunner instances"""
    return FakeRunner


@pytest.fixture
def fake_provider_factory():
    """Build FakeProvider instances"""
    return FakeProvider


@pytest.fixture
def make_response():
    """Build a mock streaming requests.Response"""
    def _make(content: bytes = b'', status_code: int = 200, reason: str = 'OK'):
        response = Mock(spec=requests.Response)
        response.status_code = status_code
        response.reason = reason
        response.iter_content.return_value = [content[i:i + 4] for i in range(0, len(content), 4)]
        if status_code >= 400:
            response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} {reason}")
        else:
            response.raise_for_status.return_value = None
        return response
    return _make


@pytest.fixture
def mock_session():
    """Mock requests session"""
    return Mock(spec=requests.Session)


@pytest.fixture
def sample_urls() -> Dict[str, str]:
    """Sample URLs for testing"""
    return {
        'youtube': 'https://www.youtube.com/watch?v=dQw4w9WgXcQ',
        'youtube_short': 'https://youtu.be/dQw4w9WgXcQ?t=10',
        'youtube_embed': 'https://www.youtube.com/embed/dQw4w9WgXcQ',
        'youtube_shorts': 'https://www.youtube.com/shorts/dQw4w9WgXcQ',
        'blog_post': 'https://example.com/blog/my-article',
        'podcast_feed': 'https://feeds.example.com/show/rss.xml',
        'mp3': 'https://cdn.example.com/audio/episode_42.mp3',
        'mp4': 'https://cdn.example.com/video/keynote.mp4',
    }


@pytest.fixture
def sample_article_html() -> str:
    """HTML page with metadata, navigation noise and a main article"""
    paragraph = "Python testing with pytest keeps regressions away. " * 8
    return f"""
    <html>
      <head>
        <title>Fallback Title</title>
        <meta property="og:title" content="Testing Python Pipelines">
        <meta property="og:description" content="A practical guide to testing.">
        <meta property="og:site_name" content="Example Blog">
        <style>body {{ color: red; }}</style>
      </head>
      <body>
        <nav>Home | About | Contact</nav>
        <article>
          <h1>Testing Python Pipelines</h1>
          <p>{paragraph}</p>
          <p>Second   paragraph\twith   extra   spaces.</p>
        </article>
        <script>console.log('tracking');</script>
        <footer>Copyright 2024</footer>
      </body>
    </html>
    """


@pytest.fixture
def sample_feed_xml() -> str:
    """RSS podcast feed with one audio enclosure"""
    return """<?xml version="1.0" encoding="UTF-8"?>
    <rss version="2.0">
      <channel>
        <title>The Example Podcast</title>
        <link>https://podcast.example.com</link>
        <item>
          <title>Episode 42: Testing Everything</title>
          <description>&lt;p&gt;We talk about &lt;b&gt;testing&lt;/b&gt;.&lt;/p&gt;</description>
          <enclosure url="https://cdn.example.com/audio/episode_42.mp3" type="audio/mpeg" length="12345"/>
        </item>
        <item>
          <title>Episode 41: Older</title>
          <enclosure url="https://cdn.example.com/audio/episode_41.mp3" type="audio/mpeg" length="12345"/>
        </item>
      </channel>
    </rss>
    """
