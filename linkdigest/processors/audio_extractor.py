#!/usr/bin/env python3
"""
Audio Extractor

Downloads the best audio track of a URL to a local file.

- YouTube and other streaming pages go through yt-dlp (audio extracted to mp3)
- Direct media links (podcast enclosures, .mp3/.mp4 URLs) are streamed as-is

Callers own the returned temp files; the async context managers below delete
them on every exit path.
"""

import asyncio
import contextlib
import logging
import os
import sys
import tempfile
import uuid
from pathlib import Path
from typing import AsyncIterator, List, Optional
from urllib.parse import unquote, urlparse

import requests

from linkdigest.core.config import Config
from linkdigest.core.errors import DownloadFailedError, ProcessTimeoutError
from linkdigest.core.process_runner import run_process

logger = logging.getLogger(__name__)


def default_yt_dlp_command(yt_dlp_path: Optional[str] = None) -> List[str]:
    """yt-dlp executable from YT_DLP_PATH, else the installed yt_dlp module"""
    if yt_dlp_path:
        return [yt_dlp_path]
    return [sys.executable, '-m', 'yt_dlp']


def _temp_media_path(suffix: str) -> Path:
    return Path(tempfile.gettempdir()) / f"linkdigest-{uuid.uuid4().hex}{suffix}"


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
        logger.info(f"🗑️ [CLEANUP] Removed temporary media file: {path}")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"⚠️ [CLEANUP] Failed to remove temp file {path}: {e}")


class AudioExtractor:
    """Extracts a single best audio stream with yt-dlp"""

    def __init__(
        self,
        command: Optional[List[str]] = None,
        timeout: float = Config.YT_DLP_TIMEOUT,
        runner=run_process,
    ):
        self.command = list(command) if command else default_yt_dlp_command()
        self.timeout = timeout
        self.runner = runner
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def build_args(self, url: str, output_path: Path) -> List[str]:
        return self.command + [
            '-x',
            '--audio-format', 'mp3',
            '--no-playlist',
            '--retries', str(Config.YT_DLP_RETRIES),
            '--no-warnings',
            '-o', str(output_path),
            url,
        ]

    async def extract_audio(self, url: str, output_path: Optional[Path] = None) -> Path:
        """
        Download the best audio track of a URL as mp3

        Args:
            url: Video/audio page URL
            output_path: Destination file (a temp path when omitted)

        Returns:
            Path to the extracted audio

        Raises:
            DownloadFailedError: non-zero exit, signal, timeout or missing output
        """
        output_path = output_path or _temp_media_path('.mp3')
        self.logger.info(f"🔧 [YT-DLP] Downloading audio with yt-dlp: {url}")

        try:
            result = await self.runner(
                self.build_args(url, output_path),
                timeout=self.timeout,
                label='yt-dlp',
                stderr_limit=Config.MAX_YT_DLP_STDERR_BYTES,
            )
        except ProcessTimeoutError as e:
            _remove_quietly(output_path)
            raise DownloadFailedError('yt-dlp', 'download timeout') from e
        except BaseException:
            _remove_quietly(output_path)
            raise

        if not result.ok:
            _remove_quietly(output_path)
            detail = result.stderr.strip()
            suffix = f": {detail}" if detail else ''
            if result.exit_code is None:
                raise DownloadFailedError('yt-dlp', f"terminated ({result.signal or 'unknown'}){suffix}")
            raise DownloadFailedError('yt-dlp', f"exited with code {result.exit_code}{suffix}")

        if not output_path.exists() or output_path.stat().st_size == 0:
            _remove_quietly(output_path)
            raise DownloadFailedError('yt-dlp', 'downloaded file not found')

        size_mb = output_path.stat().st_size / (1024 * 1024)
        self.logger.info(f"✅ [YT-DLP] Download successful: {output_path} ({size_mb:.1f}MB)")
        return output_path

    @contextlib.asynccontextmanager
    async def extracted(self, url: str) -> AsyncIterator[Path]:
        """Extract audio and delete it when the block exits"""
        path = await self.extract_audio(url)
        try:
            yield path
        finally:
            _remove_quietly(path)


def download_media_file(
    url: str,
    output_path: Optional[Path] = None,
    session: Optional[requests.Session] = None,
    timeout: float = Config.LONG_TIMEOUT,
) -> Path:
    """
    Stream a direct media URL to disk (blocking; run via asyncio.to_thread)

    Raises:
        DownloadFailedError: HTTP or network failure (partial file removed)
    """
    suffix = Path(unquote(urlparse(url).path)).suffix or '.bin'
    output_path = output_path or _temp_media_path(suffix)
    session = session or requests.Session()

    logger.info(f"📥 [DOWNLOAD] Downloading media file: {url[:100]}")
    try:
        response = session.get(url, stream=True, timeout=timeout, headers=Config.get_default_headers())
        try:
            response.raise_for_status()
            with open(output_path, 'wb') as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
        finally:
            response.close()
    except requests.exceptions.RequestException as e:
        _remove_quietly(output_path)
        raise DownloadFailedError('media download', str(e)) from e
    except BaseException:
        _remove_quietly(output_path)
        raise

    size_mb = os.path.getsize(output_path) / (1024 * 1024)
    logger.info(f"✅ [DOWNLOAD] Downloaded to {output_path} ({size_mb:.1f}MB)")
    return output_path


@contextlib.asynccontextmanager
async def downloaded_media(url: str, session: Optional[requests.Session] = None) -> AsyncIterator[Path]:
    """Download a direct media URL in a worker thread and delete it on exit"""
    path = await asyncio.to_thread(download_media_file, url, None, session)
    try:
        yield path
    finally:
        _remove_quietly(path)
