#!/usr/bin/env python3
"""
Extract Link Content

Runs the full extraction pipeline for one URL or local media file and prints
the resulting content record as JSON.

Usage:
    python3 scripts/extract_link.py https://example.com/article
    python3 scripts/extract_link.py https://www.youtube.com/watch?v=dQw4w9WgXcQ --max-characters 20000
    python3 scripts/extract_link.py ./episode.mp3 --cache-mode bypass
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from linkdigest.core.config import Config, TranscriptionSettings
from linkdigest.core.errors import PipelineError
from linkdigest.processors.link_content import FIRECRAWL_MODES, FetchOptions, LinkContentClient


async def extract(target: str, options: FetchOptions) -> dict:
    settings = TranscriptionSettings.from_env()
    async with LinkContentClient(settings) as client:
        result = await client.fetch_link_content(target, options)
    return asdict(result)


def main():
    parser = argparse.ArgumentParser(description='Extract budgeted text content (and transcripts) from a link')
    parser.add_argument('target', help='URL, file:// URL or local media path')
    parser.add_argument('--cache-mode', choices=['default', 'bypass'], default='default')
    parser.add_argument('--max-characters', type=int, default=None, help='Content budget in characters')
    parser.add_argument('--timeout', type=float, default=None, help='Transcript resolution deadline in seconds')
    parser.add_argument('--firecrawl', choices=FIRECRAWL_MODES, default='auto')
    parser.add_argument('--log-dir', type=Path, default=None, help='Also write logs to this directory')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')

    args = parser.parse_args()

    Config.load_environment()
    logger = Config.setup_logging(
        'LinkExtractor',
        log_dir=args.log_dir,
        level=logging.DEBUG if args.verbose else logging.INFO,
    )

    options = FetchOptions(
        cache_mode=args.cache_mode,
        max_characters=args.max_characters,
        timeout=args.timeout,
        firecrawl=args.firecrawl,
    )

    try:
        result = asyncio.run(extract(args.target, options))
    except PipelineError as e:
        logger.error(f"❌ Extraction failed: {e}")
        sys.exit(1)

    print(json.dumps(result, indent=2, default=str, ensure_ascii=False))


if __name__ == "__main__":
    main()
