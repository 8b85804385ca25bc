#!/usr/bin/env python3
"""
Centralized configuration management for linkdigest
"""

import os
import sys
import logging
from dataclasses import dataclass
from pathlib import Path
from datetime import datetime
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv


class Config:
    """Centralized configuration constants and environment management"""

    # Content limits
    DEFAULT_MAX_CONTENT_CHARACTERS = 8000
    MIN_HTML_CONTENT_CHARACTERS = 200
    MAX_WHISPER_FILE_SIZE_MB = 25

    # Timeouts (seconds)
    DOCUMENT_FETCH_TIMEOUT = 5
    DEFAULT_TIMEOUT = 120
    SHORT_TIMEOUT = 15
    LONG_TIMEOUT = 300
    YT_DLP_TIMEOUT = 300
    FFMPEG_TIMEOUT = 300
    TRANSCRIBE_COMMAND_TIMEOUT = 1800

    # Process output caps (bytes)
    MAX_STDOUT_BYTES = 256_000
    MAX_STDERR_BYTES = 16_000
    MAX_YT_DLP_STDERR_BYTES = 8192

    # yt-dlp settings
    YT_DLP_RETRIES = 3

    # OpenAI Whisper settings
    WHISPER_MODEL = "whisper-1"

    # DeepGram settings
    DEEPGRAM_MODEL = "nova-2"

    # Firecrawl settings
    FIRECRAWL_API_URL = "https://api.firecrawl.dev/v1/scrape"

    # ONNX model settings
    ONNX_COMMAND_ENV_VARS = {
        'parakeet': 'LINKDIGEST_ONNX_PARAKEET_CMD',
        'canary': 'LINKDIGEST_ONNX_CANARY_CMD',
    }
    HUGGINGFACE_BASE_URL = "https://huggingface.co"

    @staticmethod
    def get_api_keys(env: Optional[Mapping[str, str]] = None) -> Dict[str, Optional[str]]:
        """Get all configured API keys"""
        env = os.environ if env is None else env
        return {
            'openai': _clean(env.get('OPENAI_API_KEY')),
            'deepgram': _clean(env.get('DEEPGRAM_API_KEY')),
            'firecrawl': _clean(env.get('FIRECRAWL_API_KEY')),
        }

    @staticmethod
    def get_default_headers() -> Dict[str, str]:
        """Get default HTTP headers"""
        return {
            'User-Agent': os.getenv(
                'USER_AGENT',
                'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
                '(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36'
            ),
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.9',
            'Cache-Control': 'no-cache',
            'Pragma': 'no-cache',
        }

    @staticmethod
    def resolve_onnx_cache_dir(env: Optional[Mapping[str, str]] = None) -> Path:
        """
        Resolve the directory holding downloaded ONNX model artifacts

        Order: LINKDIGEST_ONNX_CACHE_DIR, $XDG_CACHE_HOME/linkdigest/onnx,
        ~/.cache/linkdigest/onnx
        """
        env = os.environ if env is None else env
        override = _clean(env.get('LINKDIGEST_ONNX_CACHE_DIR'))
        if override:
            return Path(override).expanduser()
        base = _clean(env.get('XDG_CACHE_HOME'))
        base_dir = Path(base).expanduser() if base else Path.home() / '.cache'
        return base_dir / 'linkdigest' / 'onnx'

    @staticmethod
    def load_environment(base_dir: Optional[Path] = None) -> None:
        """Load environment variables from .env files (.env.local wins over .env)"""
        base_dir = base_dir or Path.cwd()
        env_local = base_dir / '.env.local'
        env_default = base_dir / '.env'

        if env_local.exists():
            load_dotenv(env_local)
        elif env_default.exists():
            load_dotenv(env_default)

    @staticmethod
    def setup_logging(session_name: str, log_dir: Optional[Path] = None,
                      level: int = logging.INFO) -> logging.Logger:
        """
        Set up logging for a processing session

        Args:
            session_name: Name for this session (e.g., 'LinkExtractor')
            log_dir: Optional directory for a dated log file; console only when omitted
            level: Logging level for all handlers

        Returns:
            Configured logger instance
        """
        handlers = [logging.StreamHandler(sys.stdout)]
        log_file = None
        if log_dir:
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = log_dir / f"{session_name.lower()}_{datetime.now().strftime('%Y%m%d')}.log"
            handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

        logging.basicConfig(
            level=level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            handlers=handlers,
            force=True,
        )

        logger = logging.getLogger(session_name)
        if log_file:
            logger.info(f"{session_name} initialized. Log file: {log_file}")
        return logger


@dataclass
class TranscriptionSettings:
    """Environment-driven settings for transcription providers and tools"""
    openai_api_key: Optional[str] = None
    deepgram_api_key: Optional[str] = None
    firecrawl_api_key: Optional[str] = None
    yt_dlp_path: Optional[str] = None
    ffmpeg_path: Optional[str] = None
    whisper_cpp_binary: str = 'whisper-cli'
    whisper_cpp_model_path: Optional[str] = None
    onnx_parakeet_command: Optional[str] = None
    onnx_canary_command: Optional[str] = None
    onnx_cache_dir: Optional[Path] = None
    onnx_model_base_url: Optional[str] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'TranscriptionSettings':
        env = os.environ if env is None else env
        api_keys = Config.get_api_keys(env)
        base_url = _clean(env.get('LINKDIGEST_ONNX_MODEL_BASE_URL'))
        return cls(
            openai_api_key=api_keys['openai'],
            deepgram_api_key=api_keys['deepgram'],
            firecrawl_api_key=api_keys['firecrawl'],
            yt_dlp_path=_clean(env.get('YT_DLP_PATH')),
            ffmpeg_path=_clean(env.get('FFMPEG_PATH')),
            whisper_cpp_binary=_clean(env.get('WHISPER_CPP_BINARY')) or 'whisper-cli',
            whisper_cpp_model_path=_clean(env.get('WHISPER_CPP_MODEL_PATH')),
            onnx_parakeet_command=_clean(env.get(Config.ONNX_COMMAND_ENV_VARS['parakeet'])),
            onnx_canary_command=_clean(env.get(Config.ONNX_COMMAND_ENV_VARS['canary'])),
            onnx_cache_dir=Config.resolve_onnx_cache_dir(env),
            onnx_model_base_url=base_url.rstrip('/') if base_url else None,
        )

    def onnx_command(self, model: str) -> Optional[str]:
        if model == 'parakeet':
            return self.onnx_parakeet_command
        if model == 'canary':
            return self.onnx_canary_command
        raise ValueError(f"Unknown ONNX model: {model}")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None
