"""
Transcription providers.

``build_providers`` returns the fixed fallback order used by the resolver:
whisper.cpp (only when the local binary and model are ready), OpenAI Whisper,
DeepGram, then the ONNX Parakeet and Canary command-line runners.
"""

from typing import List, Optional

from linkdigest.core.artifact_cache import ArtifactCache
from linkdigest.core.config import Config, TranscriptionSettings
from linkdigest.processors.transcription.deepgram import DeepgramProvider
from linkdigest.processors.transcription.onnx_cli import OnnxCliProvider
from linkdigest.processors.transcription.openai_whisper import OpenAIWhisperProvider
from linkdigest.processors.transcription.types import ProviderResult
from linkdigest.processors.transcription.whisper_cpp import WhisperCppProvider
from linkdigest.processors.transcription.youtube_captions import YouTubeCaptionsProvider

__all__ = [
    'DeepgramProvider',
    'OnnxCliProvider',
    'OpenAIWhisperProvider',
    'ProviderResult',
    'WhisperCppProvider',
    'YouTubeCaptionsProvider',
    'build_providers',
]

ONNX_MODELS = ('parakeet', 'canary')


def build_providers(settings: TranscriptionSettings, artifact_cache: Optional[ArtifactCache] = None) -> List:
    """Instantiate every provider in resolver order; availability is checked per call"""
    if artifact_cache is None:
        artifact_cache = ArtifactCache(
            settings.onnx_cache_dir or Config.resolve_onnx_cache_dir(),
            base_url=settings.onnx_model_base_url)

    return [
        WhisperCppProvider(
            binary=settings.whisper_cpp_binary,
            model_path=settings.whisper_cpp_model_path,
            ffmpeg_path=settings.ffmpeg_path,
        ),
        OpenAIWhisperProvider(settings.openai_api_key),
        DeepgramProvider(settings.deepgram_api_key),
    ] + [
        OnnxCliProvider(model, settings.onnx_command(model), artifact_cache, ffmpeg_path=settings.ffmpeg_path)
        for model in ONNX_MODELS
    ]
