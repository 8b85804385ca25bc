#!/usr/bin/env python3
"""
ONNX CLI Transcriber

Runs an operator-configured command line (e.g. a Parakeet or Canary ONNX
runner) that prints a transcript to stdout.

The command template comes from LINKDIGEST_ONNX_PARAKEET_CMD /
LINKDIGEST_ONNX_CANARY_CMD and may contain the placeholders {input},
{model_dir}, {model} and {vocab}. Without {input} the input path is appended
as the last argument. Templates are trusted operator configuration; plain
templates run as argv, templates using shell syntax run through the shell
with each substitution escaped for its quoting context (bare, single or double
quoted), so placeholders may be written as {input}, "{input}" or '{input}'.
"""

import asyncio
import logging
import re
import shlex
from pathlib import Path
from typing import Dict, List, Optional, Union

from linkdigest.core.artifact_cache import ArtifactCache
from linkdigest.core.config import Config
from linkdigest.core.errors import (
    CommandNotConfiguredError,
    EmptyProviderOutputError,
    ProcessNonZeroExitError,
    wrap_error,
)
from linkdigest.core.process_runner import run_process
from linkdigest.core.types import ModelArtifacts, PROVIDER_ONNX_CANARY, PROVIDER_ONNX_PARAKEET
from linkdigest.processors.transcription.ffmpeg import wav_input
from linkdigest.processors.transcription.types import ProviderResult

PROVIDER_IDS = {
    'parakeet': PROVIDER_ONNX_PARAKEET,
    'canary': PROVIDER_ONNX_CANARY,
}
SHELL_SYNTAX_PATTERN = re.compile(r'[|&;<>()$`\n*?]')
COMMAND_HINT = "a CLI that emits text from WAV audio"


def resolve_onnx_provider_id(model: str) -> str:
    return PROVIDER_IDS[model]


def _quote_for_context(value: str, quote: Optional[str]) -> str:
    if quote == "'":
        return value.replace("'", "'\\''")
    if quote == '"':
        return re.sub(r'([\\$`"])', r'\\\1', value)
    return shlex.quote(value)


def _substitute_shell(template: str, replacements: Dict[str, str]) -> str:
    """
    Replace placeholders in a shell template, escaping each value for the
    quoting context it appears in (bare, '...' or "...")
    """
    parts: List[str] = []
    quote: Optional[str] = None
    i = 0
    while i < len(template):
        char = template[i]
        needle = next((n for n in replacements if template.startswith(n, i)), None)
        if needle is not None:
            parts.append(_quote_for_context(replacements[needle], quote))
            i += len(needle)
            continue
        if char == '\\' and quote != "'" and i + 1 < len(template):
            parts.append(template[i:i + 2])
            i += 2
            continue
        if char in ('"', "'"):
            if quote is None:
                quote = char
            elif quote == char:
                quote = None
        parts.append(char)
        i += 1
    return ''.join(parts)


def build_command(template: str, input_path: Path, artifacts: ModelArtifacts) -> Union[str, List[str]]:
    """
    Substitute placeholders into a command template

    Returns:
        argv list for plain templates, a shell string when the template uses shell syntax
    """
    replacements: Dict[str, str] = {
        '{input}': str(input_path),
        '{model_dir}': str(artifacts.model_dir),
        '{model}': str(artifacts.model_path),
        '{vocab}': str(artifacts.vocab_path),
    }
    has_input = '{input}' in template

    if SHELL_SYNTAX_PATTERN.search(template):
        command = _substitute_shell(template, replacements)
        if not has_input:
            command = f"{command} {shlex.quote(str(input_path))}"
        return command

    argv = []
    for token in shlex.split(template):
        for needle, value in replacements.items():
            token = token.replace(needle, value)
        argv.append(token)
    if not has_input:
        argv.append(str(input_path))
    return argv


class OnnxCliProvider:
    """Transcribes through an external ONNX model CLI"""

    def __init__(
        self,
        model: str,
        command_template: Optional[str],
        artifact_cache: ArtifactCache,
        ffmpeg_path: Optional[str] = None,
        timeout: float = Config.TRANSCRIBE_COMMAND_TIMEOUT,
        runner=run_process,
    ):
        if model not in PROVIDER_IDS:
            raise ValueError(f"Unknown ONNX model: {model}")
        self.model = model
        self.provider_id = resolve_onnx_provider_id(model)
        self.command_template = command_template
        self.artifact_cache = artifact_cache
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout
        self.runner = runner
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def env_var(self) -> str:
        return Config.ONNX_COMMAND_ENV_VARS[self.model]

    def is_available(self) -> bool:
        return bool(self.command_template)

    async def transcribe(self, file_path: Path, media_type: Optional[str]) -> ProviderResult:
        notes: List[str] = []
        provider = self.provider_id

        if not self.command_template:
            return ProviderResult.failure(
                CommandNotConfiguredError(provider, self.env_var, COMMAND_HINT), provider, notes
            )

        try:
            artifacts = await asyncio.to_thread(self.artifact_cache.ensure_artifacts, self.model, notes)
        except Exception as e:
            self.logger.warning(f"⚠️ [ONNX] {provider} artifacts unavailable: {e}")
            return ProviderResult.failure(wrap_error(f"{provider} model download failed", e), provider, notes)

        try:
            async with wav_input(Path(file_path), media_type, notes, 'ONNX transcriber',
                                 ffmpeg_path=self.ffmpeg_path, runner=self.runner) as input_path:
                command = build_command(self.command_template, input_path, artifacts)
                self.logger.info(f"🎙️ [ONNX] Running {provider} transcriber...")
                result = await self.runner(command, timeout=self.timeout, label=provider)
        except Exception as e:
            self.logger.warning(f"⚠️ [ONNX] {provider} failed: {e}")
            return ProviderResult.failure(wrap_error(f"{provider} failed", e), provider, notes)

        if not result.ok:
            return ProviderResult.failure(
                ProcessNonZeroExitError(provider, result.exit_code, result.stderr, result.signal),
                provider,
                notes,
            )

        text = result.stdout.strip()
        if not text:
            return ProviderResult.failure(EmptyProviderOutputError(provider), provider, notes)

        self.logger.info(f"✅ [ONNX] {provider} transcription complete ({len(text):,} chars)")
        return ProviderResult.success(text, provider, notes)
