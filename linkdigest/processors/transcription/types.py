"""
Transcription provider result type.

Every provider exposes ``provider_id``, ``is_available()`` and
``async transcribe(file_path, media_type) -> ProviderResult`` and never raises
past that boundary: failures come back as ``ProviderResult.failure(...)``.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ProviderResult:
    text: Optional[str]
    provider: str
    error: Optional[Exception] = None
    notes: List[str] = field(default_factory=list)

    @classmethod
    def success(cls, text: str, provider: str, notes: Optional[List[str]] = None) -> 'ProviderResult':
        return cls(text=text, provider=provider, error=None, notes=list(notes or []))

    @classmethod
    def failure(cls, error: Exception, provider: str, notes: Optional[List[str]] = None) -> 'ProviderResult':
        return cls(text=None, provider=provider, error=error, notes=list(notes or []))

    @property
    def ok(self) -> bool:
        return self.text is not None
