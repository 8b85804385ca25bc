#!/usr/bin/env python3
"""
Text Utilities

Provides normalization and length budgeting for extracted content.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

LINE_ENDING_PATTERN = re.compile(r'\r\n?')
HORIZONTAL_WHITESPACE_PATTERN = re.compile(r'[^\S\n]+')
TRAILING_SPACE_PATTERN = re.compile(r' +\n')
EXCESS_NEWLINES_PATTERN = re.compile(r'\n{3,}')
WORD_SPLIT_PATTERN = re.compile(r'\s+')

# Fraction of the budget window we allow to give up to avoid cutting a word
WORD_BOUNDARY_BACKOFF = 0.2


@dataclass
class ContentBudget:
    content: str
    truncated: bool
    total_characters: int
    word_count: int


def normalize_line_endings(text: str) -> str:
    """Convert CR and CRLF line endings to LF"""
    return LINE_ENDING_PATTERN.sub('\n', text)


def normalize_text(text: Optional[str]) -> str:
    """
    Collapse line-ending variants and redundant whitespace

    Examples:
        >>> normalize_text("Hello \\t  world\\r\\n\\r\\n\\r\\nBye  ")
        'Hello world\\n\\nBye'
    """
    if not text:
        return ''
    normalized = normalize_line_endings(text)
    normalized = HORIZONTAL_WHITESPACE_PATTERN.sub(' ', normalized)
    normalized = TRAILING_SPACE_PATTERN.sub('\n', normalized)
    normalized = EXCESS_NEWLINES_PATTERN.sub('\n\n', normalized)
    return normalized.strip()


def count_words(text: str) -> int:
    """Count whitespace-separated words"""
    return len([word for word in WORD_SPLIT_PATTERN.split(text) if word])


def apply_budget(text: Optional[str], max_characters: int) -> ContentBudget:
    """
    Normalize text and truncate it to a character budget

    Args:
        text: Raw text to budget
        max_characters: Maximum length of the returned content (must be > 0)

    Returns:
        ContentBudget; total_characters is the normalized length before truncation,
        word_count describes the returned content
    """
    if max_characters <= 0:
        raise ValueError("max_characters must be positive")

    normalized = normalize_text(text)
    total = len(normalized)

    if total <= max_characters:
        return ContentBudget(
            content=normalized,
            truncated=False,
            total_characters=total,
            word_count=count_words(normalized),
        )

    content = normalized[:max_characters]
    # Prefer a word boundary when the cut lands inside a word
    if not normalized[max_characters].isspace():
        boundary = max(content.rfind(' '), content.rfind('\n'))
        if boundary >= int(max_characters * (1 - WORD_BOUNDARY_BACKOFF)):
            content = content[:boundary]
    content = content.rstrip()

    return ContentBudget(
        content=content,
        truncated=True,
        total_characters=total,
        word_count=count_words(content),
    )


def append_note(existing: Optional[str], note: Optional[str]) -> Optional[str]:
    """
    Append a diagnostic note, joining with '; '

    Examples:
        >>> append_note(None, "first")
        'first'
        >>> append_note("first", "second")
        'first; second'
    """
    if not note:
        return existing
    if not existing:
        return note
    return f"{existing}; {note}"


def join_notes(notes: Iterable[str], existing: Optional[str] = None) -> Optional[str]:
    for note in notes:
        existing = append_note(existing, note)
    return existing


def summarize_transcript(text: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """Return (character count, non-blank line count), None for empty transcripts"""
    if not text:
        return None, None
    lines = [line for line in normalize_line_endings(text).split('\n') if line.strip()]
    return len(text), (len(lines) or None)
