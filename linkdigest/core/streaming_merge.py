"""
Streaming Merge

Best-effort reconciliation of text chunks from a live generation stream.
Some transports resend output from an earlier checkpoint, occasionally with
small retroactive edits, so a new chunk is not always a pure continuation of
what we already hold. These are prefix/overlap heuristics, not a diff.

One accumulation is merged strictly sequentially.
"""

from dataclasses import dataclass
from typing import Callable

from linkdigest.core.text_utils import normalize_line_endings

COMMON_PREFIX_LIMIT = 4096
RESEND_TAIL_WINDOW = 64
RESEND_PREFIX_RATIO = 0.9
MAX_OVERLAP_SEARCH = 2048


@dataclass(frozen=True)
class MergeResult:
    next: str
    appended: str


def common_prefix_length(a: str, b: str, limit: int = COMMON_PREFIX_LIMIT) -> int:
    max_len = min(len(a), len(b), limit)
    i = 0
    while i < max_len and a[i] == b[i]:
        i += 1
    return i


def merge_streaming_chunk(previous: str, chunk: str) -> MergeResult:
    """
    Merge a streamed chunk into the accumulated text

    Args:
        previous: Text accumulated so far
        chunk: Newly received chunk (may repeat earlier output)

    Returns:
        MergeResult with the new accumulation and the text actually added

    Examples:
        >>> merge_streaming_chunk("Hello", "Hello world").appended
        ' world'
        >>> merge_streaming_chunk("Hello world", "Hello").next
        'Hello world'
    """
    if not chunk:
        return MergeResult(next=previous, appended='')

    prev = normalize_line_endings(previous)
    incoming = normalize_line_endings(chunk)

    if not prev:
        return MergeResult(next=incoming, appended=incoming)

    # Plain continuation
    if incoming.startswith(prev):
        return MergeResult(next=incoming, appended=incoming[len(prev):])

    # Stale resend of something we already have
    if prev.startswith(incoming):
        return MergeResult(next=prev, appended='')

    # Resent with a correction near the tail: take the new chunk wholesale
    if len(incoming) >= len(prev):
        prefix_len = common_prefix_length(prev, incoming)
        if prefix_len > 0:
            min_prefix = max(len(prev) - RESEND_TAIL_WINDOW, int(len(prev) * RESEND_PREFIX_RATIO))
            if prefix_len >= min_prefix:
                return MergeResult(next=incoming, appended=incoming[prefix_len:])

    # Stitch on the longest suffix/prefix overlap
    max_overlap = min(len(prev), len(incoming), MAX_OVERLAP_SEARCH)
    for length in range(max_overlap, 0, -1):
        if prev.endswith(incoming[:length]):
            remainder = incoming[length:]
            return MergeResult(next=prev + remainder, appended=remainder)

    return MergeResult(next=prev + incoming, appended=incoming)


class StreamingAccumulator:
    """Accumulates one stream's chunks through a pluggable merge strategy"""

    def __init__(self, merge: Callable[[str, str], MergeResult] = merge_streaming_chunk):
        self._merge = merge
        self.text = ''

    def push(self, chunk: str) -> str:
        """Merge a chunk and return the newly appended text"""
        result = self._merge(self.text, chunk)
        self.text = result.next
        return result.appended
