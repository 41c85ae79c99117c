"""Fixed-width text chunking."""

from __future__ import annotations

from typing import List

MAX_CHUNK_CHARS = 1800


def chunk_text(text: str, max_chars: int = MAX_CHUNK_CHARS) -> List[str]:
    """
    Split `text` into contiguous slices of at most `max_chars` characters.

    The slices concatenate back to `text` exactly: no overlap, no trimming.
    Empty input yields no chunks.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be a positive integer.")

    return [text[start : start + max_chars] for start in range(0, len(text), max_chars)]
