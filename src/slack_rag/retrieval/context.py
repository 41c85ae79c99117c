"""Render retrieved rows into a plain-text context block."""

from __future__ import annotations

from typing import List, Sequence

from ..indexing.documents import truncate
from ..indexing.models import RetrievedRow

CONTEXT_MAX_CHARS = 1000
HEADER_SEPARATOR = " · "


def _header(row: RetrievedRow, position: int) -> str:
    parts: List[str] = []
    if row.channel_name:
        parts.append(f"#{row.channel_name}")
    if row.user_name:
        parts.append(row.user_name)
    if row.ts:
        parts.append(f"ts={row.ts}")
    if not parts:
        return f"result {position}"
    return HEADER_SEPARATOR.join(parts)


def format_context(rows: Sequence[RetrievedRow], max_chars: int = CONTEXT_MAX_CHARS) -> str:
    """
    Format rows as `header\\ncontent` blocks separated by blank lines.

    Rows keep the order they were ranked in. Content longer than
    `max_chars` is cut and marked. No rows gives an empty string.
    """
    if not rows:
        return ""

    blocks = [
        f"{_header(row, index)}\n{truncate(row.content or '', max_chars)}"
        for index, row in enumerate(rows, start=1)
    ]
    return "\n\n".join(blocks)
