"""
Document Builder

Turns a SourceMessage into an IndexableDocument with a stable identifier, and
projects a document chunk into a VectorRow.

Everything in this module is pure: the same input always yields the same
document, the same truncation and the same row ids.
"""

from __future__ import annotations

from typing import List, Optional

from .models import (
    SOURCE_SLACK,
    DocumentAttributes,
    IndexableDocument,
    SourceMessage,
    VectorRow,
)

MAX_CONTENT_CHARS = 3800
TRUNCATION_MARKER = "…"
SLACK_ARCHIVE_URL = "https://slack.com/archives"


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def truncate(text: str, limit: int) -> str:
    """Cut `text` to `limit` characters, appending a marker when cut."""
    if len(text) > limit:
        return f"{text[:limit]}{TRUNCATION_MARKER}"
    return text


def build_document_id(channel_id: str, ts: str, source: str = SOURCE_SLACK) -> str:
    return f"{source}:{channel_id}:{ts}"


def build_permalink(channel_id: str, ts: str) -> str:
    """Slack archive link; the ts decimal point is dropped, e.g. p1700000000000100."""
    return f"{SLACK_ARCHIVE_URL}/{channel_id}/p{str(ts).replace('.', '', 1)}"


def build_row_id(document_id: str, index: int, total: int) -> str:
    """
    Row id for chunk `index` of `total`.

    A single-chunk document reuses the document id so re-indexing replaces
    the same row.
    """
    if total == 1:
        return document_id
    return f"{document_id}:chunk:{index}"


def _embedding_prefix(user_name: Optional[str], channel_name: Optional[str]) -> str:
    parts: List[str] = []
    if user_name:
        parts.append(f"From {user_name}")
    if channel_name:
        parts.append(f"in #{channel_name}")
    if not parts:
        return ""
    return f"{' '.join(parts)}: "


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def build_document(
    message: SourceMessage,
    max_content_chars: int = MAX_CONTENT_CHARS,
) -> Optional[IndexableDocument]:
    """
    Build the indexable view of a message.

    Returns None when the message text is empty or whitespace only.

    The author and channel names are prepended to the embedding text so a
    question mentioning a person or channel can match messages that never
    name them in the body.
    """
    raw = (message.text or "").strip()
    if not raw:
        return None

    attributes = DocumentAttributes(
        source=SOURCE_SLACK,
        channel_id=message.channel_id,
        channel_name=message.channel_name,
        user_id=message.user_id,
        user_name=message.user_name,
        user_email=message.user_email,
        team_id=message.team_id,
        ts=message.ts,
        url=build_permalink(message.channel_id, message.ts),
    )

    return IndexableDocument(
        id=build_document_id(message.channel_id, message.ts),
        content=truncate(raw, max_content_chars),
        embedding_text=_embedding_prefix(message.user_name, message.channel_name) + raw,
        attributes=attributes,
    )


def build_vector_row(
    document: IndexableDocument,
    chunk: str,
    index: int,
    total: int,
    vector: List[float],
    max_content_chars: int = MAX_CONTENT_CHARS,
) -> VectorRow:
    """
    Project one embedded chunk of `document` into a VectorRow.

    The row carries the document attributes but neither the embedding text
    nor the document's own content; `content` is the chunk text.
    """
    return VectorRow(
        id=build_row_id(document.id, index, total),
        vector=vector,
        content=truncate(chunk, max_content_chars),
        parent_id=document.id,
        chunk_index=index,
        attributes=document.attributes,
    )
