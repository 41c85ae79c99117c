"""
Indexing Package

Document construction, chunking and the indexing pipeline.
"""

from .models import (
    SourceMessage,
    UserProfile,
    DocumentAttributes,
    IndexableDocument,
    VectorRow,
    RetrievedRow,
)
from .documents import build_document, build_vector_row
from .chunker import chunk_text

__all__ = [
    "SourceMessage",
    "UserProfile",
    "DocumentAttributes",
    "IndexableDocument",
    "VectorRow",
    "RetrievedRow",
    "build_document",
    "build_vector_row",
    "chunk_text",
]
