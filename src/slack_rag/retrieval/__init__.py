"""
Retrieval Package

Question embedding, nearest-neighbour lookup and context formatting.
"""

from .context import format_context
from .service import RagAnswer, RagService

__all__ = ["format_context", "RagAnswer", "RagService"]
