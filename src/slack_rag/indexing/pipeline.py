"""
Indexing Pipeline

Orchestrates Document Builder -> Chunker -> Embedder -> Vector Store for a
single document or for a whole channel backlog.

Concurrency
-----------
- Chunks of one document are embedded concurrently (fan-out) and joined
  before one batched upsert (fan-in). The first failure cancels the
  remaining embeddings and no row of that document is written.
- Author lookups for a backlog run concurrently, one per distinct author.
- Backlog documents are indexed strictly one after another, which keeps the
  load on the embedding and vector services bounded. Upserts are keyed by
  row id, so a re-run converges to the same end state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Dict, Iterable, List, Literal, Optional, Protocol, Sequence, TypeVar

from ..embeddings.embedder import Embedder
from ..vectorstore.turbopuffer import TurbopufferStore
from .chunker import MAX_CHUNK_CHARS, chunk_text
from .documents import MAX_CONTENT_CHARS, build_document, build_document_id, build_vector_row
from .models import IndexableDocument, SourceMessage, UserProfile, VectorRow

logger = logging.getLogger("slackrag.pipeline")

T = TypeVar("T")


class UserDirectory(Protocol):
    """Anything that can resolve a Slack user id to a profile."""

    async def lookup(self, user_id: str) -> UserProfile:
        ...


# ---------------------------------------------------------------------
# Backlog report
# ---------------------------------------------------------------------

@dataclass
class BacklogItem:
    """Outcome for one backlog message."""

    document_id: str
    status: Literal["indexed", "skipped", "failed"]
    rows: int = 0
    error: Optional[str] = None


@dataclass
class BacklogReport:
    """Ordered per-message results of a backlog run."""

    items: List[BacklogItem] = field(default_factory=list)

    @property
    def indexed(self) -> int:
        return sum(1 for item in self.items if item.status == "indexed")

    @property
    def skipped(self) -> int:
        return sum(1 for item in self.items if item.status == "skipped")

    @property
    def failed(self) -> int:
        return sum(1 for item in self.items if item.status == "failed")

    @property
    def rows(self) -> int:
        return sum(item.rows for item in self.items)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict:
        return {
            "indexed": self.indexed,
            "skipped": self.skipped,
            "failed": self.failed,
            "rows": self.rows,
            "items": [
                {
                    "document_id": item.document_id,
                    "status": item.status,
                    "rows": item.rows,
                    "error": item.error,
                }
                for item in self.items
            ],
        }


# ---------------------------------------------------------------------
# Fan-out / fan-in
# ---------------------------------------------------------------------

async def gather_or_cancel(aws: Iterable[Awaitable[T]]) -> List[T]:
    """
    Run awaitables concurrently and return their results in order.

    On the first failure the remaining tasks are cancelled and the
    exception propagates.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []

    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    return [task.result() for task in tasks]


# ---------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------

class IndexingPipeline:
    """
    Turns documents into vector rows and upserts them.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: TurbopufferStore,
        max_chunk_chars: int = MAX_CHUNK_CHARS,
        max_content_chars: int = MAX_CONTENT_CHARS,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.max_chunk_chars = max_chunk_chars
        self.max_content_chars = max_content_chars

    # ------------------------------------------------------------------
    # Single document
    # ------------------------------------------------------------------

    async def build_rows(self, document: IndexableDocument) -> List[VectorRow]:
        """
        Chunk and embed `document`. Does not write anything.
        """
        source_text = document.embedding_text or document.content
        chunks = chunk_text(source_text, self.max_chunk_chars)
        total = len(chunks)

        async def _row(index: int, chunk: str) -> VectorRow:
            vector = await self.embedder.embed(chunk)
            return build_vector_row(
                document,
                chunk,
                index,
                total,
                vector,
                max_content_chars=self.max_content_chars,
            )

        return await gather_or_cancel(_row(i, chunk) for i, chunk in enumerate(chunks))

    async def index_document(self, document: Optional[IndexableDocument]) -> int:
        """
        Embed and upsert one document. Returns the number of rows written.

        A missing document, or one whose text yields no chunks, is a no-op.
        A store that is not configured fails before any embedding call. Any
        embedding or upsert failure propagates and nothing is written.
        """
        if document is None:
            return 0

        self.store.ensure_configured()
        rows = await self.build_rows(document)
        if not rows:
            return 0

        await self.store.upsert(rows)
        logger.info(
            "Indexed Slack message %s (chunks=%d, channel=%s, user=%s)",
            document.id,
            len(rows),
            document.attributes.channel_name,
            document.attributes.user_name,
        )
        return len(rows)

    async def index_message(self, message: SourceMessage) -> int:
        document = build_document(message, max_content_chars=self.max_content_chars)
        return await self.index_document(document)

    # ------------------------------------------------------------------
    # Backlog
    # ------------------------------------------------------------------

    async def resolve_profiles(
        self,
        user_ids: Iterable[str],
        directory: UserDirectory,
    ) -> Dict[str, UserProfile]:
        """
        Look up each distinct user id once, concurrently.

        Failed lookups are logged and left out of the result.
        """
        unique_ids = list(dict.fromkeys(uid for uid in user_ids if uid))
        results = await asyncio.gather(
            *(directory.lookup(uid) for uid in unique_ids),
            return_exceptions=True,
        )

        profiles: Dict[str, UserProfile] = {}
        for user_id, result in zip(unique_ids, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Failed to fetch user profile during indexing (user_id=%s): %s",
                    user_id,
                    result,
                )
                continue
            profiles[user_id] = result
        return profiles

    async def index_backlog(
        self,
        messages: Sequence[SourceMessage],
        directory: Optional[UserDirectory] = None,
    ) -> BacklogReport:
        """
        Index a channel backlog, best effort.

        Authors are resolved first; a message whose author could not be
        resolved is indexed under the placeholder name "Unknown". Messages
        are then indexed in order, one at a time. A failing message is
        recorded in the report and the run continues.
        """
        profiles: Dict[str, UserProfile] = {}
        if directory is not None:
            profiles = await self.resolve_profiles(
                (m.user_id for m in messages if m.user_id),
                directory,
            )

        report = BacklogReport()
        for message in messages:
            if directory is not None:
                profile = profiles.get(message.user_id or "", UserProfile())
                message = message.model_copy(
                    update={
                        "user_name": profile.name,
                        "user_email": profile.email,
                    }
                )

            document_id = build_document_id(message.channel_id, message.ts)
            document = build_document(message, max_content_chars=self.max_content_chars)
            if document is None:
                report.items.append(BacklogItem(document_id=document_id, status="skipped"))
                continue

            try:
                rows = await self.index_document(document)
            except Exception as exc:
                logger.exception("Failed to index backlog message %s", document_id)
                report.items.append(
                    BacklogItem(document_id=document_id, status="failed", error=str(exc))
                )
                continue

            status = "indexed" if rows else "skipped"
            report.items.append(BacklogItem(document_id=document_id, status=status, rows=rows))

        logger.info(
            "Backlog indexing finished (indexed=%d, skipped=%d, failed=%d, rows=%d)",
            report.indexed,
            report.skipped,
            report.failed,
            report.rows,
        )
        return report


__all__ = [
    "BacklogItem",
    "BacklogReport",
    "IndexingPipeline",
    "UserDirectory",
    "gather_or_cancel",
]
