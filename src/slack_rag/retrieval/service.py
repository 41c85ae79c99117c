"""
Retrieval & Answer Service

Answers a question by:

1. Embedding the question
2. Querying the vector store for the nearest rows
3. Formatting those rows into a context block
4. Asking the chat model, with the context (or a "no context" marker)

The read path has no write side effects, so any failure can simply
propagate to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..embeddings.embedder import Embedder
from ..indexing.models import RetrievedRow
from ..llm.client import LLMClient
from ..prompts import CONTEXT_PREAMBLE, NO_CONTEXT_MESSAGE, SYSTEM_PROMPT
from ..slack.markup import to_slack_markdown
from ..vectorstore.turbopuffer import TurbopufferStore
from .context import CONTEXT_MAX_CHARS, format_context

logger = logging.getLogger("slackrag.retrieval")

DEFAULT_TOP_K = 20


@dataclass
class RagAnswer:
    text: str
    display_text: str
    rows: List[RetrievedRow] = field(default_factory=list)


def build_messages(question: str, context: str) -> List[Dict[str, str]]:
    """Chat messages for one RAG question."""
    context_message = f"{CONTEXT_PREAMBLE}{context}" if context else NO_CONTEXT_MESSAGE
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "system", "content": context_message},
        {"role": "user", "content": question},
    ]


class RagService:
    def __init__(
        self,
        embedder: Embedder,
        store: TurbopufferStore,
        llm: LLMClient,
        top_k: int = DEFAULT_TOP_K,
        context_max_chars: int = CONTEXT_MAX_CHARS,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.llm = llm
        self.top_k = top_k
        self.context_max_chars = context_max_chars

    async def retrieve(self, question: str, top_k: Optional[int] = None) -> List[RetrievedRow]:
        # A missing store credential must not cost an embedding call first.
        self.store.ensure_configured()
        vector = await self.embedder.embed(question)
        return await self.store.query(vector, top_k or self.top_k)

    async def answer(self, question: str, top_k: Optional[int] = None) -> RagAnswer:
        rows = await self.retrieve(question, top_k)
        context = format_context(rows, max_chars=self.context_max_chars)

        logger.info("RAG query results (question=%r, rows=%d)", question, len(rows))

        text = await self.llm.complete(build_messages(question, context))
        return RagAnswer(text=text, display_text=to_slack_markdown(text), rows=rows)
