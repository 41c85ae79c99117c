from functools import lru_cache

from ..config import get_settings
from ..embeddings.embedder import Embedder
from ..vectorstore.turbopuffer import TurbopufferStore
from ..llm.client import LLMClient
from ..indexing.pipeline import IndexingPipeline
from ..retrieval.service import RagService
from ..slack.workspace import SlackWorkspace
from ..slack.handlers import SlackEventHandler


# Settings are read once here and passed down explicitly; nothing below the
# API layer looks configuration up on its own.

@lru_cache
def get_embedder() -> Embedder:
    return Embedder.from_settings(get_settings())


@lru_cache
def get_vector_store() -> TurbopufferStore:
    return TurbopufferStore.from_settings(get_settings())


@lru_cache
def get_llm_client() -> LLMClient:
    return LLMClient.from_settings(get_settings())


@lru_cache
def get_pipeline() -> IndexingPipeline:
    settings = get_settings()
    return IndexingPipeline(
        embedder=get_embedder(),
        store=get_vector_store(),
        max_chunk_chars=settings.max_chunk_chars,
        max_content_chars=settings.max_content_chars,
    )


@lru_cache
def get_rag_service() -> RagService:
    settings = get_settings()
    return RagService(
        embedder=get_embedder(),
        store=get_vector_store(),
        llm=get_llm_client(),
        top_k=settings.retrieval_top_k,
        context_max_chars=settings.context_max_chars,
    )


@lru_cache
def get_workspace() -> SlackWorkspace:
    return SlackWorkspace.from_settings(get_settings())


def get_event_handler() -> SlackEventHandler:
    return SlackEventHandler(
        workspace=get_workspace(),
        pipeline=get_pipeline(),
        rag=get_rag_service(),
    )
