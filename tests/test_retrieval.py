"""Tests for context formatting and the RAG answer flow."""

from unittest.mock import AsyncMock

import pytest

from slack_rag.core.errors import UpstreamError
from slack_rag.embeddings.embedder import Embedder
from slack_rag.llm.client import LLMClient
from slack_rag.prompts import NO_CONTEXT_MESSAGE, SYSTEM_PROMPT
from slack_rag.retrieval.context import format_context
from slack_rag.retrieval.service import RagService, build_messages
from slack_rag.vectorstore.turbopuffer import TurbopufferStore


# ---------------------------------------------------------------------
# format_context
# ---------------------------------------------------------------------

def test_empty_rows_give_empty_context():
    assert format_context([]) == ""


def test_header_parts_and_order(make_row):
    rows = [
        make_row(id="1", content="first", channel_name="general", user_name="Nate", ts="1.0"),
        make_row(id="2", content="second", user_name="Huy"),
        make_row(id="3", content="third"),
    ]

    assert format_context(rows) == (
        "#general · Nate · ts=1.0\nfirst\n\n"
        "Huy\nsecond\n\n"
        "result 3\nthird"
    )


def test_long_content_truncated_once(make_row):
    context = format_context([make_row(content="z" * 1500, channel_name="dev")])

    header, body = context.split("\n", 1)
    assert header == "#dev"
    assert body == "z" * 1000 + "…"
    assert body.count("…") == 1


def test_missing_content_renders_empty_body(make_row):
    assert format_context([make_row(content=None, ts="9.9")]) == "ts=9.9\n"


# ---------------------------------------------------------------------
# Messages for the generation call
# ---------------------------------------------------------------------

def test_messages_with_context():
    messages = build_messages("what happened?", "#general\nhello")

    assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert messages[1]["content"] == "Here is retrieved Slack context:\n\n#general\nhello"
    assert messages[2] == {"role": "user", "content": "what happened?"}


def test_messages_without_context_use_marker():
    messages = build_messages("what happened?", "")
    assert messages[1]["content"] == NO_CONTEXT_MESSAGE


# ---------------------------------------------------------------------
# RagService
# ---------------------------------------------------------------------

@pytest.fixture
def mock_embedder():
    mock = AsyncMock(spec=Embedder)
    mock.embed.return_value = [0.3, 0.4]
    return mock


@pytest.fixture
def mock_store():
    mock = AsyncMock(spec=TurbopufferStore)
    mock.query.return_value = []
    return mock


@pytest.fixture
def mock_llm():
    mock = AsyncMock(spec=LLMClient)
    mock.complete.return_value = "**Yes** it shipped\n- item"
    return mock


@pytest.mark.asyncio
async def test_retrieve_embeds_then_queries(mock_embedder, mock_store, mock_llm, make_row):
    mock_store.query.return_value = [make_row(id="a")]
    rag = RagService(mock_embedder, mock_store, mock_llm)

    rows = await rag.retrieve("did it ship?")

    mock_embedder.embed.assert_awaited_once_with("did it ship?")
    mock_store.query.assert_awaited_once_with([0.3, 0.4], 20)
    assert [r.id for r in rows] == ["a"]


@pytest.mark.asyncio
async def test_answer_without_rows_sends_no_context_marker(mock_embedder, mock_store, mock_llm):
    rag = RagService(mock_embedder, mock_store, mock_llm, top_k=5)

    answer = await rag.answer("did it ship?")

    mock_store.query.assert_awaited_once_with([0.3, 0.4], 5)
    (messages,) = mock_llm.complete.await_args.args
    assert messages[1]["content"] == NO_CONTEXT_MESSAGE
    assert answer.text == "**Yes** it shipped\n- item"
    assert answer.display_text == "*Yes* it shipped\n• item"
    assert answer.rows == []


@pytest.mark.asyncio
async def test_answer_with_rows_passes_context(mock_embedder, mock_store, mock_llm, make_row):
    mock_store.query.return_value = [make_row(content="shipped on monday", user_name="Nate")]
    rag = RagService(mock_embedder, mock_store, mock_llm)

    await rag.answer("did it ship?", top_k=3)

    mock_store.query.assert_awaited_once_with([0.3, 0.4], 3)
    (messages,) = mock_llm.complete.await_args.args
    assert messages[1]["content"].endswith("Nate\nshipped on monday")


@pytest.mark.asyncio
async def test_answer_failure_propagates(mock_embedder, mock_store, mock_llm):
    mock_store.query.side_effect = UpstreamError("query failed", status_code=500)
    rag = RagService(mock_embedder, mock_store, mock_llm)

    with pytest.raises(UpstreamError):
        await rag.answer("did it ship?")
    mock_llm.complete.assert_not_awaited()
