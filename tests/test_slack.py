"""Tests for the Slack adapter: markup helpers, workspace client and event handlers."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from slack_rag.core.errors import UpstreamError
from slack_rag.indexing.models import UserProfile
from slack_rag.indexing.pipeline import BacklogItem, BacklogReport, IndexingPipeline
from slack_rag.retrieval.service import RagAnswer, RagService
from slack_rag.slack import handlers
from slack_rag.slack.handlers import SlackEventHandler
from slack_rag.slack.markup import (
    DEFAULT_QUESTION,
    extract_question,
    is_index_command,
    mentions_user,
    to_slack_markdown,
)
from slack_rag.slack.queue import EventQueue, SlackEventJob, handle_job, process_events_worker_task
from slack_rag.slack.workspace import SlackWorkspace


# ---------------------------------------------------------------------
# Markup
# ---------------------------------------------------------------------

def test_to_slack_markdown():
    assert to_slack_markdown("**bold** text\n- one\n  - two") == "*bold* text\n• one\n• two"
    assert to_slack_markdown(None) == ""


def test_extract_question():
    assert extract_question("<@UBOT> what did Nate say?") == "what did Nate say?"
    assert extract_question("<@UBOT>   ") == DEFAULT_QUESTION
    assert extract_question(None) == DEFAULT_QUESTION


def test_index_command_and_mentions():
    assert is_index_command("<@UBOT> Index Channel please")
    assert not is_index_command("<@UBOT> index this")
    assert mentions_user("hey <@UBOT>", "UBOT")
    assert not mentions_user("hey <@UBOT>", None)


# ---------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_fetch_channel_messages_paginates_and_filters():
    client = MagicMock()
    client.conversations_history.side_effect = [
        {
            "messages": [
                {"text": "hello", "user": "U1", "ts": "2.0", "team": "T1"},
                {"text": "joined", "user": "U2", "ts": "1.5", "subtype": "channel_join"},
            ],
            "response_metadata": {"next_cursor": "abc"},
        },
        {
            "messages": [
                {"text": "", "user": "U1", "ts": "1.2"},
                {"text": "older", "user": "U2", "ts": "1.0"},
            ],
            "response_metadata": {"next_cursor": ""},
        },
    ]
    workspace = SlackWorkspace(client)

    messages = await workspace.fetch_channel_messages("C1", channel_name="general")

    assert [(m.text, m.ts, m.channel_name) for m in messages] == [
        ("hello", "2.0", "general"),
        ("older", "1.0", "general"),
    ]
    assert messages[0].team_id == "T1"
    assert client.conversations_history.call_args_list[1].kwargs == {
        "channel": "C1",
        "limit": 200,
        "cursor": "abc",
    }


@pytest.mark.asyncio
async def test_lookup_reads_profile():
    client = MagicMock()
    client.users_info.return_value = {
        "user": {"profile": {"display_name": "", "real_name": "Nate", "email": "n@example.com", "team": "T1"}}
    }
    profile = await SlackWorkspace(client).lookup("U1")

    assert profile.name == "Nate"
    assert profile.email == "n@example.com"


# ---------------------------------------------------------------------
# Event handlers
# ---------------------------------------------------------------------

@pytest.fixture
def workspace():
    mock = AsyncMock(spec=SlackWorkspace)
    mock.lookup.return_value = UserProfile(display_name="nate", email="n@example.com")
    mock.channel_name.return_value = "general"
    mock.fetch_channel_messages.return_value = []
    return mock


@pytest.fixture
def pipeline():
    mock = AsyncMock(spec=IndexingPipeline)
    mock.index_backlog.return_value = BacklogReport()
    return mock


@pytest.fixture
def rag():
    mock = AsyncMock(spec=RagService)
    mock.answer.return_value = RagAnswer(text="**hi**", display_text="*hi*")
    return mock


@pytest.fixture
def handler(workspace, pipeline, rag):
    return SlackEventHandler(workspace=workspace, pipeline=pipeline, rag=rag)


@pytest.mark.asyncio
async def test_message_is_enriched_and_indexed(handler, pipeline):
    event = {"type": "message", "text": "ship it", "user": "U1", "channel": "C1", "ts": "5.0", "team": "T1"}

    await handler.on_message(event, bot_user_id="UBOT")

    (message,) = pipeline.index_message.await_args.args
    assert message.user_name == "nate"
    assert message.user_email == "n@example.com"
    assert message.channel_name == "general"
    assert message.team_id == "T1"


@pytest.mark.asyncio
async def test_bot_mentions_and_subtypes_are_not_indexed(handler, pipeline):
    await handler.on_message({"text": "<@UBOT> hi", "user": "U1", "channel": "C1", "ts": "1.0"}, "UBOT")
    await handler.on_message({"subtype": "bot_message", "text": "x", "channel": "C1", "ts": "1.0"}, "UBOT")

    pipeline.index_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_message_failure_is_logged_not_raised(handler, pipeline):
    pipeline.index_message.side_effect = UpstreamError("boom")

    await handler.on_message({"text": "x", "user": "U1", "channel": "C1", "ts": "1.0"})


@pytest.mark.asyncio
async def test_index_command_runs_backlog(handler, workspace, pipeline):
    report = BacklogReport(items=[BacklogItem(document_id="slack:C1:1.0", status="indexed", rows=1)])
    pipeline.index_backlog.return_value = report

    await handler.on_app_mention({"text": "<@UBOT> index channel", "channel": "C1", "ts": "9.0"})

    workspace.fetch_channel_messages.assert_awaited_once_with("C1", channel_name="general")
    pipeline.index_backlog.assert_awaited_once()
    assert pipeline.index_backlog.await_args.kwargs["directory"] is workspace
    posted = [call.args[1] for call in workspace.post.await_args_list]
    assert posted == [handlers.INDEX_STARTED, handlers.INDEX_FINISHED]


@pytest.mark.asyncio
async def test_index_command_failure_posts_apology(handler, workspace):
    workspace.fetch_channel_messages.side_effect = RuntimeError("history unavailable")

    await handler.on_app_mention({"text": "<@UBOT> index channel", "channel": "C1"})

    posted = [call.args[1] for call in workspace.post.await_args_list]
    assert posted == [handlers.INDEX_STARTED, handlers.INDEX_FAILED]


@pytest.mark.asyncio
async def test_question_is_answered(handler, workspace, rag):
    await handler.on_app_mention({"text": "<@UBOT> what shipped?", "channel": "C1", "user": "U1"})

    rag.answer.assert_awaited_once_with("what shipped?")
    posted = [call.args[1] for call in workspace.post.await_args_list]
    assert posted == [handlers.THINKING, "*hi*"]


@pytest.mark.asyncio
async def test_question_failure_posts_apology(handler, workspace, rag):
    rag.answer.side_effect = UpstreamError("down")

    await handler.on_app_mention({"text": "<@UBOT> what shipped?", "channel": "C1"})

    posted = [call.args[1] for call in workspace.post.await_args_list]
    assert posted == [handlers.THINKING, handlers.ANSWER_FAILED]


# ---------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_queue_dispatches_jobs():
    queue = EventQueue()
    handler = AsyncMock(spec=SlackEventHandler)

    size = await queue.enqueue(SlackEventJob(kind="message", event={"ts": "1.0"}, bot_user_id="UBOT"))
    assert size == 1

    job = await queue.get_next_job()
    await handle_job(job, handler)
    handler.on_message.assert_awaited_once_with({"ts": "1.0"}, bot_user_id="UBOT")

    await handle_job(SlackEventJob(kind="app_mention", event={"ts": "2.0"}), handler)
    handler.on_app_mention.assert_awaited_once_with({"ts": "2.0"})


class BlockingHandler:
    """Holds "index channel" mentions until released; answers anything else at once."""

    def __init__(self):
        self.release_backlog = asyncio.Event()
        self.backlog_started = asyncio.Event()
        self.backlog_cancelled = asyncio.Event()
        self.answered = asyncio.Event()

    async def on_message(self, event, bot_user_id=None):
        raise RuntimeError("message handler blew up")

    async def on_app_mention(self, event):
        if "index channel" in event["text"]:
            self.backlog_started.set()
            try:
                await self.release_backlog.wait()
            except asyncio.CancelledError:
                self.backlog_cancelled.set()
                raise
            return
        self.answered.set()


async def _stop(worker):
    worker.cancel()
    await asyncio.gather(worker, return_exceptions=True)


@pytest.mark.asyncio
async def test_question_answered_while_backlog_runs():
    queue = EventQueue()
    handler = BlockingHandler()
    worker = asyncio.create_task(process_events_worker_task(handler, queue))

    await queue.enqueue(SlackEventJob(kind="app_mention", event={"text": "<@UBOT> index channel"}))
    await queue.enqueue(SlackEventJob(kind="app_mention", event={"text": "<@UBOT> what shipped?"}))

    await asyncio.wait_for(handler.answered.wait(), timeout=1)
    assert handler.backlog_started.is_set()
    assert not handler.release_backlog.is_set()

    handler.release_backlog.set()
    await _stop(worker)


@pytest.mark.asyncio
async def test_worker_cancels_events_in_flight():
    queue = EventQueue()
    handler = BlockingHandler()
    worker = asyncio.create_task(process_events_worker_task(handler, queue))

    await queue.enqueue(SlackEventJob(kind="app_mention", event={"text": "<@UBOT> index channel"}))
    await asyncio.wait_for(handler.backlog_started.wait(), timeout=1)

    await _stop(worker)

    assert handler.backlog_cancelled.is_set()


@pytest.mark.asyncio
async def test_failed_event_is_logged_and_worker_keeps_going(caplog):
    queue = EventQueue()
    handler = BlockingHandler()
    worker = asyncio.create_task(process_events_worker_task(handler, queue))

    with caplog.at_level(logging.ERROR, logger="slackrag.slack.queue"):
        await queue.enqueue(SlackEventJob(kind="message", event={"ts": "1.0"}, event_id="Ev1"))
        await queue.enqueue(SlackEventJob(kind="app_mention", event={"text": "<@UBOT> hi"}))
        await asyncio.wait_for(handler.answered.wait(), timeout=1)
        for _ in range(5):
            await asyncio.sleep(0)

    assert any("Ev1" in record.getMessage() for record in caplog.records)
    await _stop(worker)
