"""
Slack Event Handlers

Reacts to two kinds of Slack events:

- message      : every new channel message is enriched with the author and
                 channel names and indexed. Direct questions to the bot are
                 not indexed.
- app_mention  : "index channel" indexes the whole channel history;
                 anything else is answered with RAG over indexed messages.

Handlers never raise. Failures are logged and, for mentions, reported back
to the channel with a short apology.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from ..indexing.pipeline import IndexingPipeline
from ..retrieval.service import RagService
from .markup import extract_question, is_index_command, mentions_user
from .workspace import SlackWorkspace, message_from_event

logger = logging.getLogger("slackrag.slack.handlers")

INDEX_STARTED = "📚 Indexing this channel into Synergy's project database. This may take a moment..."
INDEX_FINISHED = "✅ Finished indexing this channel into Synergy."
INDEX_FAILED = "❌ Sorry, I ran into a problem while indexing this channel."
THINKING = "🤔 Let me check what I know about this..."
ANSWER_FAILED = "❌ Sorry, I ran into a problem while answering that. Please try again in a moment."


class SlackEventHandler:
    def __init__(
        self,
        workspace: SlackWorkspace,
        pipeline: IndexingPipeline,
        rag: RagService,
    ) -> None:
        self.workspace = workspace
        self.pipeline = pipeline
        self.rag = rag

    # ------------------------------------------------------------------
    # Live ingestion
    # ------------------------------------------------------------------

    async def on_message(self, event: Dict[str, Any], bot_user_id: Optional[str] = None) -> None:
        if event.get("subtype"):
            return

        if mentions_user(event.get("text"), bot_user_id):
            logger.info("Skipping indexing for direct bot mention message.")
            return

        try:
            profile, channel_name = await asyncio.gather(
                self.workspace.lookup(event["user"]),
                self.workspace.channel_name(event["channel"]),
            )
            message = message_from_event(event, channel_name=channel_name, profile=profile)
            await self.pipeline.index_message(message)
        except Exception:
            logger.exception(
                "Failed to enrich/index message (user=%s, channel=%s, ts=%s)",
                event.get("user"),
                event.get("channel"),
                event.get("ts"),
            )

    # ------------------------------------------------------------------
    # Mentions
    # ------------------------------------------------------------------

    async def on_app_mention(self, event: Dict[str, Any]) -> None:
        if event.get("subtype"):
            return

        if is_index_command(event.get("text")):
            await self.index_channel(event["channel"])
            return

        await self.answer_question(event)

    async def index_channel(self, channel_id: str) -> None:
        await self.workspace.post(channel_id, INDEX_STARTED)

        try:
            channel_name = await self.workspace.channel_name(channel_id)
            messages = await self.workspace.fetch_channel_messages(channel_id, channel_name=channel_name)
            report = await self.pipeline.index_backlog(messages, directory=self.workspace)
        except Exception:
            logger.exception("Failed to index channel history (channel=%s)", channel_id)
            await self.workspace.post(channel_id, INDEX_FAILED)
            return

        summary = INDEX_FINISHED
        if not report.ok:
            summary = f"{INDEX_FINISHED} ({report.failed} of {len(report.items)} messages could not be indexed.)"
        await self.workspace.post(channel_id, summary)

    async def answer_question(self, event: Dict[str, Any]) -> None:
        channel_id = event["channel"]
        question = extract_question(event.get("text"))

        logger.info(
            "New mention (question=%r, user=%s, channel=%s, ts=%s)",
            question,
            event.get("user"),
            channel_id,
            event.get("ts"),
        )

        await self.workspace.post(channel_id, THINKING)

        try:
            answer = await self.rag.answer(question)
        except Exception:
            logger.exception("Failed to answer question with RAG")
            await self.workspace.post(channel_id, ANSWER_FAILED)
            return

        await self.workspace.post(channel_id, answer.display_text)
