"""
Slack Workspace Client

Wraps the blocking `slack_sdk.WebClient` for use from async code. Each call
runs in a worker thread so the event loop is never blocked.

Responsibilities
----------------
- Channel history with cursor pagination
- Channel and user lookups (implements the pipeline's UserDirectory)
- Posting replies
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from slack_sdk import WebClient

from ..config import Settings
from ..core.errors import ConfigurationError
from ..indexing.models import SourceMessage, UserProfile

logger = logging.getLogger("slackrag.slack")

HISTORY_PAGE_SIZE = 200


def message_from_event(
    event: Dict[str, Any],
    channel_id: Optional[str] = None,
    channel_name: Optional[str] = None,
    profile: Optional[UserProfile] = None,
) -> SourceMessage:
    """Build a SourceMessage from a Slack message payload."""
    return SourceMessage(
        text=event.get("text") or "",
        user_id=event.get("user"),
        user_name=profile.name if profile else None,
        user_email=profile.email if profile else None,
        channel_id=channel_id or event["channel"],
        channel_name=channel_name,
        ts=str(event["ts"]),
        team_id=event.get("team"),
    )


class SlackWorkspace:
    def __init__(self, client: WebClient) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SlackWorkspace":
        if not settings.slack_bot_token:
            raise ConfigurationError("Missing SLACK_BOT_TOKEN")
        return cls(WebClient(token=settings.slack_bot_token.get_secret_value()))

    async def _call(self, method: str, **kwargs: Any) -> Any:
        func = getattr(self._client, method)
        return await asyncio.to_thread(func, **kwargs)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def lookup(self, user_id: str) -> UserProfile:
        response = await self._call("users_info", user=user_id)
        user = response.get("user") or {}
        return UserProfile.model_validate(user.get("profile") or {})

    async def channel_name(self, channel_id: str) -> Optional[str]:
        response = await self._call("conversations_info", channel=channel_id)
        channel = response.get("channel") or {}
        return channel.get("name") or None

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def fetch_channel_messages(
        self,
        channel_id: str,
        channel_name: Optional[str] = None,
    ) -> List[SourceMessage]:
        """
        Return every plain user message of a channel, newest first as Slack
        serves them. Messages with a subtype (joins, bot posts, edits) and
        messages without text are left out.
        """
        messages: List[SourceMessage] = []
        cursor: Optional[str] = None

        while True:
            kwargs: Dict[str, Any] = {"channel": channel_id, "limit": HISTORY_PAGE_SIZE}
            if cursor:
                kwargs["cursor"] = cursor
            response = await self._call("conversations_history", **kwargs)

            for raw in response.get("messages") or []:
                if raw.get("subtype") or not raw.get("text"):
                    continue
                messages.append(
                    message_from_event(raw, channel_id=channel_id, channel_name=channel_name)
                )

            cursor = (response.get("response_metadata") or {}).get("next_cursor") or None
            if not cursor:
                break

        logger.info("Fetched %d messages from channel %s", len(messages), channel_id)
        return messages

    # ------------------------------------------------------------------
    # Replies
    # ------------------------------------------------------------------

    async def post(self, channel: str, text: str) -> None:
        await self._call(
            "chat_postMessage",
            channel=channel,
            text=text,
            mrkdwn=True,
        )
