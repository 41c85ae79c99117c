"""
Slack text helpers: mrkdwn conversion and mention parsing.
"""

from __future__ import annotations

import re
from typing import Any, Optional

_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_BULLET_RE = re.compile(r"^\s*-\s+", re.MULTILINE)
_MENTION_RE = re.compile(r"<@[^>]+>")

INDEX_COMMAND = "index channel"
DEFAULT_QUESTION = "Summarize the most relevant context for this channel."


def to_slack_markdown(text: Any) -> str:
    """
    Convert GitHub-style markdown to Slack mrkdwn.

    `**bold**` becomes `*bold*` and leading `- ` list items become bullets.
    """
    if not isinstance(text, str):
        return ""
    text = _BOLD_RE.sub(r"*\1*", text)
    return _BULLET_RE.sub("• ", text)


def mentions_user(text: Optional[str], user_id: Optional[str]) -> bool:
    if not text or not user_id:
        return False
    return f"<@{user_id}>" in text


def is_index_command(text: Optional[str]) -> bool:
    return INDEX_COMMAND in (text or "").lower()


def extract_question(text: Optional[str]) -> str:
    """Strip user mentions; fall back to a channel summary request."""
    question = _MENTION_RE.sub("", text or "").strip()
    return question or DEFAULT_QUESTION
