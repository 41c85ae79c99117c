"""
Slack Events Route

Receives Slack Events API callbacks. Requests are verified with the Slack
signing secret, acknowledged immediately and handed to the background event
worker.

Handled payloads
----------------
- url_verification : echoes the challenge during app setup
- event_callback   : `message` and `app_mention` events are queued

Slack retries deliveries it considers unacknowledged; retries are
acknowledged without being queued again.
"""

import json
import logging
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from slack_sdk.signature import SignatureVerifier

from ..config import Settings, get_settings
from ..core.errors import ConfigurationError
from ..slack.queue import SlackEventJob, event_queue

logger = logging.getLogger("slackrag.slack.events")

router = APIRouter(prefix="/slack", tags=["slack"])

QUEUED_EVENT_TYPES = ("message", "app_mention")


def _bot_user_id(payload: Dict[str, Any]) -> Optional[str]:
    authorizations = payload.get("authorizations") or []
    if authorizations and isinstance(authorizations[0], dict):
        return authorizations[0].get("user_id")
    return None


@router.post("/events", summary="Slack Events API callback")
async def slack_events(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Dict[str, Any]:
    if not settings.slack_signing_secret:
        raise ConfigurationError("Missing SLACK_SIGNING_SECRET")

    body = await request.body()
    verifier = SignatureVerifier(settings.slack_signing_secret.get_secret_value())
    if not verifier.is_valid_request(body, dict(request.headers)):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Slack signature.",
        )

    try:
        payload = json.loads(body)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Body is not valid JSON.",
        )

    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge")}

    if request.headers.get("x-slack-retry-num"):
        logger.info("Ignoring Slack retry %s", request.headers.get("x-slack-retry-num"))
        return {"ok": True}

    event = payload.get("event") or {}
    kind = event.get("type")
    if payload.get("type") == "event_callback" and kind in QUEUED_EVENT_TYPES:
        await event_queue.enqueue(
            SlackEventJob(
                kind=kind,
                event=event,
                bot_user_id=_bot_user_id(payload),
                event_id=payload.get("event_id", "unknown"),
            )
        )

    return {"ok": True}
