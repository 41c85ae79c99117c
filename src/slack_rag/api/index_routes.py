"""
Indexing Routes

Operator endpoints for indexing a single message or a whole channel backlog.

- Single-message indexing propagates failures: a missing credential maps to
  503 and an upstream failure to 502 through the global error handlers.
- Channel indexing is best effort and always returns a per-message report.
"""

from fastapi import APIRouter, Depends, status
from typing import Annotated

from .models import (
    IndexMessageResponse,
    IndexChannelRequest,
    IndexChannelResponse,
    BacklogItemResult,
)
from .dependencies import get_pipeline, get_workspace
from ..auth.security import require_scopes
from ..auth.models import ApiCaller
from ..indexing.documents import build_document
from ..indexing.models import SourceMessage
from ..indexing.pipeline import IndexingPipeline
from ..slack.workspace import SlackWorkspace

router = APIRouter(prefix="/index", tags=["index"])


@router.post(
    "/message",
    response_model=IndexMessageResponse,
    summary="Index one Slack message",
    status_code=status.HTTP_200_OK,
)
async def index_message(
    message: SourceMessage,
    caller: Annotated[ApiCaller, Depends(require_scopes("index"))],
    pipeline: Annotated[IndexingPipeline, Depends(get_pipeline)],
) -> IndexMessageResponse:
    document = build_document(message, max_content_chars=pipeline.max_content_chars)
    rows = await pipeline.index_document(document)
    return IndexMessageResponse(
        document_id=document.id if document else None,
        rows=rows,
    )


@router.post(
    "/channel",
    response_model=IndexChannelResponse,
    summary="Index the full history of a Slack channel",
    status_code=status.HTTP_200_OK,
)
async def index_channel(
    req: IndexChannelRequest,
    caller: Annotated[ApiCaller, Depends(require_scopes("index"))],
    pipeline: Annotated[IndexingPipeline, Depends(get_pipeline)],
    workspace: Annotated[SlackWorkspace, Depends(get_workspace)],
) -> IndexChannelResponse:
    channel_name = await workspace.channel_name(req.channel_id)
    messages = await workspace.fetch_channel_messages(req.channel_id, channel_name=channel_name)

    report = await pipeline.index_backlog(messages, directory=workspace)

    return IndexChannelResponse(
        channel_id=req.channel_id,
        indexed=report.indexed,
        skipped=report.skipped,
        failed=report.failed,
        rows=report.rows,
        items=[
            BacklogItemResult(
                document_id=item.document_id,
                status=item.status,
                rows=item.rows,
                error=item.error,
            )
            for item in report.items
        ],
    )
