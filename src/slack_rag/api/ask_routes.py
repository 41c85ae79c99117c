"""
Question Routes

Answers a natural-language question with retrieval-augmented generation
over the indexed Slack messages.
"""

from fastapi import APIRouter, Depends, status
from typing import Annotated

from .models import AskRequest, AskResponse, AskSource
from .dependencies import get_rag_service
from ..auth.security import require_scopes
from ..auth.models import ApiCaller
from ..retrieval.service import RagService

router = APIRouter(tags=["ask"])


@router.post(
    "/ask",
    response_model=AskResponse,
    summary="Answer a question from Slack history",
    status_code=status.HTTP_200_OK,
)
async def ask(
    req: AskRequest,
    caller: Annotated[ApiCaller, Depends(require_scopes("ask"))],
    rag: Annotated[RagService, Depends(get_rag_service)],
) -> AskResponse:
    # Failures propagate to the global handlers (503 / 502); the read path
    # has nothing to roll back.
    result = await rag.answer(req.question, top_k=req.top_k)

    return AskResponse(
        answer=result.text,
        display_answer=result.display_text,
        sources=[
            AskSource(
                id=str(row.id),
                channel_name=row.channel_name,
                user_name=row.user_name,
                ts=row.ts,
                url=row.url,
                dist=row.dist,
            )
            for row in result.rows
        ],
    )
