"""
API Models

Request/response payloads for the operator endpoints. SourceMessage from
the indexing package is accepted as-is for single-message indexing.
"""

from __future__ import annotations

from typing import List, Optional, Literal
from pydantic import BaseModel, Field, ConfigDict


# ---------------------------------------------------------------------
# Indexing
# ---------------------------------------------------------------------

class IndexMessageResponse(BaseModel):
    document_id: Optional[str] = Field(
        default=None,
        description="Id of the indexed document, or None when the text was empty.",
    )
    rows: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid")


class IndexChannelRequest(BaseModel):
    channel_id: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


class BacklogItemResult(BaseModel):
    document_id: str
    status: Literal["indexed", "skipped", "failed"]
    rows: int = Field(default=0, ge=0)
    error: Optional[str] = None


class IndexChannelResponse(BaseModel):
    channel_id: str
    indexed: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    rows: int = Field(..., ge=0)
    items: List[BacklogItemResult] = Field(default_factory=list)


# ---------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------

class AskRequest(BaseModel):
    question: str = Field(..., min_length=1)
    top_k: Optional[int] = Field(default=None, ge=1, le=1200)

    model_config = ConfigDict(extra="forbid")


class AskSource(BaseModel):
    id: str
    channel_name: Optional[str] = None
    user_name: Optional[str] = None
    ts: Optional[str] = None
    url: Optional[str] = None
    dist: Optional[float] = None


class AskResponse(BaseModel):
    answer: str
    display_answer: str
    sources: List[AskSource] = Field(default_factory=list)
