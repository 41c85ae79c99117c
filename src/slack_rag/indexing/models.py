"""
Indexing Data Models

This module defines the canonical data model flowing through the indexing
and retrieval pipeline:

    SourceMessage -> IndexableDocument -> (chunks) -> VectorRow
                                               query -> RetrievedRow

IndexableDocument and VectorRow share one explicit attribute schema,
DocumentAttributes, so the set of filterable metadata written to the vector
store is fixed and visible in one place.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


SOURCE_SLACK = "slack"
UNKNOWN_USER = "Unknown"


# ---------------------------------------------------------------------
# Inbound
# ---------------------------------------------------------------------

class SourceMessage(BaseModel):
    """
    One inbound chat message plus whatever metadata the caller resolved.

    Only `channel_id` and `ts` are required; together they identify the
    message uniquely within a workspace.
    """

    text: str = ""
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    channel_id: str = Field(..., min_length=1)
    channel_name: Optional[str] = None
    ts: str = Field(..., min_length=1, description="Slack message timestamp, e.g. '1700000000.000100'.")
    team_id: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class UserProfile(BaseModel):
    """Subset of a Slack user profile used for display names."""

    display_name: Optional[str] = None
    real_name: Optional[str] = None
    email: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def name(self) -> str:
        return self.display_name or self.real_name or UNKNOWN_USER


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------

class DocumentAttributes(BaseModel):
    """
    Filterable metadata stored alongside every vector row.
    """

    source: str = SOURCE_SLACK
    channel_id: str
    channel_name: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    team_id: Optional[str] = None
    ts: str
    url: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class IndexableDocument(BaseModel):
    """
    Normalized, size-bounded view of a SourceMessage.

    `content` is what gets stored and displayed; `embedding_text` is what gets
    vectorized and never leaves the process.
    """

    id: str = Field(..., min_length=1)
    content: str
    embedding_text: str
    attributes: DocumentAttributes

    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------
# Vector rows
# ---------------------------------------------------------------------

class VectorRow(BaseModel):
    """
    Unit persisted to the vector store. One row per chunk.
    """

    id: str = Field(..., min_length=1)
    vector: List[float]
    content: str
    parent_id: str
    chunk_index: int = Field(..., ge=0)
    attributes: DocumentAttributes

    model_config = ConfigDict(frozen=True, extra="forbid")

    def to_payload(self) -> Dict[str, Any]:
        """
        Flatten into the row shape expected by the vector store.

        Attributes sit at the top level next to the vector; unset optional
        attributes are dropped rather than sent as nulls.
        """
        payload: Dict[str, Any] = {
            "id": self.id,
            "vector": list(self.vector),
            "content": self.content,
            "parent_id": self.parent_id,
            "chunk_index": self.chunk_index,
        }
        payload.update(self.attributes.model_dump(exclude_none=True))
        return payload


class RetrievedRow(BaseModel):
    """
    Read-only projection of a similarity query result.

    Validation is lenient: unknown attributes are ignored, missing ones
    default to None, and string attributes of the wrong type are treated as
    absent.
    """

    id: Union[str, int]
    content: Optional[str] = None
    parent_id: Optional[str] = None
    chunk_index: Optional[int] = None
    source: Optional[str] = None
    channel_id: Optional[str] = None
    channel_name: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    team_id: Optional[str] = None
    ts: Optional[str] = None
    url: Optional[str] = None
    dist: Optional[float] = Field(default=None, alias="$dist")

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("content", mode="before")
    @classmethod
    def _stringify_content(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value)

    @field_validator(
        "parent_id",
        "source",
        "channel_id",
        "channel_name",
        "user_id",
        "user_name",
        "user_email",
        "team_id",
        "ts",
        "url",
        mode="before",
    )
    @classmethod
    def _drop_non_strings(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @field_validator("dist", mode="before")
    @classmethod
    def _drop_non_numbers(cls, value: Any) -> Optional[float]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value

    @field_validator("chunk_index", mode="before")
    @classmethod
    def _drop_non_ints(cls, value: Any) -> Optional[int]:
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value
