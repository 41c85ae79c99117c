"""
Authentication Models

Strongly-typed caller identity used by the operator API after JWT
verification.
"""

from typing import List
from pydantic import BaseModel, Field, ConfigDict


class ApiCaller(BaseModel):
    """
    Authenticated caller derived from a verified JWT.
    """

    subject: str = Field(
        ...,
        min_length=1,
        description="Identity of the operator or service calling the API.",
    )

    scopes: List[str] = Field(
        default_factory=list,
        description="Scopes granted to the caller, e.g. 'index' or 'ask'.",
    )

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=False,
        extra="forbid",
    )
