"""
Vector Store Client

Thin async client for a turbopuffer namespace. Two operations:

- upsert : insert-or-replace rows by id (cosine distance)
- query  : approximate nearest neighbour search, attributes included

Rows are owned by turbopuffer. This client never deletes anything, and it
does not validate returned rows beyond their basic shape.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence
import logging

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..core.errors import ConfigurationError, ProtocolError, UpstreamError
from ..indexing.models import RetrievedRow, VectorRow

logger = logging.getLogger("slackrag.turbopuffer")

DISTANCE_METRIC = "cosine_distance"


class TurbopufferStore:
    """
    Vector store addressed by a single namespace.
    """

    def __init__(
        self,
        api_key: Optional[str],
        namespace: Optional[str],
        base_url: str = "https://api.turbopuffer.com",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.namespace = namespace
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "TurbopufferStore":
        api_key = (
            settings.turbopuffer_api_key.get_secret_value()
            if settings.turbopuffer_api_key
            else None
        )
        return cls(
            api_key=api_key,
            namespace=settings.turbopuffer_namespace,
            base_url=settings.turbopuffer_base_url,
            timeout=settings.http_timeout,
            transport=transport,
        )

    def ensure_configured(self) -> None:
        """
        Raise ConfigurationError unless both the API key and the namespace
        are set. Callers run this before any other network call of an
        operation that ends in the store.
        """
        if not self.api_key:
            raise ConfigurationError("Missing TURBOPUFFER_API_KEY")
        if not self.namespace:
            raise ConfigurationError("Missing TURBOPUFFER_NAMESPACE")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _namespace_url(self) -> str:
        self.ensure_configured()
        return f"{self.base_url}/v2/namespaces/{self.namespace}"

    async def _post(self, url: str, payload: dict, operation: str) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(url, json=payload, headers=headers)
            except httpx.HTTPError as exc:
                logger.error(
                    "Turbopuffer %s failed (%s): %s",
                    operation,
                    type(exc).__name__,
                    str(exc),
                )
                raise UpstreamError(
                    f"Turbopuffer {operation} failed: {type(exc).__name__}"
                ) from exc

        if not response.is_success:
            raise UpstreamError(
                f"Turbopuffer {operation} failed: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def upsert(self, rows: Sequence[VectorRow]) -> None:
        """
        Insert or replace `rows` by id in a single request.

        Writing the same row id twice leaves one row behind.
        """
        url = self._namespace_url()
        if not rows:
            return

        payload = {
            "upsert_rows": [row.to_payload() for row in rows],
            "distance_metric": DISTANCE_METRIC,
        }
        await self._post(url, payload, "upsert")

    async def query(self, vector: Sequence[float], top_k: int = 20) -> List[RetrievedRow]:
        """
        Return up to `top_k` rows nearest to `vector`, nearest first.

        A response without a `rows` list is treated as no matches.
        """
        url = f"{self._namespace_url()}/query"
        payload = {
            "rank_by": ["vector", "ANN", list(vector)],
            "top_k": top_k,
            "include_attributes": True,
        }
        response = await self._post(url, payload, "query")

        try:
            data: Any = response.json()
        except ValueError as exc:
            raise ProtocolError("Turbopuffer query response is not valid JSON.") from exc

        rows = data.get("rows") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            return []

        results: List[RetrievedRow] = []
        for row in rows:
            if not isinstance(row, dict) or not _has_row_id(row):
                logger.warning("Skipping query row without a usable id: %r", row)
                continue
            try:
                results.append(RetrievedRow.model_validate(row))
            except ValidationError as exc:
                raise ProtocolError(f"Invalid turbopuffer query row: {exc}") from exc
        return results


def _has_row_id(row: dict) -> bool:
    row_id = row.get("id")
    if isinstance(row_id, bool):
        return False
    return isinstance(row_id, int) or (isinstance(row_id, str) and bool(row_id))
