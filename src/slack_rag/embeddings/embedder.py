"""
Embedding Client

This module implements the embedding client used by both the indexing and the
retrieval path. It calls the OpenAI embeddings API (or any compatible
provider) and is responsible for:

- Failing fast when no API key is configured
- Surfacing non-success responses with their raw body
- Strict response validation

One call embeds one text. Callers that need several embeddings issue several
calls, concurrently if they like. There are no retries at this layer.
"""

from __future__ import annotations

from typing import Any, List, Optional
import logging

import httpx

from ..config import Settings
from ..core.errors import ConfigurationError, ProtocolError, UpstreamError

logger = logging.getLogger("slackrag.embedder")


class Embedder:
    """
    Asynchronous single-text embedding generator.

    The class holds no connection state and is safe to share between
    concurrent tasks.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize an Embedder.

        Parameters
        ----------
        api_key : Optional[str]
            OpenAI API key. A missing key is only reported when `embed` is
            called.

        model : str
            Embedding model name.

        base_url : str
            Base URL of the OpenAI-compatible API.

        timeout : float
            HTTP timeout for each request.

        transport : Optional[httpx.AsyncBaseTransport]
            Optional transport override, used by tests.
        """
        self.api_key = api_key
        self.model = model
        self.endpoint = f"{base_url.rstrip('/')}/embeddings"
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "Embedder":
        api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None
        return cls(
            api_key=api_key,
            model=settings.embedding_model,
            base_url=settings.openai_base_url,
            timeout=settings.http_timeout,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> List[float]:
        """
        Generate the embedding vector for one input text.

        Raises
        ------
        ConfigurationError
            If no API key is configured. No request is made.

        UpstreamError
            If the service is unreachable or answers with a non-2xx status.

        ProtocolError
            If the response does not contain an embedding vector.
        """
        if not self.api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY")

        payload = {
            "model": self.model,
            "input": text,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(self.endpoint, json=payload, headers=headers)
            except httpx.HTTPError as exc:
                logger.error(
                    "Embedding request failed (%s): %s",
                    type(exc).__name__,
                    str(exc),
                )
                raise UpstreamError(
                    f"Embedding request failed: {type(exc).__name__}"
                ) from exc

        if not response.is_success:
            raise UpstreamError(
                f"Embedding request failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProtocolError("Embedding response is not valid JSON.") from exc

        return self._extract_embedding(data)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_embedding(data: Any) -> List[float]:
        """
        Parse and validate the embedding output format.

        OpenAI returns:
            { "data": [ {"embedding": [...]} ] }
        """
        records = data.get("data") if isinstance(data, dict) else None
        if not isinstance(records, list) or not records:
            raise ProtocolError("Invalid embeddings response: missing 'data'.")

        first = records[0]
        emb = first.get("embedding") if isinstance(first, dict) else None
        if not isinstance(emb, list) or not all(
            isinstance(x, (float, int)) and not isinstance(x, bool) for x in emb
        ):
            raise ProtocolError("Invalid embeddings response: 'embedding' must be a list of numbers.")

        return [float(x) for x in emb]
