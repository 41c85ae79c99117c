from typing import List, Dict, Any, Optional
import logging

import httpx

from ..config import Settings
from ..core.errors import ConfigurationError, ProtocolError, UpstreamError

logger = logging.getLogger("slackrag.llm")


class LLMClient:
    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-5.1",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.endpoint = f"{base_url.rstrip('/')}/chat/completions"
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "LLMClient":
        api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None
        return cls(
            api_key=api_key,
            model=settings.openai_chat_model,
            base_url=settings.openai_base_url,
            timeout=settings.http_timeout,
            transport=transport,
        )

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        temperature: float = 0.2,
    ) -> str:
        """
        Returns the assistant message content of the first choice.
        """
        if not self.api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY")

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                resp = await client.post(
                    self.endpoint,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
            except httpx.HTTPError as exc:
                logger.error("Chat completion request failed (%s): %s", type(exc).__name__, exc)
                raise UpstreamError(f"Chat completion failed: {type(exc).__name__}") from exc

        if not resp.is_success:
            raise UpstreamError(
                f"Chat completion failed: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ProtocolError("Invalid chat completion response") from exc

        if not isinstance(content, str) or not content:
            raise ProtocolError("Invalid chat completion response")
        return content
