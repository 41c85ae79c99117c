from functools import lru_cache
from typing import Optional

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Credentials are optional here so that clients can fail with a
    # ConfigurationError at call time instead of at import time.
    openai_api_key: Optional[SecretStr] = None
    openai_base_url: str = "https://api.openai.com/v1"
    embedding_model: str = "text-embedding-3-small"
    openai_chat_model: str = "gpt-5.1"

    turbopuffer_api_key: Optional[SecretStr] = None
    turbopuffer_namespace: str = "_hg_slack"
    turbopuffer_base_url: str = "https://api.turbopuffer.com"

    slack_bot_token: Optional[SecretStr] = None
    slack_signing_secret: Optional[SecretStr] = None

    # Operator API tokens
    jwt_secret: Optional[SecretStr] = None
    jwt_algo: str = "HS256"
    jwt_audience: str = "slack-rag"

    # Size bounds
    max_content_chars: int = 3800  # turbopuffer caps filterable attributes at 4096 bytes
    max_chunk_chars: int = 1800
    retrieval_top_k: int = 20
    context_max_chars: int = 1000

    http_timeout: float = 60.0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
