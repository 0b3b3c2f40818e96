from __future__ import annotations

from typing import List, Optional

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.errors import ConfigurationError


class Settings(BaseSettings):
    # Mandatory at request time, optional at import so the process can boot
    database_url: Optional[str] = None
    ai_gateway_api_key: Optional[SecretStr] = None

    ai_gateway_base_url: str = "https://ai-gateway.vercel.sh/v1"

    chat_model: str = "anthropic/claude-opus-4-5"
    embedding_model: str = "openai/text-embedding-3-small"
    embedding_dimensions: int = 1536

    max_tool_steps: int = 5
    default_search_limit: int = 5
    similarity_threshold: float = 0.3
    request_timeout_ms: int = 60000

    # Per HTTP call to the gateway
    provider_timeout_s: float = 60.0

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

    def missing_credentials(self) -> List[str]:
        missing = []
        if not self.database_url:
            missing.append("DATABASE_URL")
        if self.ai_gateway_api_key is None or not self.ai_gateway_api_key.get_secret_value():
            missing.append("AI_GATEWAY_API_KEY")
        return missing

    def require_credentials(self) -> None:
        """
        Raise ConfigurationError if either mandatory credential is absent.
        """
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationError(
                "Missing required configuration: " + ", ".join(missing)
            )

settings = Settings()
