"""Configuration schemas for chat models."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ProviderName = Literal["openai", "anthropic", "gemini", "openrouter"]


class ModelConfig(BaseModel):
    """Which model to build and how to sample from it.

    Frozen so one instance can be shared by concurrent jobs and used as a
    cache key.
    """

    model_config = ConfigDict(frozen=True)

    provider: ProviderName
    model: str
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    base_url: Optional[str] = None
    max_retries: int = Field(default=1, ge=0)


class ProviderCredentials(BaseModel):
    """API keys per provider.

    Kept apart from ModelConfig so keys never end up in logs or cache keys.
    """

    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    google_api_key: Optional[str] = None
    openrouter_api_key: Optional[str] = None

    def for_provider(self, provider: str) -> Optional[str]:
        keys = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "gemini": self.google_api_key,
            "openrouter": self.openrouter_api_key,
        }
        return keys.get(provider) or None
