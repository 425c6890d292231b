"""LangChain chat model providers and their registry."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Type

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from .config import ModelConfig

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class ModelProvider(ABC):
    """Builds a chat model for one provider."""

    name: str

    @abstractmethod
    def build(self, config: ModelConfig, api_key: Optional[str]) -> BaseChatModel:
        """Create the chat model described by ``config``."""


class OpenAIProvider(ModelProvider):
    name = "openai"

    def build(self, config: ModelConfig, api_key: Optional[str]) -> BaseChatModel:
        kwargs = {}
        if config.base_url:
            kwargs["base_url"] = config.base_url
        if api_key:
            kwargs["api_key"] = api_key
        return ChatOpenAI(
            model=config.model,
            temperature=config.temperature,
            max_retries=config.max_retries,
            **kwargs,
        )


class OpenRouterProvider(ModelProvider):
    """OpenRouter speaks the OpenAI API, so it reuses ChatOpenAI."""

    name = "openrouter"

    def build(self, config: ModelConfig, api_key: Optional[str]) -> BaseChatModel:
        kwargs = {}
        if api_key:
            kwargs["api_key"] = api_key
        return ChatOpenAI(
            model=config.model,
            temperature=config.temperature,
            max_retries=config.max_retries,
            base_url=config.base_url or OPENROUTER_BASE_URL,
            default_headers={"X-Title": "Pensive"},
            **kwargs,
        )


class AnthropicProvider(ModelProvider):
    name = "anthropic"

    def build(self, config: ModelConfig, api_key: Optional[str]) -> BaseChatModel:
        kwargs = {}
        if api_key:
            kwargs["api_key"] = api_key
        return ChatAnthropic(
            model=config.model,
            temperature=config.temperature,
            max_retries=config.max_retries,
            **kwargs,
        )


class GeminiProvider(ModelProvider):
    name = "gemini"

    def build(self, config: ModelConfig, api_key: Optional[str]) -> BaseChatModel:
        kwargs = {}
        if api_key:
            kwargs["google_api_key"] = api_key
        return ChatGoogleGenerativeAI(
            model=config.model,
            temperature=config.temperature,
            max_retries=config.max_retries,
            **kwargs,
        )


class ProviderRegistry:
    """Maps provider names to provider classes."""

    def __init__(self):
        self._providers: Dict[str, Type[ModelProvider]] = {}

    def register(self, provider_class: Type[ModelProvider]) -> Type[ModelProvider]:
        self._providers[provider_class.name] = provider_class
        logger.debug("Registered LLM provider: %s", provider_class.name)
        return provider_class

    def get(self, name: str) -> ModelProvider:
        try:
            return self._providers[name]()
        except KeyError:
            available = ", ".join(sorted(self._providers))
            raise KeyError(f"Unknown LLM provider '{name}'. Available: {available}") from None

    def names(self) -> list[str]:
        return sorted(self._providers)


registry = ProviderRegistry()
for _provider in (OpenAIProvider, OpenRouterProvider, AnthropicProvider, GeminiProvider):
    registry.register(_provider)
