"""Base class for AI services."""

import asyncio
import logging
from typing import Any, Dict, Optional, Type

from google.api_core.exceptions import DeadlineExceeded
from langchain_core.exceptions import OutputParserException
from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, ValidationError

from pensive.config import settings
from pensive.exceptions import SummarizerError, TransientNetworkError
from pensive.llm import CachedModelFactory, ModelConfig, ProviderCredentials
from pensive.services.ai.constants import TIMEOUT_GRACE_SECONDS

logger = logging.getLogger(__name__)

# Module-level factory instance for efficient model caching
_credentials = ProviderCredentials(
    google_api_key=settings.google_api_key,
    openai_api_key=settings.openai_api_key,
    anthropic_api_key=settings.anthropic_api_key,
    openrouter_api_key=settings.openrouter_api_key,
)
_factory = CachedModelFactory(_credentials)


def get_default_model_config() -> ModelConfig:
    """Get default model configuration from settings."""
    return ModelConfig(
        provider=settings.llm_provider,
        model=settings.llm_model,
        temperature=settings.llm_temperature,
    )


def build_prompt(prompt_info: Dict[str, Any]) -> ChatPromptTemplate:
    return ChatPromptTemplate.from_messages([
        ("system", prompt_info["system"]),
        ("user", prompt_info["template"]),
    ])


class BaseAIService:
    """Base class for summarizer services.

    The chat model is created on first use so that services can be
    constructed without provider credentials (e.g. with an injected model
    in tests).
    """

    def __init__(
        self,
        llm: Optional[BaseChatModel] = None,
        model_config: Optional[ModelConfig] = None,
    ):
        self._llm = llm
        self.model_config = model_config or get_default_model_config()

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = _factory.create_model(self.model_config)
        return self._llm

    def _llm_with_timeout(self, timeout_seconds: float | None):
        if timeout_seconds is None:
            return self.llm
        return self.llm.bind(timeout=float(timeout_seconds))

    async def _run_chain(
        self,
        prompt: ChatPromptTemplate,
        variables: Dict[str, Any],
        schema: Type[BaseModel],
        timeout_seconds: float,
    ) -> BaseModel:
        """Invoke ``prompt | model | JsonOutputParser`` and validate the result."""
        parser = JsonOutputParser(pydantic_object=schema)
        chain = prompt | self._llm_with_timeout(timeout_seconds) | parser
        raw = await asyncio.wait_for(
            chain.ainvoke(variables),
            timeout=timeout_seconds + TIMEOUT_GRACE_SECONDS,
        )
        return schema.model_validate(raw)

    async def _run_with_fallback(
        self,
        *,
        label: str,
        prompt: ChatPromptTemplate,
        variables: Dict[str, Any],
        fallback_prompt: ChatPromptTemplate,
        fallback_variables: Dict[str, Any],
        schema: Type[BaseModel],
        timeout_seconds: float,
    ) -> BaseModel:
        """Run the main prompt; on unusable output retry once with the fallback prompt.

        Timeouts surface as TransientNetworkError and output that still fails
        to parse after the retry as SummarizerError, both retryable.
        """
        try:
            try:
                return await self._run_chain(prompt, variables, schema, timeout_seconds)
            except (OutputParserException, ValidationError) as exc:
                logger.warning("%s returned invalid output, retrying with fallback prompt: %s", label, exc)

            try:
                return await self._run_chain(
                    fallback_prompt, fallback_variables, schema, timeout_seconds
                )
            except (OutputParserException, ValidationError) as exc:
                raise SummarizerError(f"{label} returned invalid output twice: {exc}") from exc

        except (asyncio.TimeoutError, TimeoutError, DeadlineExceeded) as exc:
            raise TransientNetworkError(
                f"{label} timed out after {int(timeout_seconds)}s"
            ) from exc
