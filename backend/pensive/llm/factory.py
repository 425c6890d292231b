"""Chat model factory with per-configuration caching."""

import logging
import threading
from typing import Dict, Optional

from langchain_core.language_models import BaseChatModel

from pensive.exceptions import ModelConfigurationError

from .config import ModelConfig, ProviderCredentials
from .providers import ProviderRegistry, registry as default_registry

logger = logging.getLogger(__name__)


class CachedModelFactory:
    """Creates chat models and reuses them for identical configurations.

    Models are safe to share between concurrent jobs; per-call options such
    as timeouts are applied with ``model.bind`` instead of new instances.
    """

    def __init__(
        self,
        credentials: Optional[ProviderCredentials] = None,
        registry: Optional[ProviderRegistry] = None,
    ):
        self._credentials = credentials or ProviderCredentials()
        self._registry = registry or default_registry
        self._cache: Dict[ModelConfig, BaseChatModel] = {}
        self._lock = threading.Lock()

    def create_model(self, config: ModelConfig) -> BaseChatModel:
        with self._lock:
            model = self._cache.get(config)
            if model is None:
                model = self._build(config)
                self._cache[config] = model
            return model

    def _build(self, config: ModelConfig) -> BaseChatModel:
        api_key = self._credentials.for_provider(config.provider)
        if not api_key:
            logger.warning("No API key configured for LLM provider %s", config.provider)
        try:
            provider = self._registry.get(config.provider)
            model = provider.build(config, api_key)
        except Exception as exc:
            logger.error("Failed to create %s model %s: %s", config.provider, config.model, exc)
            raise ModelConfigurationError(
                f"Could not create {config.provider} model {config.model}: {exc}"
            ) from exc
        logger.info("Created %s model: %s", config.provider, config.model)
        return model

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def cache_size(self) -> int:
        return len(self._cache)
