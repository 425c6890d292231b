"""Provider-agnostic chat model selection.

Summarizer services ask the factory for a LangChain chat model described by a
``ModelConfig``; the provider registry decides which integration builds it.
"""

from .config import ModelConfig, ProviderCredentials
from .factory import CachedModelFactory
from .providers import ModelProvider, ProviderRegistry, registry

__all__ = [
    "ModelConfig",
    "ProviderCredentials",
    "CachedModelFactory",
    "ModelProvider",
    "ProviderRegistry",
    "registry",
]
