"""Provider implementations for different LLM services."""

from typing import Dict, Type

from ..types import ProviderId
from .apple import AppleChatModel, AppleProvider
from .base import ModelProvider
from .ollama import OllamaProvider, fetch_ollama_models, normalize_ollama_url
from .openai import OpenAIProvider
from .openrouter import OpenRouterProvider

#: One implementation per provider; adding a provider is one entry here.
ADAPTER_CLASSES: Dict[ProviderId, Type[ModelProvider]] = {
    ProviderId.APPLE: AppleProvider,
    ProviderId.OPENAI: OpenAIProvider,
    ProviderId.OPENROUTER: OpenRouterProvider,
    ProviderId.OLLAMA: OllamaProvider,
}

__all__ = [
    "ADAPTER_CLASSES",
    "ModelProvider",
    "AppleChatModel",
    "AppleProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "OllamaProvider",
    "fetch_ollama_models",
    "normalize_ollama_url",
]
