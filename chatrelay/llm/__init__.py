"""Provider resilience layer for chat models.

This module provides a provider-agnostic interface for obtaining chat models
from Apple Intelligence, OpenAI, OpenRouter and Ollama, and for degrading
gracefully when the preferred provider is unavailable.

Key features:
- Provider registry pattern (one adapter per provider)
- Model caching with LRU eviction, TTL expiry and deduplicated creation
- Lightweight and real round-trip connection tests
- Error classification and a fixed-priority fallback chain
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from .cache import CacheConfig, ModelCache
from .credentials import CredentialStore, InMemoryCredentialStore
from .errors import classify_error, describe_error
from .factory import ProviderFactory
from .fallback import PROVIDER_FALLBACK_ORDER, FallbackChain
from .registry import ProviderRegistry
from .types import (
    ConnectionTestResult,
    ErrorCategory,
    ErrorClassification,
    FallbackResult,
    ProviderCredentials,
    ProviderId,
    ProviderResult,
)


@dataclass
class ProviderStack:
    """Wired components owned by the application."""

    credentials: CredentialStore
    cache: ModelCache
    registry: ProviderRegistry
    factory: ProviderFactory
    fallback: FallbackChain

    async def start(self) -> None:
        """Start background maintenance on the running event loop.

        Call from async startup when the stack was built synchronously.
        """
        self.cache.start()

    def dispose(self) -> None:
        self.cache.dispose()


def build_provider_stack(
    settings=None,
    credentials: Optional[CredentialStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProviderStack:
    """Construct and wire the cache, registry, factory and fallback chain.

    Args:
        settings: Application settings (chatrelay.config.settings when None)
        credentials: Credential store (built from settings when None)
        transport: Optional httpx transport for connectivity probes

    Returns:
        ProviderStack whose cache is invalidated on credential changes
    """
    if settings is None:
        from chatrelay.config import settings

    if credentials is None:
        credentials = InMemoryCredentialStore.from_settings(settings)

    cache = ModelCache(CacheConfig.from_settings(settings))
    registry = ProviderRegistry.default(
        credentials,
        transport=transport,
        probe_timeout=settings.provider_probe_timeout_seconds,
    )
    registry.get(ProviderId.OLLAMA).models_timeout = settings.ollama_models_timeout_seconds
    factory = ProviderFactory(
        registry,
        cache,
        credentials,
        connection_test_timeout=settings.connection_test_timeout_seconds,
        best_provider_timeout=settings.best_provider_timeout_seconds,
    )
    if isinstance(credentials, InMemoryCredentialStore):
        credentials.subscribe(factory.invalidate_provider)

    return ProviderStack(
        credentials=credentials,
        cache=cache,
        registry=registry,
        factory=factory,
        fallback=FallbackChain(factory, credentials),
    )


__all__ = [
    "PROVIDER_FALLBACK_ORDER",
    "CacheConfig",
    "ConnectionTestResult",
    "CredentialStore",
    "ErrorCategory",
    "ErrorClassification",
    "FallbackChain",
    "FallbackResult",
    "InMemoryCredentialStore",
    "ModelCache",
    "ProviderCredentials",
    "ProviderFactory",
    "ProviderId",
    "ProviderRegistry",
    "ProviderResult",
    "ProviderStack",
    "build_provider_stack",
    "classify_error",
    "describe_error",
]
