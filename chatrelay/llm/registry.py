"""Provider registry for dynamic provider management."""

import logging
from typing import Dict, List, Optional

import httpx

from .credentials import CredentialStore
from .exceptions import ProviderNotFoundError
from .providers import ADAPTER_CLASSES
from .providers.base import ModelProvider
from .types import ProviderId

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry for model providers.

    Maps each provider id to a provider instance bound to a credential store.
    Iteration order is registration order.
    """

    def __init__(self):
        """Initialize empty registry."""
        self._providers: Dict[ProviderId, ModelProvider] = {}

    @classmethod
    def default(
        cls,
        credentials: CredentialStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        probe_timeout: float = 5.0,
    ) -> "ProviderRegistry":
        """Build a registry holding every built-in provider.

        Args:
            credentials: Credential store the providers read from
            transport: Optional httpx transport for connectivity probes
            probe_timeout: Timeout in seconds for connectivity probes
        """
        registry = cls()
        for provider_class in ADAPTER_CLASSES.values():
            registry.register(
                provider_class(credentials, transport=transport, probe_timeout=probe_timeout)
            )
        return registry

    def register(self, provider: ModelProvider) -> None:
        """Register a provider instance.

        Registering a provider id twice replaces the earlier instance.

        Example:
            >>> registry = ProviderRegistry()
            >>> registry.register(OpenAIProvider(store))
        """
        self._providers[provider.provider_id] = provider
        logger.debug(f"Registered provider: {provider.name}")

    def get(self, provider_id: ProviderId) -> ModelProvider:
        """Get a provider by id.

        Raises:
            ProviderNotFoundError: If provider not found
        """
        try:
            return self._providers[ProviderId(provider_id)]
        except (KeyError, ValueError):
            available = ", ".join(p.value for p in self._providers)
            raise ProviderNotFoundError(
                f"Provider '{provider_id}' not found. Available providers: {available}"
            ) from None

    def list_providers(self) -> List[ProviderId]:
        return list(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._providers
