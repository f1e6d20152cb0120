"""Credential store interface and in-memory implementation."""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from .types import ProviderCredentials, ProviderId

logger = logging.getLogger(__name__)

CredentialListener = Callable[[ProviderId], None]


class CredentialStore(ABC):
    """Read-only view of provider credentials and default models."""

    @abstractmethod
    def get_provider_auth(self, provider: ProviderId) -> ProviderCredentials:
        """Return the stored credentials for a provider."""
        pass

    @abstractmethod
    def get_default_model_for_provider(self, provider: ProviderId) -> str:
        """Return the model used when none is requested explicitly."""
        pass

    def is_provider_configured(self, provider: ProviderId) -> bool:
        """Whether the minimum credentials for a provider are present."""
        auth = self.get_provider_auth(provider)
        if provider == ProviderId.APPLE:
            return True
        if provider == ProviderId.OLLAMA:
            return bool(auth.url)
        return bool(auth.api_key)


class InMemoryCredentialStore(CredentialStore):
    """Credential store kept in process memory.

    Listeners registered with ``subscribe`` are called with the provider id
    whenever that provider's credentials change, so cached model handles
    built from the old credentials can be invalidated.
    """

    def __init__(
        self,
        credentials: Optional[Dict[ProviderId, ProviderCredentials]] = None,
        default_models: Optional[Dict[ProviderId, str]] = None,
    ):
        self._credentials: Dict[ProviderId, ProviderCredentials] = dict(
            credentials or {}
        )
        self._default_models: Dict[ProviderId, str] = dict(default_models or {})
        self._listeners: List[CredentialListener] = []

    @classmethod
    def from_settings(cls, settings) -> "InMemoryCredentialStore":
        """Build a store from application settings."""
        return cls(
            credentials={
                ProviderId.OPENAI: ProviderCredentials(
                    api_key=settings.openai_api_key or None
                ),
                ProviderId.OPENROUTER: ProviderCredentials(
                    api_key=settings.openrouter_api_key or None
                ),
                ProviderId.OLLAMA: ProviderCredentials(
                    url=settings.ollama_url or None
                ),
            },
            default_models={
                ProviderId.APPLE: settings.apple_default_model,
                ProviderId.OPENAI: settings.openai_default_model,
                ProviderId.OPENROUTER: settings.openrouter_default_model,
                ProviderId.OLLAMA: settings.ollama_default_model,
            },
        )

    def get_provider_auth(self, provider: ProviderId) -> ProviderCredentials:
        if provider == ProviderId.APPLE:
            return ProviderCredentials()
        return self._credentials.get(provider, ProviderCredentials())

    def get_default_model_for_provider(self, provider: ProviderId) -> str:
        return self._default_models.get(provider, "")

    def set_provider_auth(
        self,
        provider: ProviderId,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        """Replace a provider's credentials and notify listeners."""
        updated = ProviderCredentials(api_key=api_key or None, url=url or None)
        if self._credentials.get(provider) == updated:
            return
        self._credentials[provider] = updated
        logger.info(f"Credentials updated for provider: {provider.value}")
        self._notify(provider)

    def clear_provider_auth(self, provider: ProviderId) -> None:
        """Remove a provider's credentials and notify listeners."""
        if self._credentials.pop(provider, None) is not None:
            logger.info(f"Credentials cleared for provider: {provider.value}")
            self._notify(provider)

    def set_default_model(self, provider: ProviderId, model_id: str) -> None:
        self._default_models[provider] = model_id

    def subscribe(self, listener: CredentialListener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, provider: ProviderId) -> None:
        for listener in list(self._listeners):
            listener(provider)
