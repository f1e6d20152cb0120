"""Provider factory: cached model resolution and connection testing."""

import asyncio
import logging
import time
from typing import Dict, List, Optional

from langchain_core.language_models import BaseChatModel

from .cache import ModelCache
from .credentials import CredentialStore
from .errors import categorize_connection_error
from .exceptions import LLMModuleError
from .providers.base import ModelProvider
from .registry import ProviderRegistry
from .types import (
    ConnectionTestResult,
    ProviderCapability,
    ProviderCredentials,
    ProviderId,
    ProviderInfo,
    ProviderResult,
)

logger = logging.getLogger(__name__)

CONNECTION_TEST_PROMPT = "Say 'OK' and nothing else."

_NOT_CONFIGURED_ERRORS = {
    ProviderId.OPENAI: "OpenAI API key not configured",
    ProviderId.OPENROUTER: "OpenRouter API key not configured",
    ProviderId.OLLAMA: "Ollama URL not configured",
}


class ProviderFactory:
    """Facade for obtaining working model handles.

    Composes the provider registry, the model cache and the credential store.
    None of the public methods raise; failures come back as result values.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        cache: ModelCache,
        credentials: CredentialStore,
        connection_test_timeout: float = 15.0,
        best_provider_timeout: float = 5.0,
    ):
        """Initialize factory.

        Args:
            registry: Registry holding one provider per provider id
            cache: Model cache shared by the application
            credentials: Credential store providers read from
            connection_test_timeout: Default deadline for real connection tests
            best_provider_timeout: Per-provider deadline when picking the best provider
        """
        self._registry = registry
        self._cache = cache
        self._credentials = credentials
        self.connection_test_timeout = connection_test_timeout
        self.best_provider_timeout = best_provider_timeout

    @property
    def cache(self) -> ModelCache:
        return self._cache

    def _provider(self, provider_id: ProviderId) -> Optional[ModelProvider]:
        try:
            return self._registry.get(provider_id)
        except LLMModuleError as e:
            logger.warning(str(e))
            return None

    def _resolve_model_id(self, provider_id: ProviderId, model_id: Optional[str]) -> str:
        return model_id or self._credentials.get_default_model_for_provider(provider_id)

    def _result(
        self, provider: ModelProvider, model: Optional[BaseChatModel]
    ) -> ProviderResult:
        # Re-check credentials every time: a handle cached before a credential
        # change must not be reported as configured.
        return ProviderResult(
            model=model,
            is_configured=provider.is_configured(),
            error=None
            if model is not None
            else _NOT_CONFIGURED_ERRORS.get(
                provider.provider_id, f"{provider.info.name} not configured"
            ),
        )

    @staticmethod
    def _unknown_provider(provider_id) -> ProviderResult:
        return ProviderResult(
            model=None,
            is_configured=False,
            error=f"Unknown provider: {getattr(provider_id, 'value', provider_id)}",
        )

    def get_provider_model(
        self, provider_id: ProviderId, model_id: Optional[str] = None
    ) -> ProviderResult:
        """Get a model for a provider, using the cache for remote providers.

        Args:
            provider_id: Provider to resolve
            model_id: Model identifier (defaults to the provider's default model)

        Returns:
            ProviderResult with the model (or None), configuration state and error
        """
        provider = self._provider(provider_id)
        if provider is None:
            return self._unknown_provider(provider_id)

        model_id = self._resolve_model_id(provider.provider_id, model_id)

        if provider.provider_id == ProviderId.APPLE:
            return ProviderResult(
                model=provider.create_model(model_id), is_configured=True
            )

        model = self._cache.get_or_create(
            provider.provider_id, model_id, lambda: provider.create_model(model_id)
        )
        return self._result(provider, model)

    async def aget_provider_model(
        self, provider_id: ProviderId, model_id: Optional[str] = None
    ) -> ProviderResult:
        """Async variant of get_provider_model.

        Concurrent calls for the same uncached provider/model pair share a
        single model creation.
        """
        provider = self._provider(provider_id)
        if provider is None:
            return self._unknown_provider(provider_id)

        model_id = self._resolve_model_id(provider.provider_id, model_id)

        if provider.provider_id == ProviderId.APPLE:
            return ProviderResult(
                model=provider.create_model(model_id), is_configured=True
            )

        async def create() -> Optional[BaseChatModel]:
            return provider.create_model(model_id)

        model = await self._cache.aget_or_create(provider.provider_id, model_id, create)
        return self._result(provider, model)

    def is_provider_available(self, provider_id: ProviderId) -> bool:
        provider = self._provider(provider_id)
        if provider is None:
            return False
        if provider.provider_id == ProviderId.APPLE:
            return True
        return provider.is_configured()

    def get_provider_info(self, provider_id: ProviderId) -> Optional[ProviderInfo]:
        provider = self._provider(provider_id)
        return provider.info if provider else None

    def get_provider_capabilities(
        self, provider_id: ProviderId
    ) -> Optional[ProviderCapability]:
        provider = self._provider(provider_id)
        return provider.capabilities if provider else None

    def get_all_providers(self) -> List[ProviderId]:
        return self._registry.list_providers()

    def get_configured_providers(self) -> List[ProviderId]:
        """Available providers in registry order."""
        return [p for p in self._registry.list_providers() if self.is_provider_available(p)]

    async def test_provider_connection(
        self, provider_id: ProviderId, credentials: ProviderCredentials
    ) -> bool:
        """Lightweight connectivity check using the provider's cheap probe."""
        provider = self._provider(provider_id)
        if provider is None:
            return False
        if provider.provider_id == ProviderId.APPLE:
            return True
        if not provider.has_required_credentials(credentials):
            return False
        try:
            return await provider.test_connection(credentials)
        except Exception:
            logger.warning(f"Connection probe for {provider.name} raised", exc_info=True)
            return False

    async def test_provider_connection_real(
        self,
        provider_id: ProviderId,
        credentials: Optional[ProviderCredentials] = None,
        timeout: Optional[float] = None,
    ) -> ConnectionTestResult:
        """Verify a provider with a real minimal generation request.

        Args:
            provider_id: Provider to test
            credentials: Override credentials (stored credentials when None)
            timeout: Seconds before the request is cancelled (factory default when None)

        Returns:
            ConnectionTestResult with latency and categorised error
        """
        if timeout is None:
            timeout = self.connection_test_timeout
        start = time.perf_counter()

        def elapsed_ms() -> float:
            return (time.perf_counter() - start) * 1000

        provider = self._provider(provider_id)
        if provider is None:
            return ConnectionTestResult(
                success=False,
                error=f"Unknown provider: {getattr(provider_id, 'value', provider_id)}",
                error_category="unknown",
            )

        try:
            if credentials is not None and provider.has_required_credentials(credentials):
                model = provider.build_model(provider.test_model, credentials)
            else:
                model = provider.create_model(provider.test_model)

            if model is None:
                return ConnectionTestResult(
                    success=False,
                    latency_ms=elapsed_ms(),
                    error="Failed to create model - provider may not be configured",
                    error_category="auth",
                )

            try:
                response = await asyncio.wait_for(
                    model.ainvoke(CONNECTION_TEST_PROMPT), timeout=timeout
                )
            except asyncio.TimeoutError:
                logger.info(f"Connection test for {provider.name} timed out after {timeout}s")
                return ConnectionTestResult(
                    success=False,
                    latency_ms=elapsed_ms(),
                    error="Connection test timed out",
                    error_category="network",
                )

            if isinstance(getattr(response, "content", None), str):
                return ConnectionTestResult(success=True, latency_ms=elapsed_ms())

            return ConnectionTestResult(
                success=False,
                latency_ms=elapsed_ms(),
                error="Unexpected response format",
                error_category="unknown",
            )
        except Exception as e:
            logger.warning(f"Connection test for {provider.name} failed: {e!r}")
            return ConnectionTestResult(
                success=False,
                latency_ms=elapsed_ms(),
                error=str(e) or type(e).__name__,
                error_category=categorize_connection_error(e),
            )

    async def test_all_providers(self) -> Dict[ProviderId, ConnectionTestResult]:
        """Test every configured provider concurrently.

        Unconfigured providers are reported as "Not tested" without any
        network traffic.
        """
        results = {
            provider_id: ConnectionTestResult(success=False, error="Not tested")
            for provider_id in self._registry.list_providers()
        }
        configured = self.get_configured_providers()
        outcomes = await asyncio.gather(
            *(self.test_provider_connection_real(p) for p in configured)
        )
        results.update(zip(configured, outcomes))
        return results

    async def get_best_available_provider(
        self, timeout: Optional[float] = None
    ) -> Optional[ProviderId]:
        """Pick the most reliable usable provider.

        Apple wins immediately when available. Otherwise the first configured
        provider that passes a real connection test is returned; if none pass,
        the first configured provider is returned anyway. None only when no
        provider is configured at all.
        """
        if timeout is None:
            timeout = self.best_provider_timeout
        configured = self.get_configured_providers()
        if not configured:
            return None

        if ProviderId.APPLE in configured:
            return ProviderId.APPLE

        for provider_id in configured:
            result = await self.test_provider_connection_real(provider_id, timeout=timeout)
            if result.success:
                return provider_id

        logger.warning(
            f"No provider passed its connection test, using {configured[0].value}"
        )
        return configured[0]

    def invalidate_provider(self, provider_id: ProviderId) -> None:
        """Drop cached models for a provider (call when credentials change)."""
        provider = self._provider(provider_id)
        if provider is not None:
            self._cache.invalidate_provider(provider.provider_id)
