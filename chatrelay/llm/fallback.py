"""Provider fallback chain."""

import logging
from typing import Any, Iterable, List, Optional, Tuple

from .credentials import CredentialStore
from .errors import classify_error
from .factory import ProviderFactory
from .types import (
    FallbackCandidate,
    FallbackResult,
    ProviderId,
    ProviderResult,
    ProviderStatus,
)

logger = logging.getLogger(__name__)

#: Fixed priority order for fallback:
#: 1. Apple Intelligence: on-device, no credentials
#: 2. OpenAI
#: 3. OpenRouter
#: 4. Ollama: local server, requires user setup
PROVIDER_FALLBACK_ORDER: Tuple[ProviderId, ...] = (
    ProviderId.APPLE,
    ProviderId.OPENAI,
    ProviderId.OPENROUTER,
    ProviderId.OLLAMA,
)

NO_PROVIDERS_ERROR = "No configured providers available"


def _usable(result: ProviderResult) -> bool:
    return result.model is not None and result.is_configured


class FallbackChain:
    """Resolve a model from the preferred provider, falling back in priority order.

    Each call is an independent run; no state is kept between calls. Fallback
    providers always use their own default model, since the preferred model
    id rarely means anything to another provider.
    """

    def __init__(self, factory: ProviderFactory, credentials: CredentialStore):
        self._factory = factory
        self._credentials = credentials

    def _candidates(
        self,
        preferred_provider: ProviderId,
        excluded: Iterable[ProviderId],
        attempted: List[ProviderId],
    ):
        excluded = set(excluded)
        for provider in PROVIDER_FALLBACK_ORDER:
            if (
                provider == preferred_provider
                or provider in excluded
                or provider in attempted
            ):
                continue
            # Unavailable providers are skipped without counting as attempted.
            if not self._factory.is_provider_available(provider):
                logger.debug(f"Skipping unavailable provider: {provider.value}")
                continue
            yield provider

    def _original(
        self, provider: ProviderId, model_id: str, result: ProviderResult, attempted
    ) -> FallbackResult:
        return FallbackResult(
            model=result.model,
            provider=provider,
            model_id=model_id,
            is_original=True,
            attempted_providers=list(attempted),
        )

    def _fallback(
        self,
        preferred_provider: ProviderId,
        provider: ProviderId,
        model_id: str,
        result: ProviderResult,
        attempted,
    ) -> FallbackResult:
        reason = f"{preferred_provider.value} unavailable, using {provider.value}"
        logger.info(f"Falling back: {reason}")
        return FallbackResult(
            model=result.model,
            provider=provider,
            model_id=model_id,
            is_original=False,
            fallback_reason=reason,
            attempted_providers=list(attempted),
        )

    def _exhausted(
        self, preferred_provider: ProviderId, preferred_model: str, attempted
    ) -> FallbackResult:
        logger.warning(
            f"No provider available (preferred {preferred_provider.value}, "
            f"attempted {[p.value for p in attempted]})"
        )
        return FallbackResult(
            model=None,
            provider=preferred_provider,
            model_id=preferred_model,
            is_original=True,
            attempted_providers=list(attempted),
            error=NO_PROVIDERS_ERROR,
        )

    def _unknown_provider(self, preferred_provider: Any, preferred_model: str) -> FallbackResult:
        logger.warning(f"Unknown provider requested: {preferred_provider}")
        return FallbackResult(
            model=None,
            provider=None,
            model_id=preferred_model,
            is_original=True,
            attempted_providers=[],
            error=f"Unknown provider: {preferred_provider}",
        )

    def get_model_with_fallback(
        self,
        preferred_provider: ProviderId,
        preferred_model: str,
        exclude_providers: Iterable[ProviderId] = (),
    ) -> FallbackResult:
        """Get a model, falling back to other providers if the preferred one fails.

        The preferred provider is tried first with the requested model (unless
        excluded), then PROVIDER_FALLBACK_ORDER left to right, skipping the
        preferred, excluded, already attempted and unavailable providers.

        Args:
            preferred_provider: Provider the user or caller prefers
            preferred_model: Model identifier for the preferred provider
            exclude_providers: Providers that must not be used

        Returns:
            FallbackResult describing the model obtained and every attempt.
            An unknown provider id yields an error result with no attempts.
        """
        try:
            preferred_provider = ProviderId(preferred_provider)
        except ValueError:
            return self._unknown_provider(preferred_provider, preferred_model)
        excluded = set(exclude_providers)
        attempted: List[ProviderId] = []

        if preferred_provider not in excluded:
            attempted.append(preferred_provider)
            result = self._factory.get_provider_model(preferred_provider, preferred_model)
            if _usable(result):
                return self._original(preferred_provider, preferred_model, result, attempted)

        for provider in self._candidates(preferred_provider, excluded, attempted):
            attempted.append(provider)
            model_id = self._credentials.get_default_model_for_provider(provider)
            result = self._factory.get_provider_model(provider, model_id)
            if _usable(result):
                return self._fallback(preferred_provider, provider, model_id, result, attempted)

        return self._exhausted(preferred_provider, preferred_model, attempted)

    async def aget_model_with_fallback(
        self,
        preferred_provider: ProviderId,
        preferred_model: str,
        exclude_providers: Iterable[ProviderId] = (),
    ) -> FallbackResult:
        """Async variant of get_model_with_fallback with deduplicated model creation."""
        try:
            preferred_provider = ProviderId(preferred_provider)
        except ValueError:
            return self._unknown_provider(preferred_provider, preferred_model)
        excluded = set(exclude_providers)
        attempted: List[ProviderId] = []

        if preferred_provider not in excluded:
            attempted.append(preferred_provider)
            result = await self._factory.aget_provider_model(
                preferred_provider, preferred_model
            )
            if _usable(result):
                return self._original(preferred_provider, preferred_model, result, attempted)

        for provider in self._candidates(preferred_provider, excluded, attempted):
            attempted.append(provider)
            model_id = self._credentials.get_default_model_for_provider(provider)
            result = await self._factory.aget_provider_model(provider, model_id)
            if _usable(result):
                return self._fallback(preferred_provider, provider, model_id, result, attempted)

        return self._exhausted(preferred_provider, preferred_model, attempted)

    def get_next_fallback_provider(
        self,
        current_provider: ProviderId,
        failed_providers: Iterable[ProviderId],
        error: Any,
    ) -> Optional[FallbackCandidate]:
        """Pick the provider to switch to after a runtime error.

        Returns:
            Next provider with its default model, or None when the error should
            be retried on the same provider or nothing is left to try
        """
        classification = classify_error(error)
        if not classification.should_fallback:
            logger.debug(
                f"{classification.category.value} error on "
                f"{getattr(current_provider, 'value', current_provider)}: retry, no fallback"
            )
            return None

        skipped = set(failed_providers)
        skipped.add(current_provider)
        for provider in PROVIDER_FALLBACK_ORDER:
            if provider in skipped:
                continue
            if self._factory.is_provider_available(provider):
                return FallbackCandidate(
                    provider=provider,
                    model=self._credentials.get_default_model_for_provider(provider),
                )
        return None

    def has_fallback_available(
        self,
        current_provider: ProviderId,
        failed_providers: Iterable[ProviderId] = (),
    ) -> bool:
        skipped = set(failed_providers)
        skipped.add(current_provider)
        return any(
            provider not in skipped and self._factory.is_provider_available(provider)
            for provider in PROVIDER_FALLBACK_ORDER
        )

    def get_available_providers(self) -> List[ProviderStatus]:
        """Configuration status of every provider, in fallback order."""
        return [
            ProviderStatus(
                provider=provider,
                is_configured=self._credentials.is_provider_configured(provider),
            )
            for provider in PROVIDER_FALLBACK_ORDER
        ]
