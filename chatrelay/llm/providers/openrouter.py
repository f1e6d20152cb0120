"""OpenRouter provider implementation."""

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from ..exceptions import ConfigurationError
from ..types import ProviderCredentials, ProviderId
from .base import ModelProvider
from .http import probe

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterProvider(ModelProvider):
    """OpenRouter provider implementation.

    OpenRouter is an OpenAI-compatible API that provides access to multiple
    models, so handles are ChatOpenAI instances pointed at its base URL.
    """

    test_model = "openai/gpt-4o-mini"

    @property
    def provider_id(self) -> ProviderId:
        """Provider identifier."""
        return ProviderId.OPENROUTER

    def has_required_credentials(self, credentials: ProviderCredentials) -> bool:
        return bool(credentials.api_key)

    def build_model(
        self, model_id: str, credentials: ProviderCredentials
    ) -> BaseChatModel:
        """Create OpenRouter ChatModel instance.

        Args:
            model_id: Model name (e.g., 'anthropic/claude-sonnet-4-20250514')
            credentials: Credentials carrying the API key

        Returns:
            Configured ChatOpenAI instance (OpenRouter is OpenAI-compatible)
        """
        if not credentials.api_key:
            raise ConfigurationError("OpenRouter API key not configured")

        return ChatOpenAI(
            model=model_id,
            api_key=credentials.api_key,
            base_url=OPENROUTER_BASE_URL,
        )

    async def test_connection(self, credentials: ProviderCredentials) -> bool:
        if not credentials.api_key:
            return False
        return await probe(
            f"{OPENROUTER_BASE_URL}/models",
            headers={
                "Authorization": f"Bearer {credentials.api_key}",
                "Content-Type": "application/json",
            },
            timeout_s=self.probe_timeout,
            transport=self._transport,
        )
