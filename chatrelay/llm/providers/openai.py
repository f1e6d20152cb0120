"""OpenAI provider implementation."""

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from ..exceptions import ConfigurationError
from ..types import ProviderCredentials, ProviderId
from .base import ModelProvider
from .http import probe

OPENAI_MODELS_URL = "https://api.openai.com/v1/models"


class OpenAIProvider(ModelProvider):
    """OpenAI provider implementation.

    Requires an API key. Connectivity is probed by listing models.
    """

    test_model = "gpt-4o-mini"

    @property
    def provider_id(self) -> ProviderId:
        """Provider identifier."""
        return ProviderId.OPENAI

    def has_required_credentials(self, credentials: ProviderCredentials) -> bool:
        return bool(credentials.api_key)

    def build_model(
        self, model_id: str, credentials: ProviderCredentials
    ) -> BaseChatModel:
        """Create OpenAI ChatModel instance.

        Args:
            model_id: Model name (e.g., 'gpt-4o', 'gpt-5')
            credentials: Credentials carrying the API key

        Returns:
            Configured ChatOpenAI instance
        """
        if not credentials.api_key:
            raise ConfigurationError("OpenAI API key not configured")

        return ChatOpenAI(model=model_id, api_key=credentials.api_key)

    async def test_connection(self, credentials: ProviderCredentials) -> bool:
        if not credentials.api_key:
            return False
        return await probe(
            OPENAI_MODELS_URL,
            headers={
                "Authorization": f"Bearer {credentials.api_key}",
                "Content-Type": "application/json",
            },
            timeout_s=self.probe_timeout,
            transport=self._transport,
        )
