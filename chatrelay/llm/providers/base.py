"""Base interface for LLM providers."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from langchain_core.language_models import BaseChatModel

from ..credentials import CredentialStore
from ..types import (
    PROVIDER_CAPABILITIES,
    PROVIDERS,
    ProviderCapability,
    ProviderCredentials,
    ProviderId,
    ProviderInfo,
)

logger = logging.getLogger(__name__)


class ModelProvider(ABC):
    """Abstract base class for LLM providers.

    Each provider implementation must:
    1. Specify its provider id and a small model for live tests
    2. Build a model handle from explicit credentials
    3. Probe connectivity cheaply without raising

    ``create_model`` and ``is_configured`` read the shared credential store and
    never raise: a missing credential is an expected outcome, not an error.
    """

    #: Model used by the real round-trip connection test
    test_model: str = ""

    def __init__(
        self,
        credentials: CredentialStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        probe_timeout: float = 5.0,
    ):
        """Initialize provider.

        Args:
            credentials: Credential store to read stored credentials from
            transport: Optional httpx transport for connectivity probes
            probe_timeout: Timeout in seconds for connectivity probes
        """
        self._credentials = credentials
        self._transport = transport
        self.probe_timeout = probe_timeout

    @property
    @abstractmethod
    def provider_id(self) -> ProviderId:
        """Provider identifier."""
        pass

    @property
    def name(self) -> str:
        return self.provider_id.value

    @property
    def info(self) -> ProviderInfo:
        return PROVIDERS[self.provider_id]

    @property
    def capabilities(self) -> ProviderCapability:
        return PROVIDER_CAPABILITIES[self.provider_id]

    def stored_credentials(self) -> ProviderCredentials:
        return self._credentials.get_provider_auth(self.provider_id)

    @abstractmethod
    def has_required_credentials(self, credentials: ProviderCredentials) -> bool:
        """Whether the credentials carry the fields this provider needs."""
        pass

    @abstractmethod
    def build_model(
        self, model_id: str, credentials: ProviderCredentials
    ) -> BaseChatModel:
        """Create the model instance.

        Args:
            model_id: Model name/identifier
            credentials: Credentials to bind the handle to

        Returns:
            Configured BaseChatModel instance

        Raises:
            ConfigurationError: If required credentials are missing
            Exception: Whatever the underlying SDK raises on construction
        """
        pass

    @abstractmethod
    async def test_connection(self, credentials: ProviderCredentials) -> bool:
        """Cheap connectivity probe. Never raises."""
        pass

    def is_configured(self) -> bool:
        return self.has_required_credentials(self.stored_credentials())

    def create_model(self, model_id: str) -> Optional[BaseChatModel]:
        """Create a model from stored credentials.

        Returns:
            Model instance, or None if not configured or construction failed
        """
        credentials = self.stored_credentials()
        if not self.has_required_credentials(credentials):
            logger.debug(f"{self.info.name} not configured, no model created")
            return None

        try:
            model = self.build_model(model_id, credentials)
        except Exception:
            logger.warning(
                f"Failed to create {self.name} model: {model_id}", exc_info=True
            )
            return None

        logger.info(f"Created {self.name} model: {model_id}")
        return model
