"""Ollama provider implementation."""

import logging
from typing import Any, List, Optional

import httpx
from langchain_core.language_models import BaseChatModel
from langchain_ollama import ChatOllama

from ..exceptions import ConfigurationError
from ..types import ProviderCredentials, ProviderId
from .base import ModelProvider
from .http import get_json, probe

logger = logging.getLogger(__name__)

API_SUFFIX = "/api"


def normalize_ollama_url(url: str) -> str:
    """Normalize a configured Ollama URL to its API root.

    Examples:
        "http://localhost:11434"      -> "http://localhost:11434/api"
        "http://localhost:11434/"     -> "http://localhost:11434/api"
        "http://localhost:11434/api"  -> "http://localhost:11434/api"
        "http://localhost:11434/api/" -> "http://localhost:11434/api"
    """
    normalized = url.strip().rstrip("/")
    if normalized.endswith(API_SUFFIX):
        return normalized
    return f"{normalized}{API_SUFFIX}"


def ollama_server_url(url: str) -> str:
    """Server root (no /api suffix), as ChatOllama expects it."""
    return normalize_ollama_url(url)[: -len(API_SUFFIX)]


def parse_model_names(data: Any) -> List[str]:
    """Extract model names from an Ollama tag listing.

    Accepts a bare list or an object with a ``models`` list; entries may be
    plain names or objects with ``name`` or ``model``. Names are trimmed and
    empty, duplicate or malformed entries dropped, keeping first-seen order.
    """
    if isinstance(data, list):
        entries = data
    elif isinstance(data, dict) and isinstance(data.get("models"), list):
        entries = data["models"]
    else:
        return []

    names: List[str] = []
    seen = set()
    for entry in entries:
        if isinstance(entry, str):
            name = entry
        elif isinstance(entry, dict):
            name = entry.get("name") or entry.get("model")
        else:
            continue
        if not isinstance(name, str):
            continue
        name = name.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        names.append(name)
    return names


async def test_ollama_connection(
    url: str,
    timeout_s: float = 5.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """Check that an Ollama server answers its tag listing endpoint."""
    if not url:
        return False
    return await probe(
        f"{normalize_ollama_url(url)}/tags",
        timeout_s=timeout_s,
        transport=transport,
    )


async def fetch_ollama_models(
    url: str,
    timeout_s: float = 10.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[str]:
    """List the models installed on an Ollama server.

    Returns:
        Deduplicated model names, or an empty list on any failure
    """
    if not url:
        return []
    api_url = f"{normalize_ollama_url(url)}/tags"
    try:
        data = await get_json(
            api_url,
            headers={"Accept": "application/json"},
            timeout_s=timeout_s,
            transport=transport,
        )
    except Exception as e:
        logger.warning(f"Failed to fetch Ollama models from {api_url}: {e!r}")
        return []
    return parse_model_names(data)


class OllamaProvider(ModelProvider):
    """Ollama provider implementation.

    Talks to a self-hosted server; requires a URL but no API key.
    """

    test_model = "llama3.2"
    models_timeout = 10.0

    @property
    def provider_id(self) -> ProviderId:
        """Provider identifier."""
        return ProviderId.OLLAMA

    def has_required_credentials(self, credentials: ProviderCredentials) -> bool:
        return bool(credentials.url)

    def build_model(
        self, model_id: str, credentials: ProviderCredentials
    ) -> BaseChatModel:
        """Create Ollama ChatModel instance.

        Args:
            model_id: Model name (e.g., 'llama3.2', 'llama3.2:latest')
            credentials: Credentials carrying the server URL

        Returns:
            Configured ChatOllama instance
        """
        if not credentials.url:
            raise ConfigurationError("Ollama URL not configured")

        return ChatOllama(model=model_id, base_url=ollama_server_url(credentials.url))

    async def test_connection(self, credentials: ProviderCredentials) -> bool:
        return await test_ollama_connection(
            credentials.url or "",
            timeout_s=self.probe_timeout,
            transport=self._transport,
        )

    async def list_models(self, timeout_s: Optional[float] = None) -> List[str]:
        """List models on the configured server."""
        return await fetch_ollama_models(
            self.stored_credentials().url or "",
            timeout_s=self.models_timeout if timeout_s is None else timeout_s,
            transport=self._transport,
        )
