"""Provider identifiers, metadata and result schemas."""
import enum
from typing import Dict, List, Literal, Optional

from langchain_core.language_models import BaseChatModel
from pydantic import BaseModel, ConfigDict, Field


class ProviderId(str, enum.Enum):
    """Provider identifier enumeration."""

    APPLE = "apple"
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    OLLAMA = "ollama"


class ProviderInfo(BaseModel):
    """Static description of a provider."""

    id: ProviderId
    name: str
    description: str
    requires_api_key: bool
    requires_url: bool
    default_models: List[str]

    model_config = ConfigDict(frozen=True)


class ProviderCapability(BaseModel):
    """Feature flags for a provider."""

    supports_streaming: bool = True
    supports_system_messages: bool = True
    max_context_tokens: Optional[int] = None

    model_config = ConfigDict(frozen=True)


OPENAI_MODELS: List[str] = [
    "gpt-5.2",
    "gpt-5.1",
    "gpt-5",
    "gpt-5-mini",
    "gpt-5-nano",
    "gpt-4.1",
    "gpt-4.1-mini",
    "gpt-4.1-nano",
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4-turbo",
    "gpt-4",
    "gpt-3.5-turbo",
]

OPENROUTER_MODELS: List[str] = [
    "openai/gpt-5.2",
    "openai/gpt-5.1",
    "openai/gpt-5",
    "openai/gpt-5-mini",
    "openai/gpt-4o",
    "openai/gpt-4o-mini",
    "openai/gpt-4-turbo",
    "anthropic/claude-sonnet-4-20250514",
    "anthropic/claude-opus-4-20250514",
    "google/gemini-2.5-pro",
    "google/gemini-2.5-flash",
    "meta/llama-4-scout",
    "meta/llama-4-maverick",
]

OLLAMA_MODELS: List[str] = [
    "llama4",
    "llama3.3",
    "llama3.2",
    "llama3.1",
    "mistral",
    "mixtral",
    "qwen2.5",
    "qwen2.5-coder",
    "codellama",
    "deepseek-r1",
    "gemma3",
    "phi4",
]

PROVIDERS: Dict[ProviderId, ProviderInfo] = {
    ProviderId.APPLE: ProviderInfo(
        id=ProviderId.APPLE,
        name="Apple Intelligence",
        description="On-device AI powered by Apple Silicon",
        requires_api_key=False,
        requires_url=False,
        default_models=["system-default"],
    ),
    ProviderId.OPENAI: ProviderInfo(
        id=ProviderId.OPENAI,
        name="OpenAI",
        description="GPT-4 and other OpenAI models",
        requires_api_key=True,
        requires_url=False,
        default_models=OPENAI_MODELS[:8],
    ),
    ProviderId.OPENROUTER: ProviderInfo(
        id=ProviderId.OPENROUTER,
        name="OpenRouter",
        description="Access to multiple AI providers through OpenRouter",
        requires_api_key=True,
        requires_url=False,
        default_models=OPENROUTER_MODELS[:8],
    ),
    ProviderId.OLLAMA: ProviderInfo(
        id=ProviderId.OLLAMA,
        name="Ollama",
        description="Local AI models via Ollama",
        requires_api_key=False,
        requires_url=True,
        default_models=OLLAMA_MODELS[:8],
    ),
}

PROVIDER_CAPABILITIES: Dict[ProviderId, ProviderCapability] = {
    ProviderId.APPLE: ProviderCapability(),
    ProviderId.OPENAI: ProviderCapability(max_context_tokens=128000),
    ProviderId.OPENROUTER: ProviderCapability(),
    ProviderId.OLLAMA: ProviderCapability(),
}

_OPENAI_REASONING_PREFIXES = (
    "o1",
    "o3",
    "o4-mini",
    "codex-mini",
    "computer-use-preview",
    "gpt-5",
)
_OPENAI_NON_REASONING_PREFIXES = ("gpt-5-chat",)
_OPENROUTER_REASONING_PREFIXES = tuple(
    f"openai/{prefix}" for prefix in _OPENAI_REASONING_PREFIXES
) + ("deepseek/deepseek-r1",)
_OPENROUTER_NON_REASONING_PREFIXES = ("openai/gpt-5-chat",)
_OLLAMA_REASONING_HINT_PREFIXES = ("gpt-oss", "deepseek-r1", "qwen3", "qwq")


def is_ollama_thinking_hint_model(model_id: str) -> bool:
    """Whether an Ollama model id looks like a reasoning model."""
    if not model_id:
        return False
    return model_id.lower().startswith(_OLLAMA_REASONING_HINT_PREFIXES)


def is_thinking_capable_model(provider: ProviderId, model_id: str) -> bool:
    """Whether a model is known to emit reasoning output.

    Args:
        provider: Provider serving the model
        model_id: Model identifier

    Returns:
        True for OpenAI/OpenRouter reasoning families, False otherwise
    """
    if not model_id:
        return False

    normalized = model_id.lower()
    if provider == ProviderId.OPENAI:
        if normalized.startswith(_OPENAI_NON_REASONING_PREFIXES):
            return False
        return normalized.startswith(_OPENAI_REASONING_PREFIXES)
    if provider == ProviderId.OPENROUTER:
        if ":thinking" in normalized:
            return True
        if normalized.startswith(_OPENROUTER_NON_REASONING_PREFIXES):
            return False
        return normalized.startswith(_OPENROUTER_REASONING_PREFIXES)
    return False


class ProviderCredentials(BaseModel):
    """Credentials for a single provider.

    Separate from result schemas so secrets are never serialized with them.
    """

    api_key: Optional[str] = None
    url: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class ProviderResult(BaseModel):
    """Outcome of resolving a provider model."""

    model: Optional[BaseChatModel] = None
    is_configured: bool
    error: Optional[str] = None


ConnectionErrorCategory = Literal["auth", "network", "model", "unknown"]


class ConnectionTestResult(BaseModel):
    """Result of a provider connection test."""

    success: bool
    latency_ms: Optional[float] = None
    error: Optional[str] = None
    error_category: Optional[ConnectionErrorCategory] = None


class ErrorCategory(str, enum.Enum):
    """Provider failure categories."""

    CONFIGURATION = "configuration"
    NETWORK = "network"
    RATE_LIMIT = "rate_limit"
    AUTHENTICATION = "authentication"
    MODEL_NOT_FOUND = "model_not_found"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ErrorClassification(BaseModel):
    """How a provider error should be handled."""

    category: ErrorCategory
    is_retryable: bool
    should_fallback: bool
    message: str

    model_config = ConfigDict(frozen=True)


class FallbackResult(BaseModel):
    """Outcome of resolving a model through the fallback chain.

    Attributes:
        model: Resolved model, or None if every provider failed
        provider: Provider that supplied the model, or None for an unknown id
        model_id: Model identifier that was used
        is_original: Whether the preferred provider supplied the model
        fallback_reason: Why a different provider was used
        attempted_providers: Providers asked for a model, in order
        error: Terminal error when no provider could be used
    """

    model: Optional[BaseChatModel] = None
    provider: Optional[ProviderId]
    model_id: str
    is_original: bool
    fallback_reason: Optional[str] = None
    attempted_providers: List[ProviderId] = Field(default_factory=list)
    error: Optional[str] = None

    model_config = ConfigDict(protected_namespaces=())


class FallbackCandidate(BaseModel):
    """Next provider/model pair to switch to after an error."""

    provider: ProviderId
    model: str


class ProviderStatus(BaseModel):
    """Configuration snapshot for one provider."""

    provider: ProviderId
    is_configured: bool


class CacheStats(BaseModel):
    """Model cache diagnostics."""

    size: int
    providers: Dict[ProviderId, int]
    oldest_entry: Optional[float] = None
    newest_entry: Optional[float] = None
