"""Pytest configuration and shared fixtures."""

import pytest

from chatrelay.llm.cache import CacheConfig, ModelCache
from chatrelay.llm.credentials import InMemoryCredentialStore
from chatrelay.llm.factory import ProviderFactory
from chatrelay.llm.fallback import FallbackChain
from chatrelay.llm.registry import ProviderRegistry
from chatrelay.llm.types import ProviderId

DEFAULT_MODELS = {
    ProviderId.APPLE: "system-default",
    ProviderId.OPENAI: "gpt-4o",
    ProviderId.OPENROUTER: "openai/gpt-4o",
    ProviderId.OLLAMA: "llama3.2",
}


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    cache = ModelCache(CacheConfig(), clock=clock, autostart=False)
    yield cache
    cache.dispose()


@pytest.fixture
def store():
    """Credential store with nothing configured."""
    return InMemoryCredentialStore(default_models=DEFAULT_MODELS)


@pytest.fixture
def configured_store(store):
    """Credential store with every remote provider configured."""
    store.set_provider_auth(ProviderId.OPENAI, api_key="sk-openai")
    store.set_provider_auth(ProviderId.OPENROUTER, api_key="sk-or-test")
    store.set_provider_auth(ProviderId.OLLAMA, url="http://localhost:11434")
    return store


@pytest.fixture
def registry(store):
    return ProviderRegistry.default(store)


@pytest.fixture
def factory(registry, cache, store):
    return ProviderFactory(registry, cache, store)


@pytest.fixture
def chain(factory, store):
    return FallbackChain(factory, store)
