"""Model handle cache with LRU eviction and TTL expiry."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, NamedTuple, Optional

from langchain_core.language_models import BaseChatModel
from pydantic import BaseModel, Field

from .concurrency import IdempotencyRegistry, OperationKey
from .types import CacheStats, ProviderId

logger = logging.getLogger(__name__)

MODEL_CREATION_OPERATION = "provider-cache-model"


class CacheConfig(BaseModel):
    """Model cache limits.

    Attributes:
        max_entries: Maximum number of cached models
        max_age_seconds: Age after which an entry is discarded
        cleanup_interval_seconds: Interval of the background expiry sweep
    """

    max_entries: int = Field(default=10, ge=1)
    max_age_seconds: float = Field(default=300.0, gt=0)
    cleanup_interval_seconds: float = Field(default=60.0, gt=0)

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, settings) -> "CacheConfig":
        return cls(
            max_entries=settings.model_cache_max_entries,
            max_age_seconds=settings.model_cache_max_age_seconds,
            cleanup_interval_seconds=settings.model_cache_cleanup_interval_seconds,
        )


class CacheKey(NamedTuple):
    provider: ProviderId
    model_id: str


@dataclass
class CacheEntry:
    model: BaseChatModel
    created_at: float
    last_used: float
    hit_count: int = 0


class ModelCache:
    """Bounded, time-expiring store of model handles keyed by provider and model.

    Every mutation runs without awaiting, so coroutines sharing the event loop
    never observe a partially updated cache.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        autostart: bool = True,
    ):
        """Initialize the cache.

        Args:
            config: Cache limits (defaults: 10 entries, 5 minute TTL, 60s sweep)
            clock: Monotonic time source in seconds
            autostart: Start the background sweep on the running event loop,
                at construction or on the first async lookup
        """
        self.config = config or CacheConfig()
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._creations: IdempotencyRegistry[Optional[BaseChatModel]] = (
            IdempotencyRegistry()
        )
        self._cleanup_task: Optional[asyncio.Task] = None
        self._autostart = autostart
        if autostart:
            self._start_if_loop_running()

    def __len__(self) -> int:
        return len(self._entries)

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at > self.config.max_age_seconds

    def get(self, provider: ProviderId, model_id: str) -> Optional[BaseChatModel]:
        """Retrieve a cached model.

        Args:
            provider: Provider identifier
            model_id: Model identifier

        Returns:
            The cached model, or None if absent or expired
        """
        key = CacheKey(provider, model_id)
        entry = self._entries.get(key)
        if entry is None:
            return None

        now = self._clock()
        if self._is_expired(entry, now):
            del self._entries[key]
            logger.debug(f"Cache entry expired for {provider.value}:{model_id}")
            return None

        entry.last_used = now
        entry.hit_count += 1
        return entry.model

    def set(self, provider: ProviderId, model_id: str, model: BaseChatModel) -> None:
        """Store a model, evicting the least recently used entry at capacity.

        Overwriting an existing key never evicts.
        """
        key = CacheKey(provider, model_id)
        if key not in self._entries and len(self._entries) >= self.config.max_entries:
            self._evict_least_recently_used()

        now = self._clock()
        self._entries[key] = CacheEntry(model=model, created_at=now, last_used=now)

    def has(self, provider: ProviderId, model_id: str) -> bool:
        """Check for an unexpired entry without touching usage statistics."""
        key = CacheKey(provider, model_id)
        entry = self._entries.get(key)
        if entry is None:
            return False
        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            return False
        return True

    def invalidate_provider(self, provider: ProviderId) -> None:
        """Remove every cached model belonging to a provider."""
        stale = [key for key in self._entries if key.provider == provider]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.info(
                f"Invalidated {len(stale)} cached model(s) for {provider.value}"
            )

    def clear(self) -> None:
        """Clear the model cache."""
        logger.info(f"Clearing model cache ({len(self._entries)} entries)")
        self._entries.clear()

    def get_stats(self) -> CacheStats:
        """Summarise the stored entries.

        Expired entries still count until a lookup or sweep removes them.
        Timestamps are creation times on the cache clock.
        """
        providers = {provider: 0 for provider in ProviderId}
        oldest: Optional[float] = None
        newest: Optional[float] = None

        for key, entry in self._entries.items():
            providers[key.provider] += 1
            if oldest is None or entry.created_at < oldest:
                oldest = entry.created_at
            if newest is None or entry.created_at > newest:
                newest = entry.created_at

        return CacheStats(
            size=len(self._entries),
            providers=providers,
            oldest_entry=oldest,
            newest_entry=newest,
        )

    def cleanup(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [
            key for key, entry in self._entries.items() if self._is_expired(entry, now)
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Cache sweep removed {len(expired)} expired entries")
        return len(expired)

    def _evict_least_recently_used(self) -> None:
        if not self._entries:
            return
        lru_key = min(self._entries, key=lambda key: self._entries[key].last_used)
        del self._entries[lru_key]
        logger.debug(f"Evicted least recently used model {lru_key.provider.value}:{lru_key.model_id}")

    def get_or_create(
        self,
        provider: ProviderId,
        model_id: str,
        create: Callable[[], Optional[BaseChatModel]],
    ) -> Optional[BaseChatModel]:
        """Return the cached model or create and cache it.

        A None result from ``create`` is returned but not cached.
        """
        cached = self.get(provider, model_id)
        if cached is not None:
            logger.debug(f"Cache hit for {provider.value}:{model_id}, reusing model")
            return cached

        logger.debug(f"Cache miss for {provider.value}:{model_id}, creating new model")
        model = create()
        if model is not None:
            self.set(provider, model_id, model)
        return model

    async def aget_or_create(
        self,
        provider: ProviderId,
        model_id: str,
        create: Callable[[], Awaitable[Optional[BaseChatModel]]],
    ) -> Optional[BaseChatModel]:
        """Async get-or-create that runs at most one creation per key at a time.

        Concurrent callers missing the cache for the same key share a single
        call to ``create`` and all receive its result or exception. Only a
        non-None result is cached.
        """
        if self._autostart:
            self._start_if_loop_running()

        cached = self.get(provider, model_id)
        if cached is not None:
            return cached

        async def create_and_store() -> Optional[BaseChatModel]:
            existing = self.get(provider, model_id)
            if existing is not None:
                return existing
            model = await create()
            if model is not None:
                self.set(provider, model_id, model)
            return model

        key = OperationKey(MODEL_CREATION_OPERATION, provider.value, model_id)
        return await self._creations.run(key, create_and_store)

    def _start_if_loop_running(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self.start()

    def start(self) -> None:
        """Start the periodic expiry sweep on the running event loop."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        loop = asyncio.get_running_loop()
        self._cleanup_task = loop.create_task(self._cleanup_loop())

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.cleanup_interval_seconds)
            self.cleanup()

    def reset(self) -> None:
        """Drop all entries and forget in-flight creations."""
        self._entries.clear()
        self._creations.clear()

    def dispose(self) -> None:
        """Stop the background sweep and release all cached models."""
        self._autostart = False
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            self._cleanup_task = None
        self.reset()
