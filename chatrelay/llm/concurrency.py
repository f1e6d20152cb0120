"""Deduplication of concurrent async operations."""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Generic, NamedTuple, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationKey(NamedTuple):
    """Identity of a logical operation on one provider/model pair."""

    operation: str
    provider: str
    model_id: str


class IdempotencyRegistry(Generic[T]):
    """Share one in-flight execution between concurrent callers of the same key.

    The first caller for a key starts the task; later callers await the same
    task and receive the same result or exception. The key is released as soon
    as the task finishes, successfully or not.
    """

    def __init__(self):
        self._in_flight: Dict[OperationKey, "asyncio.Task[T]"] = {}

    async def run(
        self, key: OperationKey, task_factory: Callable[[], Awaitable[T]]
    ) -> T:
        """Await the in-flight task for key, or start one with task_factory.

        Callers that arrive while a task runs share its result or exception.
        """
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(task_factory())
            self._in_flight[key] = task
            task.add_done_callback(lambda done, key=key: self._release(key, done))
        else:
            logger.debug(f"Joining in-flight operation {key}")

        # Cancelling one waiter must not cancel the shared task.
        return await asyncio.shield(task)

    def has(self, key: OperationKey) -> bool:
        """Whether a task for key is currently in flight."""
        return key in self._in_flight

    def clear(self, key: Optional[OperationKey] = None) -> None:
        """Forget one key, or every key when none is given.

        Tasks already running keep running; they are only no longer joinable.
        """
        if key is not None:
            self._in_flight.pop(key, None)
            return
        self._in_flight.clear()

    def size(self) -> int:
        """Number of in-flight operations."""
        return len(self._in_flight)

    def _release(self, key: OperationKey, task: "asyncio.Task[T]") -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Operation {key} failed: {task.exception()!r}")
