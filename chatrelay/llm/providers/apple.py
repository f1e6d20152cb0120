"""Apple Intelligence (on-device) provider implementation."""

import asyncio
import concurrent.futures
import logging
from typing import Any, List, Optional, Tuple

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, SystemMessage
from langchain_core.outputs import ChatGeneration, ChatResult

from ..types import ProviderCredentials, ProviderId
from .base import ModelProvider

logger = logging.getLogger(__name__)

APPLE_MODEL_ID = "system-default"


def _load_sdk():
    # Only importable on Apple silicon macOS with Apple Intelligence enabled.
    import apple_fm_sdk

    return apple_fm_sdk


def _split_messages(messages: List[BaseMessage]) -> Tuple[Optional[str], str]:
    instructions = [m.content for m in messages if isinstance(m, SystemMessage)]
    turns = [m for m in messages if not isinstance(m, SystemMessage)]
    if len(turns) == 1:
        prompt = str(turns[0].content)
    else:
        prompt = "\n".join(f"{m.type}: {m.content}" for m in turns)
    return ("\n".join(str(i) for i in instructions) or None), prompt


class AppleChatModel(BaseChatModel):
    """Chat model backed by the on-device Foundation Model.

    Construction does no I/O; the SDK is loaded on the first generation.
    """

    model: str = APPLE_MODEL_ID
    provider: str = ProviderId.APPLE.value

    @property
    def _llm_type(self) -> str:
        return "apple-foundation-models"

    async def _agenerate(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Any = None,
        **kwargs: Any,
    ) -> ChatResult:
        fm = _load_sdk()
        model = fm.SystemLanguageModel()
        is_available, reason = model.is_available()
        if not is_available:
            raise RuntimeError(f"Apple Intelligence is not available: {reason}")

        instructions, prompt = _split_messages(messages)
        if instructions:
            session = fm.LanguageModelSession(model=model, instructions=instructions)
        else:
            session = fm.LanguageModelSession(model=model)
        text = await session.respond(prompt)
        return ChatResult(
            generations=[ChatGeneration(message=AIMessage(content=str(text)))]
        )

    def _generate(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Any = None,
        **kwargs: Any,
    ) -> ChatResult:
        coro = self._agenerate(messages, stop=stop, **kwargs)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(coro)
        # asyncio.run cannot nest inside a running loop
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def create_apple_model() -> AppleChatModel:
    return AppleChatModel()


def is_apple_model(model: Any) -> bool:
    """Whether a handle was produced by the Apple provider."""
    return getattr(model, "provider", None) == ProviderId.APPLE.value


def apple_intelligence_available() -> bool:
    """Whether the on-device model can be used on this machine. Never raises."""
    try:
        is_available, reason = _load_sdk().SystemLanguageModel().is_available()
    except Exception as e:
        logger.debug(f"Apple Intelligence unavailable: {e!r}")
        return False
    if not is_available:
        logger.debug(f"Apple Intelligence unavailable: {reason}")
    return bool(is_available)


class AppleProvider(ModelProvider):
    """Apple Intelligence provider implementation.

    Runs on-device and needs no credentials, so it is always configured.
    """

    test_model = APPLE_MODEL_ID

    @property
    def provider_id(self) -> ProviderId:
        """Provider identifier."""
        return ProviderId.APPLE

    def has_required_credentials(self, credentials: ProviderCredentials) -> bool:
        return True

    def build_model(
        self, model_id: str, credentials: ProviderCredentials
    ) -> BaseChatModel:
        return AppleChatModel(model=model_id or APPLE_MODEL_ID)

    async def test_connection(self, credentials: ProviderCredentials) -> bool:
        return await asyncio.to_thread(apple_intelligence_available)
