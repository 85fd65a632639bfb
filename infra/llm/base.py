from abc import ABC, abstractmethod
from typing import AsyncIterator


class ProviderError(Exception):
    """Raised when the upstream LLM provider rejects or fails a request."""


class ProviderConfigError(ProviderError):
    """Raised when a provider cannot be constructed (missing key, bad settings)."""


class ThreadedLLM(ABC):
    """
    Defines the contract for thread-based LLM providers.

    A thread is a provider-side conversation: messages are appended to it and a run
    produces the next assistant turn, streamed as incremental text.
    """

    @abstractmethod
    async def create_thread(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def append_message(self, thread_id: str, content: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def stream_run(self, thread_id: str, *, assistant_id: str, instructions: str) -> AsyncIterator[str]:
        """Yield text deltas of the assistant's reply. Errors surface as ProviderError."""
        raise NotImplementedError
