from collections import OrderedDict
from uuid import uuid4
from typing import AsyncIterator

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_ollama import ChatOllama

from api.utils.logger import configure_logging
from infra.llm.base import ProviderError, ThreadedLLM

logger = configure_logging()


class OllamaThreadLLM(ThreadedLLM):
    """
    Thread semantics on top of a local Ollama chat model.

    Ollama has no server-side threads, so each thread's turns are kept in process memory
    and replayed on every run behind the per-turn instructions (sent as the system
    message). Threads do not survive a restart; an unknown thread id starts empty.
    At most ``max_threads`` are kept; the least recently used one is dropped first.
    """

    def __init__(
        self,
        model: str,
        temperature: float = 0.7,
        base_url: str = "http://localhost:11434",
        max_threads: int = 1000,
    ):
        self.model = model
        self.max_threads = max_threads
        self._chat_llm = ChatOllama(model=model, temperature=temperature, base_url=base_url)
        self._threads: OrderedDict[str, list[BaseMessage]] = OrderedDict()

    def _remember(self, thread_id: str) -> list[BaseMessage]:
        history = self._threads.setdefault(thread_id, [])
        self._threads.move_to_end(thread_id)
        while len(self._threads) > self.max_threads:
            evicted, _ = self._threads.popitem(last=False)
            logger.info("ollama thread evicted thread_id=%s", evicted)
        return history

    def _thread(self, thread_id: str) -> list[BaseMessage]:
        if thread_id not in self._threads:
            logger.warning("ollama thread not in memory, starting empty thread_id=%s", thread_id)
        return self._remember(thread_id)

    async def create_thread(self) -> str:
        thread_id = f"thread_{uuid4().hex}"
        self._remember(thread_id)
        return thread_id

    async def append_message(self, thread_id: str, content: str) -> None:
        self._thread(thread_id).append(HumanMessage(content=content))

    async def stream_run(self, thread_id: str, *, assistant_id: str, instructions: str) -> AsyncIterator[str]:
        # assistant_id names an upstream assistant; a local model has a single one.
        history = self._thread(thread_id)
        messages: list[BaseMessage] = [SystemMessage(content=instructions), *history]
        chunks: list[str] = []
        try:
            async for chunk in self._chat_llm.astream(messages):
                # ChatOllama yields AIMessageChunk; normalize to plain text for SSE.
                text = chunk.content if isinstance(chunk.content, str) else ""
                if text:
                    chunks.append(text)
                    yield text
        except Exception as e:
            logger.error("ollama run failed model=%s thread_id=%s: %s", self.model, thread_id, e)
            raise ProviderError(f"Ollama run failed: {e}") from e
        history.append(AIMessage(content="".join(chunks)))
