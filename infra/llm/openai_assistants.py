from typing import AsyncIterator, Optional

from openai import AsyncOpenAI, OpenAIError

from api.utils.logger import configure_logging
from infra.llm.base import ProviderConfigError, ProviderError, ThreadedLLM

logger = configure_logging()


class OpenAIAssistantsLLM(ThreadedLLM):
    """OpenAI Assistants threads: per-turn instructions go in ``additional_instructions``."""

    def __init__(self, api_key: str, client: Optional[AsyncOpenAI] = None):
        if client is None:
            if not (api_key or "").strip():
                raise ProviderConfigError("OPENAI_API_KEY is not configured")
            client = AsyncOpenAI(api_key=api_key)
        self._client = client

    async def create_thread(self) -> str:
        try:
            thread = await self._client.beta.threads.create()
        except OpenAIError as e:
            raise ProviderError(f"Thread creation failed: {e}") from e
        return thread.id

    async def append_message(self, thread_id: str, content: str) -> None:
        try:
            await self._client.beta.threads.messages.create(thread_id, role="user", content=content)
        except OpenAIError as e:
            raise ProviderError(f"Adding message to thread failed: {e}") from e

    async def stream_run(self, thread_id: str, *, assistant_id: str, instructions: str) -> AsyncIterator[str]:
        try:
            async with self._client.beta.threads.runs.stream(
                thread_id=thread_id,
                assistant_id=assistant_id,
                additional_instructions=instructions,
            ) as stream:
                async for event in stream:
                    if event.event == "thread.message.delta":
                        for part in event.data.delta.content or []:
                            if part.type == "text" and part.text and part.text.value:
                                yield part.text.value
                    elif event.event == "thread.run.failed":
                        last_error = event.data.last_error
                        raise ProviderError(last_error.message if last_error else "Run failed")
                    elif event.event == "error":
                        raise ProviderError(event.data.message or "Stream error")
        except OpenAIError as e:
            logger.error("openai run failed thread_id=%s assistant_id=%s: %s", thread_id, assistant_id, e)
            raise ProviderError(str(e)) from e
