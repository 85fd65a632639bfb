"""Unit tests for the thread-based LLM adapters (Ollama, OpenAI Assistants), SDKs mocked."""
from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from infra.llm.base import ProviderConfigError, ProviderError
from infra.llm.ollama import OllamaThreadLLM
from infra.llm.openai_assistants import OpenAIAssistantsLLM


def chat_chunks(*texts, error: Exception | None = None):
    """astream replacement: yields AIMessageChunk-like objects, then optionally raises."""

    async def astream(messages):
        astream.calls.append(list(messages))
        for t in texts:
            yield SimpleNamespace(content=t)
        if error:
            raise error

    astream.calls = []
    return astream


async def collect(aiter):
    return [x async for x in aiter]


@pytest.mark.unit
class TestOllamaThreadLLM:
    @pytest.mark.asyncio
    async def test_run_sends_instructions_then_history(self):
        mock_chat = MagicMock()
        mock_chat.astream = chat_chunks("Hel", "", "lo")
        with patch("infra.llm.ollama.ChatOllama", return_value=mock_chat):
            llm = OllamaThreadLLM(model="test-model")
            thread_id = await llm.create_thread()
            await llm.append_message(thread_id, "Hi there")
            deltas = await collect(llm.stream_run(thread_id, assistant_id="ignored", instructions="Be brief."))

        assert deltas == ["Hel", "lo"]
        sent = mock_chat.astream.calls[0]
        assert sent == [SystemMessage(content="Be brief."), HumanMessage(content="Hi there")]
        assert llm._threads[thread_id][-1] == AIMessage(content="Hello")

    @pytest.mark.asyncio
    async def test_threads_are_independent(self):
        mock_chat = MagicMock()
        mock_chat.astream = chat_chunks("ok")
        with patch("infra.llm.ollama.ChatOllama", return_value=mock_chat):
            llm = OllamaThreadLLM(model="m")
            t1 = await llm.create_thread()
            t2 = await llm.create_thread()
            await llm.append_message(t1, "one")
            await llm.append_message(t2, "two")
            await collect(llm.stream_run(t2, assistant_id="a", instructions="sys"))

        assert t1 != t2
        assert mock_chat.astream.calls[0][1:] == [HumanMessage(content="two")]

    @pytest.mark.asyncio
    async def test_failure_is_provider_error(self):
        mock_chat = MagicMock()
        mock_chat.astream = chat_chunks("partial", error=ConnectionError("refused"))
        with patch("infra.llm.ollama.ChatOllama", return_value=mock_chat):
            llm = OllamaThreadLLM(model="m")
            thread_id = await llm.create_thread()
            with pytest.raises(ProviderError):
                await collect(llm.stream_run(thread_id, assistant_id="a", instructions="sys"))

    @pytest.mark.asyncio
    async def test_least_recently_used_thread_is_evicted(self):
        with patch("infra.llm.ollama.ChatOllama", return_value=MagicMock()):
            llm = OllamaThreadLLM(model="m", max_threads=2)
            t1 = await llm.create_thread()
            t2 = await llm.create_thread()
            await llm.append_message(t1, "still here")
            t3 = await llm.create_thread()

        assert list(llm._threads) == [t1, t3]
        assert t2 not in llm._threads
        assert llm._threads[t1] == [HumanMessage(content="still here")]


class FakeRunStream:
    def __init__(self, events):
        self.events = events

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for event in self.events:
            yield event


def delta_event(*texts):
    parts = [SimpleNamespace(type="text", text=SimpleNamespace(value=t)) for t in texts]
    return SimpleNamespace(event="thread.message.delta", data=SimpleNamespace(delta=SimpleNamespace(content=parts)))


def openai_client(events):
    client = MagicMock()
    client.beta.threads.create = AsyncMock(return_value=SimpleNamespace(id="thread_abc"))
    client.beta.threads.messages.create = AsyncMock()
    client.beta.threads.runs.stream = MagicMock(return_value=FakeRunStream(events))
    return client


@pytest.mark.unit
class TestOpenAIAssistantsLLM:
    def test_missing_key_fails_at_construction(self):
        with pytest.raises(ProviderConfigError):
            OpenAIAssistantsLLM(api_key="  ")

    @pytest.mark.asyncio
    async def test_thread_and_message(self):
        client = openai_client([])
        llm = OpenAIAssistantsLLM(api_key="", client=client)
        assert await llm.create_thread() == "thread_abc"
        await llm.append_message("thread_abc", "Hello")
        client.beta.threads.messages.create.assert_awaited_once_with("thread_abc", role="user", content="Hello")

    @pytest.mark.asyncio
    async def test_stream_yields_text_deltas(self):
        events = [
            SimpleNamespace(event="thread.run.created", data=None),
            delta_event("Hel"),
            delta_event("lo", ""),
            SimpleNamespace(event="thread.run.completed", data=None),
        ]
        client = openai_client(events)
        llm = OpenAIAssistantsLLM(api_key="", client=client)
        deltas = await collect(llm.stream_run("thread_abc", assistant_id="asst_1", instructions="progress"))

        assert deltas == ["Hel", "lo"]
        client.beta.threads.runs.stream.assert_called_once_with(
            thread_id="thread_abc", assistant_id="asst_1", additional_instructions="progress"
        )

    @pytest.mark.asyncio
    async def test_failed_run_is_provider_error(self):
        failed = SimpleNamespace(
            event="thread.run.failed", data=SimpleNamespace(last_error=SimpleNamespace(message="rate limited"))
        )
        llm = OpenAIAssistantsLLM(api_key="", client=openai_client([delta_event("a"), failed]))
        with pytest.raises(ProviderError, match="rate limited"):
            await collect(llm.stream_run("t", assistant_id="a", instructions="i"))


@pytest.mark.unit
class TestBuildLLMProvider:
    def test_unknown_provider(self):
        from api.bootstrap import build_llm_provider
        from api.config import Settings

        with pytest.raises(ProviderConfigError):
            build_llm_provider(Settings(llm_provider="nope"))

    def test_openai_without_key(self):
        from api.bootstrap import build_llm_provider
        from api.config import Settings

        with pytest.raises(ProviderConfigError):
            build_llm_provider(Settings(llm_provider="openai", openai_api_key=""))

    def test_ollama(self):
        from api.bootstrap import build_llm_provider
        from api.config import Settings

        with patch("infra.llm.ollama.ChatOllama"):
            llm = build_llm_provider(Settings(llm_provider="Ollama", ollama_model="qwen:latest"))
        assert isinstance(llm, OllamaThreadLLM)
        assert llm.model == "qwen:latest"

    def test_singleton_is_reused(self):
        from api.bootstrap import get_llm_provider, reset_llm_provider

        reset_llm_provider()
        try:
            with patch("infra.llm.ollama.ChatOllama"):
                assert get_llm_provider() is get_llm_provider()
        finally:
            reset_llm_provider()
