"""
Integration test fixtures. Overrides the DB, session factory and LLM provider
dependencies so the API runs against an in-memory DB and a scripted provider.
"""
from typing import AsyncIterator, Optional

import pytest

from infra.llm.base import ProviderError, ThreadedLLM


class FakeThreadedLLM(ThreadedLLM):
    """Scripted provider: replays ``deltas`` for every run and records what it was sent."""

    def __init__(self, deltas=("Hello", ", ", "world!")):
        self.deltas = list(deltas)
        self.threads: dict[str, list[str]] = {}
        self.runs: list[dict] = []
        self.create_error: Optional[Exception] = None
        self.append_error: Optional[Exception] = None
        self.stream_error: Optional[Exception] = None

    async def create_thread(self) -> str:
        if self.create_error:
            raise self.create_error
        thread_id = f"thread_{len(self.threads) + 1}"
        self.threads[thread_id] = []
        return thread_id

    async def append_message(self, thread_id: str, content: str) -> None:
        if self.append_error:
            raise self.append_error
        self.threads.setdefault(thread_id, []).append(content)

    async def stream_run(self, thread_id: str, *, assistant_id: str, instructions: str) -> AsyncIterator[str]:
        self.runs.append({"thread_id": thread_id, "assistant_id": assistant_id, "instructions": instructions})
        for delta in self.deltas:
            yield delta
        if self.stream_error:
            raise self.stream_error


@pytest.fixture
def fake_llm():
    return FakeThreadedLLM()


@pytest.fixture
def override_get_db(session_factory):
    """get_db replacement bound to the in-memory engine."""

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    return _get_db


@pytest.fixture
def api_client(override_get_db, session_factory, fake_llm):
    """FastAPI TestClient with in-memory DB and fake provider overrides."""
    from fastapi.testclient import TestClient
    from api.api import app
    from api.bootstrap import get_llm_provider
    from api.config import get_db, get_session_factory
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_llm_provider] = lambda: fake_llm
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def provider_error():
    return ProviderError("upstream exploded")
