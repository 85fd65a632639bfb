"""Streaming relay tests: the turn runs to completion even when the client goes away."""
import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from api.models.models import Message, Thread
from api.services import stream_service
from api.services.chat_turn import ChatTurn, TurnState
from coach_client.sse import SSEDecoder


def streaming_turn(thread_id="thread_1"):
    turn = ChatTurn(session_id="s", bot_id="bot-123", assistant_id="asst_123", user_text="q", thread_id=thread_id)
    turn.advance(TurnState.STREAMING)
    return turn


@pytest.fixture
def thread_row(db_session, test_bot):
    db_session.add(Thread(id="thread_1", bot_id=test_bot.id, session_id="s", title="q"))
    db_session.commit()
    return "thread_1"


@pytest.mark.integration
class TestStreamTurn:
    @pytest.mark.asyncio
    async def test_disconnect_does_not_stop_persistence(self, session_factory, db_session, fake_llm, thread_row):
        turn = streaming_turn()
        response = stream_service.stream_turn(turn, fake_llm, session_factory, "instructions")
        body = response.body_iterator

        first = await body.__anext__()
        second = await body.__anext__()
        await body.aclose()  # client went away after the first text event

        await asyncio.gather(*list(stream_service._turn_tasks))
        events = SSEDecoder().feed(first + second)
        assert [e.event for e in events] == ["thread", "text"]
        assert turn.state is TurnState.DONE
        saved = db_session.query(Message).filter(Message.thread_id == thread_row).one()
        assert saved.content == "Hello, world!"

    @pytest.mark.asyncio
    async def test_disconnect_after_thread_event_still_runs_turn(self, session_factory, db_session, fake_llm, thread_row):
        turn = streaming_turn()
        response = stream_service.stream_turn(turn, fake_llm, session_factory, "instructions")
        body = response.body_iterator

        first = await body.__anext__()
        await body.aclose()  # client went away before any text arrived

        await asyncio.gather(*list(stream_service._turn_tasks))
        assert [e.event for e in SSEDecoder().feed(first)] == ["thread"]
        assert turn.state is TurnState.DONE
        assert len(fake_llm.runs) == 1
        saved = db_session.query(Message).filter(Message.thread_id == thread_row).one()
        assert saved.content == "Hello, world!"

    @pytest.mark.asyncio
    async def test_persistence_failure_is_error_event(self, fake_llm, thread_row):
        def broken_factory():
            raise OperationalError("INSERT", {}, Exception("disk full"))

        turn = streaming_turn()
        response = stream_service.stream_turn(turn, fake_llm, broken_factory, "instructions")
        frames = [frame async for frame in response.body_iterator]
        events = SSEDecoder().feed("".join(frames))
        assert [e.event for e in events] == ["thread", "text", "text", "text", "error"]
        assert events[-1].data == {"error": "Failed to save assistant response"}
        assert turn.state is TurnState.ERROR
