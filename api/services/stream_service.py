"""
App-layer streaming: run one chat turn against the LLM provider and relay it to the
client as a text/event-stream.

Wire format (UTF-8, events separated by a blank line):

    event: thread   data: {"threadId": "..."}   exactly once, first
    event: text     data: {"text": "..."}       zero or more, in order
    event: done     data: {}                    terminal
    event: error    data: {"error": "..."}      terminal

The provider is consumed by a background task that feeds a queue; the response
generator only relays the queue. A client that disconnects stops the relay but not the
task, so the reply is still read to the end and persisted. Upstream runs are never
cancelled from here.
"""

import asyncio
import json
from typing import Any, Callable

from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from api.models.models import Message
from api.schemas.chat_schemas import ErrorEvent, TextEvent, ThreadEvent
from api.services.chat_turn import ChatTurn, TurnState
from api.utils.logger import configure_logging, log_request
from infra.llm.base import ThreadedLLM

logger = configure_logging()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# Strong references to in-flight turn tasks; the event loop only keeps weak ones.
_turn_tasks: set[asyncio.Task] = set()


def format_sse(event: str, data: BaseModel | dict[str, Any]) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True)
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


def save_message(
    db: DBSession,
    thread_id: str,
    role: str,
    content: str,
    student_id: str | None = None,
) -> Message:
    """Append one message row and commit."""
    msg = Message(thread_id=thread_id, role=role, content=content, student_id=student_id)
    db.add(msg)
    db.commit()
    db.refresh(msg)
    return msg


async def _produce(
    turn: ChatTurn,
    provider: ThreadedLLM,
    session_factory: Callable[[], DBSession],
    instructions: str,
    queue: asyncio.Queue,
) -> None:
    chunks: list[str] = []
    try:
        async for delta in provider.stream_run(
            turn.thread_id, assistant_id=turn.assistant_id, instructions=instructions
        ):
            if not delta:
                continue
            chunks.append(delta)
            await queue.put((format_sse("text", TextEvent(text=delta)), False))
    except Exception as e:
        logger.exception("provider stream failed thread_id=%s: %s", turn.thread_id, e)
        turn.fail()
        await queue.put((format_sse("error", ErrorEvent(error=str(e) or "Stream failed")), True))
        return

    turn.assistant_text = "".join(chunks)
    turn.advance(TurnState.PERSISTING)
    if turn.assistant_text.strip():
        try:
            with log_request(logger, "persist assistant message"), session_factory() as db:
                save_message(db, turn.thread_id, "assistant", turn.assistant_text, turn.student_id)
        except SQLAlchemyError as e:
            logger.exception("assistant message not saved thread_id=%s: %s", turn.thread_id, e)
            turn.fail()
            await queue.put((format_sse("error", ErrorEvent(error="Failed to save assistant response")), True))
            return
    else:
        logger.warning("empty assistant response, nothing persisted thread_id=%s", turn.thread_id)

    turn.advance(TurnState.DONE)
    logger.info("turn done thread_id=%s chars=%s", turn.thread_id, len(turn.assistant_text))
    await queue.put((format_sse("done", {}), True))


async def _run_turn(
    turn: ChatTurn,
    provider: ThreadedLLM,
    session_factory: Callable[[], DBSession],
    instructions: str,
    queue: asyncio.Queue,
) -> None:
    try:
        await _produce(turn, provider, session_factory, instructions, queue)
    except Exception:
        # Whatever went wrong, the relay must still receive a terminal event.
        logger.exception("turn aborted thread_id=%s state=%s", turn.thread_id, turn.state.value)
        turn.fail()
        await queue.put((format_sse("error", ErrorEvent(error="Internal error")), True))


def stream_turn(
    turn: ChatTurn,
    provider: ThreadedLLM,
    session_factory: Callable[[], DBSession],
    instructions: str,
) -> StreamingResponse:
    """
    Relay a turn already in the Streaming state: its thread exists and the user message was appended.

    The run starts here, before the response body is first read.
    """
    queue: asyncio.Queue = asyncio.Queue()
    task = asyncio.create_task(_run_turn(turn, provider, session_factory, instructions, queue))
    _turn_tasks.add(task)
    task.add_done_callback(_turn_tasks.discard)

    async def event_stream():
        yield format_sse("thread", ThreadEvent(thread_id=turn.thread_id))
        while True:
            frame, terminal = await queue.get()
            yield frame
            if terminal:
                break

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)
