"""
Chat routes: the streamed chat turn plus the thread history and message lists a
student's sidebar is built from. Students are anonymous; the ``x-session-id`` header
carries their browser session uuid.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session as DBSession, sessionmaker

from curriculum import parse_curriculum
from curriculum.tree import to_json

from api.bootstrap import get_llm_provider
from api.config import Settings, get_db, get_session_factory, get_settings
from api.schemas.chat_schemas import (
    BotResponse,
    ChatRequest,
    MessageListResponse,
    MessageResponse,
    ThreadListResponse,
    ThreadResponse,
)
from api.services.chat_service import ChatService, require_session_id
from api.utils.common import iso_format
from api.utils.errors import InvalidInput
from infra.llm.base import ThreadedLLM

chat_routes = APIRouter()


@chat_routes.post("/chat")
async def chat(
    req: ChatRequest,
    x_session_id: Optional[str] = Header(default=None),
    db: DBSession = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
    provider: ThreadedLLM = Depends(get_llm_provider),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """
    Run one chat turn and stream it as server-sent events (thread, text..., done|error).
    Input, session and unknown-bot errors are returned as JSON before streaming starts.
    """
    chat_service = ChatService(db, provider=provider, session_factory=session_factory, settings=settings)
    return await chat_service.start_turn(x_session_id, req)


@chat_routes.get("/history", response_model=ThreadListResponse)
async def history(
    bot_id: Optional[str] = Query(default=None, alias="botId"),
    x_session_id: Optional[str] = Header(default=None),
    db: DBSession = Depends(get_db),
) -> ThreadListResponse:
    """List this session's threads with a bot, newest first."""
    session_id = require_session_id(x_session_id)
    if not bot_id:
        raise InvalidInput("Bot ID is required")
    threads = ChatService(db).list_threads(session_id, bot_id)
    return ThreadListResponse(
        threads=[
            ThreadResponse(
                id=t.id,
                bot_id=t.bot_id,
                session_id=t.session_id,
                title=t.title,
                created_at=iso_format(t.created_at),
            )
            for t in threads
        ]
    )


@chat_routes.get("/messages", response_model=MessageListResponse)
async def messages(
    thread_id: Optional[str] = Query(default=None, alias="threadId"),
    student_id: Optional[str] = Query(default=None, alias="studentId"),
    x_session_id: Optional[str] = Header(default=None),
    db: DBSession = Depends(get_db),
) -> MessageListResponse:
    """Messages of one of this session's threads, oldest first."""
    session_id = require_session_id(x_session_id)
    if not thread_id:
        raise InvalidInput("Thread ID is required")
    msgs = ChatService(db).get_messages(thread_id, session_id, student_id)
    return MessageListResponse(
        messages=[
            MessageResponse(
                id=m.id,
                thread_id=m.thread_id,
                role=m.role,
                content=m.content,
                student_id=m.student_id,
                created_at=iso_format(m.created_at),
            )
            for m in msgs
        ]
    )


@chat_routes.get("/bots/{bot_id}", response_model=BotResponse)
async def get_bot(bot_id: str, db: DBSession = Depends(get_db)) -> BotResponse:
    """Public descriptor a student page needs: name, assistant and normalized course map."""
    bot = ChatService(db).get_bot(bot_id)
    return BotResponse(
        id=bot.id,
        name=bot.name,
        assistant_id=bot.assistant_id,
        course_map=to_json(parse_curriculum(bot.course_map)),
    )
