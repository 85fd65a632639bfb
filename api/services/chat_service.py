"""
Chat service: bots, threads and messages for anonymous students, and the entry point
of a streamed chat turn.
"""

from datetime import datetime
from typing import Callable, Optional

from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from curriculum import parse_curriculum, resolve

from api.config import Settings
from api.models.models import Bot, Message, Thread
from api.prompt_builders.chat import build_turn_instructions
from api.schemas.chat_schemas import ChatRequest
from api.services.chat_turn import ChatTurn, TurnState
from api.services.stream_service import save_message, stream_turn
from api.utils.common import is_valid_session_id, preview
from api.utils.errors import InvalidInput, InvalidSession, NotFound, PersistenceFailure, ProviderFailure
from api.utils.logger import configure_logging
from infra.llm.base import ProviderError, ThreadedLLM

logger = configure_logging()

THREAD_TITLE_LENGTH = 50
MAX_LOGGED_IDS = 50


def require_session_id(session_id: Optional[str]) -> str:
    if not is_valid_session_id(session_id):
        raise InvalidSession("Invalid or missing session ID")
    return session_id


class ChatService:
    """Service for a bot's threads and messages, and for streaming chat turns."""

    def __init__(
        self,
        db: DBSession,
        provider: Optional[ThreadedLLM] = None,
        session_factory: Optional[Callable[[], DBSession]] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.provider = provider
        self.session_factory = session_factory
        self.settings = settings

    # ---- Lookups ----

    def get_bot(self, bot_id: str) -> Bot:
        bot = self.db.query(Bot).filter(Bot.id == bot_id).first()
        if bot is None:
            raise NotFound("Bot not found")
        return bot

    def list_threads(self, session_id: str, bot_id: str) -> list[Thread]:
        """Threads this session opened with the bot, newest first."""
        return (
            self.db.query(Thread)
            .filter(Thread.session_id == session_id, Thread.bot_id == bot_id)
            .order_by(Thread.created_at.desc())
            .all()
        )

    def get_messages(self, thread_id: str, session_id: str, student_id: Optional[str] = None) -> list[Message]:
        """Messages of a thread owned by the session, oldest first; optionally one student's only."""
        thread = (
            self.db.query(Thread)
            .filter(Thread.id == thread_id, Thread.session_id == session_id)
            .first()
        )
        if thread is None:
            raise NotFound("Thread not found or access denied")
        query = self.db.query(Message).filter(Message.thread_id == thread_id)
        if student_id:
            query = query.filter(Message.student_id == student_id)
        return query.order_by(Message.created_at.asc(), Message.id.asc()).all()

    # ---- Chat turn ----

    def _validate(self, req: ChatRequest) -> None:
        if not isinstance(req.message, str) or not req.message.strip():
            raise InvalidInput("Message is required")
        if not req.bot_id or not req.assistant_id:
            raise InvalidInput("Bot ID and Assistant ID are required")

    async def _create_thread(self, turn: ChatTurn) -> None:
        """Create the provider thread and record it; either failure ends the turn."""
        turn.advance(TurnState.AWAITING_THREAD)
        try:
            thread_id = await self.provider.create_thread()
        except ProviderError as e:
            turn.fail()
            logger.error("thread creation failed bot_id=%s: %s", turn.bot_id, e)
            raise ProviderFailure("Failed to create thread") from e

        try:
            self.db.add(
                Thread(
                    id=thread_id,
                    bot_id=turn.bot_id,
                    session_id=turn.session_id,
                    title=turn.user_text[:THREAD_TITLE_LENGTH],
                    created_at=datetime.utcnow(),
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            turn.fail()
            logger.error("thread record failed thread_id=%s: %s", thread_id, e)
            raise PersistenceFailure("Database error") from e
        turn.thread_id = thread_id
        logger.info("thread created thread_id=%s bot_id=%s", thread_id, turn.bot_id)

    def _discard_thread(self, thread_id: str) -> None:
        """Remove a thread this turn opened but never got to the assistant, with its messages."""
        try:
            thread = self.db.get(Thread, thread_id)
            if thread is not None:
                self.db.delete(thread)
                self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("thread cleanup failed thread_id=%s: %s", thread_id, e)

    def _save_user_message(self, turn: ChatTurn) -> None:
        # Best effort: the LLM call is the primary contract of the turn.
        try:
            save_message(self.db, turn.thread_id, "user", turn.user_text, turn.student_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("user message not saved thread_id=%s: %s", turn.thread_id, e)

    def _log_progress_match(self, bot: Bot, turn: ChatTurn) -> None:
        resolved = resolve(parse_curriculum(bot.course_map), turn.completed_ids)
        if resolved.unmatched_ids:
            logger.warning(
                "unmatched completed ids count=%s ids=%s",
                len(resolved.unmatched_ids),
                resolved.unmatched_ids[:MAX_LOGGED_IDS],
            )
        logger.info("progress ids received=%s matched=%s", len(turn.completed_ids), len(resolved.titles))

    async def start_turn(self, session_id: Optional[str], req: ChatRequest) -> StreamingResponse:
        """
        Validate, make sure the turn has a thread, record and submit the user message,
        then hand off to the stream. Everything raised here happens before any event is
        sent and becomes an HTTP error.
        """
        session_id = require_session_id(session_id)
        self._validate(req)
        bot = self.get_bot(req.bot_id)

        turn = ChatTurn(
            session_id=session_id,
            bot_id=bot.id,
            assistant_id=req.assistant_id,
            user_text=req.message,
            thread_id=req.thread_id or None,
            student_id=req.student_id,
            completed_ids=list(req.completed_module_ids or []),
        )
        logger.info(
            "chat turn bot_id=%s thread_id=%s message=%r completed=%s",
            bot.id, turn.thread_id, preview(turn.user_text), len(turn.completed_ids),
        )

        opened = turn.thread_id is None
        if opened:
            await self._create_thread(turn)
        turn.advance(TurnState.STREAMING)

        self._save_user_message(turn)
        try:
            await self.provider.append_message(turn.thread_id, turn.user_text)
        except ProviderError as e:
            turn.fail()
            logger.error("append message failed thread_id=%s: %s", turn.thread_id, e)
            if opened:
                self._discard_thread(turn.thread_id)
            raise ProviderFailure("Failed to send message to assistant") from e

        self._log_progress_match(bot, turn)
        instructions = build_turn_instructions(
            system_prompt=bot.system_prompt,
            course_map=bot.course_map,
            completed_ids=turn.completed_ids,
            default_system_prompt=self.settings.default_system_prompt if self.settings else None,
        )
        return stream_turn(turn, self.provider, self.session_factory, instructions)
