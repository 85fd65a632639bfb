"""
Client-side message list.

Messages are addressed by id, never by position: stream chunks can arrive faster than
a view re-renders, and an index captured earlier may point at another message by then.
Every mutation builds a new list and replaces the old one in a single step.
"""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from coach_client.errors import StreamTimeout

PROCESSING_HINT = (
    "⏳ Processing your question... This may take a moment with large documents "
    "(DOC/DOCX files can take longer to process)."
)
TIMEOUT_TEXT = (
    "⏱️ **Request Timeout**\n\n"
    "The AI is taking longer than expected to respond. This can happen with:\n"
    "- Large documents (DOC/DOCX files)\n"
    "- Complex questions requiring deep analysis\n"
    "- High server load\n\n"
    "**Please try again** - the request may complete on a retry."
)
ERROR_TEXT = "❌ **Error**\n\n{message}"
GENERIC_ERROR = "Sorry, something went wrong. Please try again."


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class TranscriptMessage:
    id: str
    role: str
    content: str
    thread_id: str = ""
    created_at: str = field(default_factory=_now)


def error_text(error: BaseException) -> str:
    if isinstance(error, StreamTimeout):
        return TIMEOUT_TEXT
    return ERROR_TEXT.format(message=str(error) or GENERIC_ERROR)


class Transcript:
    def __init__(
        self,
        messages: Iterable[TranscriptMessage] = (),
        on_change: Optional[Callable[[list[TranscriptMessage]], None]] = None,
    ):
        self._messages: list[TranscriptMessage] = list(messages)
        self._on_change = on_change

    @property
    def messages(self) -> list[TranscriptMessage]:
        return list(self._messages)

    def get(self, message_id: str) -> Optional[TranscriptMessage]:
        return next((m for m in self._messages if m.id == message_id), None)

    def _commit(self, messages: list[TranscriptMessage]) -> None:
        self._messages = messages
        if self._on_change is not None:
            self._on_change(list(messages))

    def load(self, messages: Iterable[TranscriptMessage]) -> None:
        """Replace the whole transcript, e.g. with a thread's stored history."""
        self._commit(list(messages))

    def begin_turn(self, user_text: str, thread_id: Optional[str] = None) -> str:
        """
        Insert the user's message and an empty assistant placeholder together, so no
        observer ever sees one without the other. Returns the placeholder id.
        """
        user = TranscriptMessage(id=_new_id(), role="user", content=user_text, thread_id=thread_id or "")
        placeholder = TranscriptMessage(id=_new_id(), role="assistant", content="", thread_id=thread_id or "")
        self._commit([*self._messages, user, placeholder])
        return placeholder.id

    def update(self, message_id: str, content: str) -> bool:
        """Set a message's content. Returns False when no message has that id."""
        found = False
        updated = []
        for m in self._messages:
            if m.id == message_id:
                m = dataclasses.replace(m, content=content)
                found = True
            updated.append(m)
        if found:
            self._commit(updated)
        return found

    def show_hint(self, message_id: str, hint: str = PROCESSING_HINT) -> bool:
        return self.update(message_id, hint)

    def remove(self, message_id: str) -> bool:
        kept = [m for m in self._messages if m.id != message_id]
        if len(kept) == len(self._messages):
            return False
        self._commit(kept)
        return True

    def fail_turn(self, placeholder_id: str, error: BaseException) -> TranscriptMessage:
        """Swap the placeholder for an error message (timeout wording for StreamTimeout)."""
        placeholder = self.get(placeholder_id)
        message = TranscriptMessage(
            id=_new_id(),
            role="assistant",
            content=error_text(error),
            thread_id=placeholder.thread_id if placeholder else "",
        )
        self._commit([*(m for m in self._messages if m.id != placeholder_id), message])
        return message
