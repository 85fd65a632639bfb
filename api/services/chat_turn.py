"""
Lifecycle of one chat turn.

    Idle -> AwaitingThread -> Streaming -> Persisting -> Done
      \________________________\_____________\__________-> Error

A turn on an existing thread goes straight from Idle to Streaming. Done and Error are
terminal; any other move is a programming error and raises.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from api.utils.logger import configure_logging

logger = configure_logging()


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_THREAD = "awaiting_thread"
    STREAMING = "streaming"
    PERSISTING = "persisting"
    DONE = "done"
    ERROR = "error"


_TRANSITIONS: dict[TurnState, frozenset[TurnState]] = {
    TurnState.IDLE: frozenset({TurnState.AWAITING_THREAD, TurnState.STREAMING, TurnState.ERROR}),
    TurnState.AWAITING_THREAD: frozenset({TurnState.STREAMING, TurnState.ERROR}),
    TurnState.STREAMING: frozenset({TurnState.PERSISTING, TurnState.ERROR}),
    TurnState.PERSISTING: frozenset({TurnState.DONE, TurnState.ERROR}),
    TurnState.DONE: frozenset(),
    TurnState.ERROR: frozenset(),
}


class IllegalTransition(RuntimeError):
    pass


@dataclass
class ChatTurn:
    """One user message and the assistant reply it produces, within a thread."""
    session_id: str
    bot_id: str
    assistant_id: str
    user_text: str
    thread_id: Optional[str] = None
    student_id: Optional[str] = None
    completed_ids: list[Any] = field(default_factory=list)
    assistant_text: str = ""
    state: TurnState = TurnState.IDLE

    @property
    def finished(self) -> bool:
        return self.state in (TurnState.DONE, TurnState.ERROR)

    def advance(self, new_state: TurnState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise IllegalTransition(f"turn cannot move from {self.state.value} to {new_state.value}")
        logger.debug("turn state %s -> %s thread_id=%s", self.state.value, new_state.value, self.thread_id)
        self.state = new_state

    def fail(self) -> None:
        """Move to Error from wherever the turn is; a finished turn stays as it is."""
        if not self.finished:
            self.advance(TurnState.ERROR)
