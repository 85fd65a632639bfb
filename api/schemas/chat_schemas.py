"""
Chat, thread, and message schemas. Field aliases follow the camelCase wire contract.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional, Literal


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ChatRequest(_WireModel):
    """
    Body for POST /api/chat. Required fields are checked by the chat service so that a
    missing message or bot is reported as a 400 before any side effect.
    """
    message: Any = None
    thread_id: Optional[str] = Field(default=None, alias="threadId")
    bot_id: Optional[str] = Field(default=None, alias="botId")
    assistant_id: Optional[str] = Field(default=None, alias="assistantId")
    student_id: Optional[str] = Field(default=None, alias="studentId")
    completed_module_ids: Optional[list[Any]] = Field(default=None, alias="completedModuleIds")


class ThreadEvent(_WireModel):
    thread_id: str = Field(alias="threadId")


class TextEvent(_WireModel):
    text: str


class ErrorEvent(_WireModel):
    error: str


class ThreadResponse(_WireModel):
    id: str
    bot_id: str
    session_id: str
    title: Optional[str] = None
    created_at: str


class ThreadListResponse(_WireModel):
    threads: list[ThreadResponse]


class MessageResponse(_WireModel):
    id: int
    thread_id: str
    role: Literal["user", "assistant"]
    content: str
    student_id: Optional[str] = None
    created_at: str


class MessageListResponse(_WireModel):
    messages: list[MessageResponse]


class BotResponse(_WireModel):
    """Public bot descriptor for the student page."""
    id: str
    name: str
    assistant_id: str = Field(alias="assistantId")
    course_map: list[dict] = Field(alias="courseMap")
