"""
API schemas package. Import from submodules or from this package.

Example:
    from api.schemas import ChatRequest, ProgressResponse
    from api.schemas.chat_schemas import ChatRequest
"""

from api.schemas.chat_schemas import (
    ChatRequest,
    ThreadEvent,
    TextEvent,
    ErrorEvent,
    ThreadResponse,
    ThreadListResponse,
    MessageResponse,
    MessageListResponse,
    BotResponse,
)
from api.schemas.progress_schemas import (
    ProgressResponse,
    SaveProgressRequest,
    SaveProgressResponse,
)

__all__ = [
    # chat
    "ChatRequest",
    "ThreadEvent",
    "TextEvent",
    "ErrorEvent",
    "ThreadResponse",
    "ThreadListResponse",
    "MessageResponse",
    "MessageListResponse",
    "BotResponse",
    # progress
    "ProgressResponse",
    "SaveProgressRequest",
    "SaveProgressResponse",
]
