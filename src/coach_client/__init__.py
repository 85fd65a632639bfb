"""
Python client for the course coach chat API: event-stream decoding, the message
transcript, sovereign progress state and the streaming chat client.
"""

from coach_client.client import ChatClient
from coach_client.errors import ChatApiError, ChatClientError, ServerEventError, StreamTimeout
from coach_client.progress_store import ProgressMirror, ProgressStore, storage_key
from coach_client.sse import SSEDecoder, ServerEvent
from coach_client.transcript import Transcript, TranscriptMessage

__all__ = [
    "ChatClient",
    "ChatApiError",
    "ChatClientError",
    "ServerEventError",
    "StreamTimeout",
    "ProgressMirror",
    "ProgressStore",
    "storage_key",
    "SSEDecoder",
    "ServerEvent",
    "Transcript",
    "TranscriptMessage",
]
