from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


class ChatClientError(Exception):
    """Base class for failures observed by the chat client."""


@dataclass
class ChatApiError(ChatClientError):
    """Non-2xx response, raised before any stream event is read."""
    status: int
    message: str
    request_id: str

    def __str__(self) -> str:
        return f"[{self.status}] {self.message} (request_id={self.request_id})"

    @classmethod
    def from_response(cls, status: int, text: str, headers: Mapping[str, str], payload: Any) -> "ChatApiError":
        message = None
        if isinstance(payload, dict):
            message = payload.get("error") or payload.get("detail")
        return cls(
            status=status,
            message=str(message or text or "Request failed"),
            request_id=headers.get("x-request-id", "unknown"),
        )


class StreamTimeout(ChatClientError):
    """No stream data arrived within the inactivity window."""

    def __init__(self, seconds: float):
        super().__init__(f"Response timeout: no data for {seconds:g} seconds")
        self.seconds = seconds


class ServerEventError(ChatClientError):
    """The server ended the turn with a terminal ``error`` event."""
