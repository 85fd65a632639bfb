"""
Incremental decoder for the chat event stream.

Frames are ``event: <name>`` / ``data: <json>`` lines terminated by a blank line.
Network chunks may split a frame (or a UTF-8 sequence) anywhere, so bytes are
buffered until a full frame is available.
"""

from __future__ import annotations

import codecs
import json
from dataclasses import dataclass
from typing import Any

DEFAULT_EVENT = "message"


@dataclass(frozen=True)
class ServerEvent:
    event: str
    data: Any

    def field(self, key: str, default: Any = None) -> Any:
        if isinstance(self.data, dict):
            return self.data.get(key, default)
        return default


def _parse_frame(frame: str) -> ServerEvent | None:
    event = None
    data_lines: list[str] = []
    for line in frame.split("\n"):
        if not line or line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event = value
        elif name == "data":
            data_lines.append(value)
    if event is None and not data_lines:
        return None

    raw = "\n".join(data_lines)
    try:
        data = json.loads(raw) if raw else {}
    except ValueError:
        data = raw
    return ServerEvent(event=event or DEFAULT_EVENT, data=data)


class SSEDecoder:
    def __init__(self):
        self._text = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""

    def feed(self, chunk: bytes | str) -> list[ServerEvent]:
        """Add a chunk and return every event it completes, in order."""
        if isinstance(chunk, bytes):
            chunk = self._text.decode(chunk)
        self._buffer = (self._buffer + chunk).replace("\r\n", "\n")

        events: list[ServerEvent] = []
        while "\n\n" in self._buffer:
            frame, self._buffer = self._buffer.split("\n\n", 1)
            event = _parse_frame(frame)
            if event is not None:
                events.append(event)
        return events

    @property
    def pending(self) -> str:
        """Buffered text of an incomplete frame."""
        return self._buffer
