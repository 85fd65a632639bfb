"""
Streaming chat client for a course bot.

One ``send`` is one turn: the user message and an empty assistant placeholder are
inserted optimistically, ``POST /api/chat`` is streamed, and the placeholder is filled
by id as ``text`` events arrive. Two timers run while the stream is open:

- a hint timer that puts a "still working" note in the placeholder when no text has
  arrived yet (the stream keeps going);
- an inactivity watchdog that abandons the read when no bytes arrived within the
  window, raising StreamTimeout.

On any failure the placeholder is replaced by an error message before the exception
is re-raised.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional

import httpx

from coach_client.errors import ChatApiError, ChatClientError, ServerEventError, StreamTimeout
from coach_client.progress_store import ProgressStore
from coach_client.sse import SSEDecoder
from coach_client.transcript import Transcript, TranscriptMessage

logger = logging.getLogger("course_coach.client")

INACTIVITY_TIMEOUT = 60.0
HINT_AFTER = 10.0
REQUEST_TIMEOUT = 30.0


def _raise_for_response(response: httpx.Response) -> None:
    if response.status_code < 400:
        return
    try:
        payload = response.json()
    except ValueError:
        payload = None
    raise ChatApiError.from_response(response.status_code, response.text, response.headers, payload)


class ChatClient:
    def __init__(
        self,
        base_url: str,
        bot_id: str,
        assistant_id: str,
        *,
        session_id: Optional[str] = None,
        student_id: Optional[str] = None,
        thread_id: Optional[str] = None,
        progress: Optional[ProgressStore] = None,
        transcript: Optional[Transcript] = None,
        inactivity_timeout: float = INACTIVITY_TIMEOUT,
        hint_after: float = HINT_AFTER,
        request_timeout: float = REQUEST_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.bot_id = bot_id
        self.assistant_id = assistant_id
        self.session_id = session_id or str(uuid.uuid4())
        self.student_id = student_id
        self.thread_id = thread_id
        self.progress = progress
        self.transcript = transcript or Transcript()
        self.inactivity_timeout = inactivity_timeout
        self.hint_after = hint_after
        self.request_timeout = request_timeout
        self._managed_client = client is None
        self.client = client or httpx.AsyncClient(timeout=request_timeout)

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._managed_client:
            await self.client.aclose()

    @property
    def _headers(self) -> Dict[str, str]:
        return {"x-session-id": self.session_id}

    async def _request(self, method: str, path: str, *, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = await self.client.request(
            method, f"{self.base_url}{path}", params=params, headers=self._headers
        )
        _raise_for_response(response)
        return response.json()

    # ---- History ----

    async def list_threads(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/api/history", params={"botId": self.bot_id})
        return data.get("threads", [])

    async def load_thread(self, thread_id: str) -> List[TranscriptMessage]:
        """Make ``thread_id`` the current thread and load its messages into the transcript."""
        params = {"threadId": thread_id}
        if self.student_id:
            params["studentId"] = self.student_id
        data = await self._request("GET", "/api/messages", params=params)
        messages = [
            TranscriptMessage(
                id=str(m["id"]),
                role=m["role"],
                content=m["content"],
                thread_id=m["thread_id"],
                created_at=m["created_at"],
            )
            for m in data.get("messages", [])
        ]
        self.thread_id = thread_id
        self.transcript.load(messages)
        return messages

    # ---- Chat turn ----

    def _payload(self, text: str) -> Dict[str, Any]:
        return {
            "message": text,
            "threadId": self.thread_id,
            "botId": self.bot_id,
            "assistantId": self.assistant_id,
            "studentId": self.student_id,
            "completedModuleIds": self.progress.ids if self.progress is not None else [],
        }

    async def _hint_later(self, placeholder_id: str) -> None:
        await asyncio.sleep(self.hint_after)
        placeholder = self.transcript.get(placeholder_id)
        if placeholder is not None and not placeholder.content:
            self.transcript.show_hint(placeholder_id)

    async def _read_turn(self, text: str, placeholder_id: str, hint: asyncio.Task) -> str:
        decoder = SSEDecoder()
        content = ""
        async with self.client.stream(
            "POST",
            f"{self.base_url}/api/chat",
            json=self._payload(text),
            headers={**self._headers, "Accept": "text/event-stream"},
            # inactivity is policed by the watchdog below, not by httpx
            timeout=httpx.Timeout(self.request_timeout, read=None),
        ) as response:
            if response.status_code >= 400:
                await response.aread()
                _raise_for_response(response)

            chunks = response.aiter_bytes()
            while True:
                try:
                    chunk = await asyncio.wait_for(chunks.__anext__(), timeout=self.inactivity_timeout)
                except StopAsyncIteration:
                    break
                except asyncio.TimeoutError:
                    logger.warning("stream inactive for %ss, abandoning read", self.inactivity_timeout)
                    raise StreamTimeout(self.inactivity_timeout)

                for event in decoder.feed(chunk):
                    if event.event == "thread":
                        if not self.thread_id:
                            self.thread_id = event.field("threadId")
                    elif event.event == "text":
                        content += str(event.field("text", ""))
                        hint.cancel()
                        self.transcript.update(placeholder_id, content)
                    elif event.event == "done":
                        return content
                    elif event.event == "error":
                        raise ServerEventError(event.field("error") or "Stream error")
        raise ChatClientError("Stream ended without a terminal event")

    async def send(self, text: str) -> str:
        """Run one chat turn and return the assistant's full reply."""
        text = (text or "").strip()
        if not text:
            raise ChatClientError("Message is required")

        placeholder_id = self.transcript.begin_turn(text, self.thread_id)
        hint = asyncio.create_task(self._hint_later(placeholder_id))
        try:
            content = await self._read_turn(text, placeholder_id, hint)
        except httpx.TimeoutException as e:
            error = StreamTimeout(self.request_timeout)
            self.transcript.fail_turn(placeholder_id, error)
            raise error from e
        except httpx.HTTPError as e:
            error = ChatClientError(str(e) or "Failed to send message")
            self.transcript.fail_turn(placeholder_id, error)
            raise error from e
        except ChatClientError as e:
            self.transcript.fail_turn(placeholder_id, e)
            raise
        finally:
            hint.cancel()

        if not content:
            # nothing was stored server-side either; don't leave an empty bubble
            self.transcript.remove(placeholder_id)
        return content
