"""
Completed-item state on the student's side.

``ProgressStore`` is the single owner of a student's completed-id set for one bot. It
reads local storage once, at construction, and from then on is the only writer:
subscribers receive copies of the new set after each change and never write back.
``ProgressMirror`` is such a subscriber; it copies the set to the server so progress
survives a change of device.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

import httpx

from curriculum import all_ids
from coach_client.errors import ChatApiError

logger = logging.getLogger("course_coach.client")

Subscriber = Callable[[list[str]], None]


def storage_key(bot_id: str, student_id: Optional[str] = None) -> str:
    return f"progress_{bot_id}_{student_id or 'guest'}"


class ProgressStore:
    def __init__(
        self,
        bot_id: str,
        course_map: Any,
        *,
        student_id: Optional[str] = None,
        storage_dir: str | Path = ".",
        initial_ids: Optional[Iterable[str]] = None,
    ):
        self.bot_id = bot_id
        self.student_id = student_id
        self.path = Path(storage_dir) / f"{storage_key(bot_id, student_id)}.json"
        self._valid_ids = all_ids(course_map)
        self._subscribers: list[Subscriber] = []
        self._ids: tuple[str, ...] = tuple(self._load(initial_ids))

    def _prune(self, ids: Iterable[Any]) -> list[str]:
        return [str(i) for i in ids if str(i) in self._valid_ids]

    def _load(self, initial_ids: Optional[Iterable[str]]) -> list[str]:
        # Local storage wins over the initial value; it holds the student's latest choices.
        if self.path.exists():
            try:
                saved = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning("unreadable progress file path=%s: %s", self.path, e)
            else:
                saved = saved if isinstance(saved, list) else []
                ids = self._prune(saved)
                if len(ids) != len(saved):
                    logger.info("dropped stale progress ids count=%s", len(saved) - len(ids))
                    self._save(ids)
                return ids
        return self._prune(initial_ids or [])

    def _save(self, ids: Iterable[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(list(ids)), encoding="utf-8")

    @property
    def ids(self) -> list[str]:
        return list(self._ids)

    def is_complete(self, item_id: str) -> bool:
        return item_id in self._ids

    def toggle(self, item_id: str) -> list[str]:
        """Flip one item, persist the new set, then notify subscribers. Returns the new set."""
        if item_id in self._ids:
            ids = tuple(i for i in self._ids if i != item_id)
        else:
            ids = (*self._ids, item_id)
        self._ids = ids
        self._save(ids)
        for callback in list(self._subscribers):
            callback(list(ids))
        return list(ids)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a read-only observer. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe


class ProgressMirror:
    """
    Debounced copy of a progress set to ``POST /api/progress/{bot_id}``.

    Each call replaces the pending set and restarts the delay; only the latest set is
    sent. The server keeps whichever write lands last. Must be called from a running
    event loop.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        bot_id: str,
        student_id: str,
        *,
        delay: float = 1.0,
    ):
        self.client = client
        self.url = f"{base_url.rstrip('/')}/api/progress/{bot_id}"
        self.student_id = student_id
        self.delay = delay
        self._pending: Optional[list[str]] = None
        self._task: Optional[asyncio.Task] = None

    def __call__(self, ids: list[str]) -> None:
        self._pending = list(ids)
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._flush_later())

    async def _flush_later(self) -> None:
        await asyncio.sleep(self.delay)
        try:
            await self.flush()
        except (httpx.HTTPError, ChatApiError) as e:
            logger.warning("progress mirror failed url=%s: %s", self.url, e)

    async def flush(self) -> bool:
        """Send the pending set now. Returns False when nothing was pending."""
        ids, self._pending = self._pending, None
        if ids is None:
            return False
        try:
            response = await self.client.post(self.url, json={"studentId": self.student_id, "completedIds": ids})
        except asyncio.CancelledError:
            # Hand the set back unless a newer one replaced it meanwhile.
            if self._pending is None:
                self._pending = ids
            raise
        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            raise ChatApiError.from_response(response.status_code, response.text, response.headers, payload)
        return True

    async def aclose(self) -> None:
        """Stop the delayed send, even one already on the wire, then send whatever is pending."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        await self.flush()
