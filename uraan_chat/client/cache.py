"""Client-side caches for transcripts and the recent-chats sidebar.

Both are plain objects handed to whoever needs them; there is no module-level
store.
"""
import time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from uraan_chat.client.api import ChatApiClient

T = TypeVar("T")


class TranscriptCache(Generic[T]):
    """Chat id -> cached transcript, bounded by age and entry count."""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, tuple[float, T]]" = OrderedDict()

    def get(self, chat_id: str) -> Optional[T]:
        entry = self._entries.get(chat_id)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._entries[chat_id]
            return None
        self._entries.move_to_end(chat_id)
        return value

    def put(self, chat_id: str, value: T) -> None:
        self._entries[chat_id] = (self._clock(), value)
        self._entries.move_to_end(chat_id)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def invalidate(self, chat_id: str) -> None:
        self._entries.pop(chat_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RecentChatsCache:
    """
    Pages of GET /api/chats/recent, as an infinite list.

    Optimistic edits only touch pages already loaded.
    """

    def __init__(self, api: ChatApiClient, limit: int = 20):
        self.api = api
        self.limit = limit
        self.pages: list[Dict[str, Any]] = []

    @property
    def has_next_page(self) -> bool:
        if not self.pages:
            return True
        pagination = self.pages[-1]["pagination"]
        return pagination["page"] < pagination["totalPages"]

    @property
    def chats(self) -> list[Dict[str, Any]]:
        return [chat for page in self.pages for chat in page["data"]]

    async def load_next(self) -> bool:
        """Fetch the next page; returns False when there is nothing more."""
        if not self.has_next_page:
            return False
        page = await self.api.list_recent(page=len(self.pages) + 1, limit=self.limit)
        self.pages.append(page)
        return True

    def add_optimistic(self, chat: Dict[str, Any]) -> None:
        if not self.pages:
            return
        first = self.pages[0]
        first["data"] = [chat, *first["data"]]
        first["pagination"] = {**first["pagination"], "total": first["pagination"]["total"] + 1}

    def remove(self, chat_id: str) -> None:
        for page in self.pages:
            before = len(page["data"])
            page["data"] = [c for c in page["data"] if c["id"] != chat_id]
            if len(page["data"]) != before:
                page["pagination"] = {
                    **page["pagination"],
                    "total": max(0, page["pagination"]["total"] - 1),
                }

    def update_title(self, chat_id: str, title: str) -> None:
        for page in self.pages:
            page["data"] = [
                {**c, "title": title} if c["id"] == chat_id else c for c in page["data"]
            ]


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def group_chats_by_date(
    chats: list[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> Dict[str, list[Dict[str, Any]]]:
    """Sidebar sections: "today", "yesterday", then "<n> days ago"."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    groups: Dict[str, list[Dict[str, Any]]] = {}
    for chat in chats:
        created = _parse_timestamp(chat["createdAt"]).astimezone(now.tzinfo)
        days = (now.date() - created.date()).days
        if days <= 0:
            label = "today"
        elif days == 1:
            label = "yesterday"
        else:
            label = f"{days} days ago"
        groups.setdefault(label, []).append(chat)
    return groups
