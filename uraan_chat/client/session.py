"""Chat session controller.

Tracks whether the open conversation is a draft (id minted locally, nothing
persisted yet) or a persisted chat, runs chat turns against the streaming
endpoint and keeps the sidebar cache in step.
"""
import logging
import secrets
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Sequence, Union

import httpx

from uraan_chat.catalog import DEFAULT_MODEL
from uraan_chat.client.api import ApiError, ChatApiClient
from uraan_chat.client.attachments import Attachment
from uraan_chat.client.cache import RecentChatsCache, TranscriptCache

logger = logging.getLogger(__name__)

OPTIMISTIC_TITLE_CHARS = 50


def new_chat_id() -> str:
    """21-character URL-safe random id."""
    return secrets.token_urlsafe(16)[:21]


@dataclass(frozen=True)
class Draft:
    pending_id: str


@dataclass(frozen=True)
class Persisted:
    chat_id: str


SessionState = Union[Draft, Persisted]


@dataclass
class ChatMessage:
    role: str
    content: Any
    id: Optional[Union[int, str]] = None
    reasoning: str = ""
    sources: list[Dict[str, Any]] = field(default_factory=list)
    usage: Optional[Dict[str, int]] = None

    def to_request(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}

    @property
    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return "\n".join(p.get("text", "") for p in self.content if p.get("type") == "text")


def retry_last_turn(messages: Sequence[ChatMessage]) -> list[ChatMessage]:
    """Transcript without the last assistant message and anything after it."""
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].role == "assistant":
            return list(messages[:index])
    return list(messages)


class TurnFailed(Exception):
    """The model call failed; surfaced to the user as a notice."""


class ChatSessionController:
    """Drives one chat view."""

    def __init__(
        self,
        api: ChatApiClient,
        recent_chats: RecentChatsCache,
        transcripts: TranscriptCache,
        model: str = DEFAULT_MODEL,
        navigate: Optional[Callable[[str], None]] = None,
        notify: Optional[Callable[[str], None]] = None,
        credential: Optional[str] = None,
    ):
        self.api = api
        self.recent_chats = recent_chats
        self.transcripts = transcripts
        self.model = model
        self.navigate = navigate or (lambda path: None)
        self.notify = notify or (lambda message: logger.warning(message))
        self.credential = credential

        self.state: SessionState = Draft(new_chat_id())
        self.messages: list[ChatMessage] = []
        self.in_flight = False
        self._should_navigate = False

    @property
    def chat_id(self) -> str:
        if isinstance(self.state, Draft):
            return self.state.pending_id
        return self.state.chat_id

    @property
    def is_new_chat(self) -> bool:
        return isinstance(self.state, Draft)

    def new_chat(self) -> None:
        self.state = Draft(new_chat_id())
        self.messages = []
        self._should_navigate = False

    async def open_chat(self, chat_id: str) -> None:
        self.state = Persisted(chat_id)
        self._should_navigate = False

        cached = self.transcripts.get(chat_id)
        if cached is not None:
            self.messages = list(cached)
            return

        chat = await self.api.get_chat(chat_id)
        self.messages = [
            ChatMessage(id=m["id"], role=m["role"], content=m["content"])
            for m in chat["messages"]
        ]
        self.transcripts.put(chat_id, list(self.messages))

    async def delete_chat(self, chat_id: str) -> None:
        """Delete a chat; if it is the open one, fall back to a new draft."""
        await self.api.delete_chat(chat_id)
        self.transcripts.invalidate(chat_id)
        self.recent_chats.remove(chat_id)
        if isinstance(self.state, Persisted) and self.state.chat_id == chat_id:
            self.new_chat()

    async def build_content(self, text: str, attachments: Sequence[Attachment]) -> Any:
        """Plain string, or typed parts when complete attachments are present."""
        ready = [a for a in attachments if a.is_complete and a.key]
        if not ready:
            return text

        parts: list[Dict[str, Any]] = []
        if text.strip():
            parts.append({"type": "text", "text": text})
        for attachment in ready:
            url = await self.api.resolve_url(attachment.key)
            if attachment.is_image:
                parts.append({"type": "image", "url": url})
            else:
                parts.append({
                    "type": "document",
                    "url": url,
                    "mimeType": attachment.type,
                    "name": attachment.name,
                })
        return parts

    async def submit(self, text: str, attachments: Sequence[Attachment] = ()) -> bool:
        """
        Send one user turn.

        Returns:
            True when the response completed. On False the caller keeps the
            composer text for resubmission.
        """
        has_attachment = any(a.is_complete for a in attachments)
        if self.in_flight or (not text.strip() and not has_attachment):
            return False

        if isinstance(self.state, Draft) and not self._should_navigate:
            self._should_navigate = True
            self.recent_chats.add_optimistic({
                "id": self.state.pending_id,
                "title": text[:OPTIMISTIC_TITLE_CHARS],
                "createdAt": datetime.now(timezone.utc).isoformat(),
            })

        self.in_flight = True
        try:
            content = await self.build_content(text, attachments)
            user_message = ChatMessage(role="user", content=content)
            completed = await self._run_turn([*self.messages, user_message])
        except (ApiError, TurnFailed, httpx.HTTPError) as e:
            self._fail(e)
            return False
        finally:
            self.in_flight = False

        self.messages = completed
        await self._finish_turn()
        return True

    async def retry(self) -> bool:
        """Regenerate the last assistant answer."""
        if self.in_flight:
            return False
        history = retry_last_turn(self.messages)
        if len(history) == len(self.messages) or not history:
            return False

        self.in_flight = True
        try:
            completed = await self._run_turn(history)
        except (ApiError, TurnFailed, httpx.HTTPError) as e:
            self.notify(str(e))
            return False
        finally:
            self.in_flight = False

        self.messages = completed
        self.transcripts.put(self.chat_id, list(self.messages))
        return True

    async def _run_turn(self, history: list[ChatMessage]) -> list[ChatMessage]:
        """Stream a response for `history`; returns history + assistant message."""
        assistant = ChatMessage(role="assistant", content="")
        tokens: list[str] = []
        done = False

        events = self.api.stream_chat(
            self.chat_id,
            [m.to_request() for m in history],
            self.model,
            credential=self.credential,
        )
        async with aclosing(events):
            async for event in events:
                event_type = event.get("type")
                if event_type == "token":
                    tokens.append(event["content"])
                elif event_type == "reasoning":
                    assistant.reasoning += event["content"]
                elif event_type == "source":
                    assistant.sources.append({"url": event["url"], "title": event.get("title")})
                elif event_type == "usage":
                    assistant.usage = event["usage"]
                elif event_type == "error":
                    raise TurnFailed(event.get("error") or "Model request failed")
                elif event_type == "done":
                    done = True

        if not done:
            raise TurnFailed("Response stream ended unexpectedly")

        assistant.content = "".join(tokens)
        return [*history, assistant]

    async def _finish_turn(self) -> None:
        chat_id = self.chat_id

        # One navigation per newly created chat
        if self._should_navigate:
            self._should_navigate = False
            self.state = Persisted(chat_id)
            self.navigate(f"/chat/{chat_id}")

            first_user = next((m for m in self.messages if m.role == "user"), None)
            if first_user is not None and first_user.text:
                title = await self.api.generate_title(chat_id, first_user.text)
                if title:
                    self.recent_chats.update_title(chat_id, title)

        self.transcripts.put(chat_id, list(self.messages))

    def _fail(self, error: Exception) -> None:
        message = error.detail if isinstance(error, ApiError) else str(error)
        self.notify(message)

        if isinstance(self.state, Draft) and self._should_navigate:
            self.recent_chats.remove(self.state.pending_id)
            self.state = Draft(new_chat_id())
        self._should_navigate = False
