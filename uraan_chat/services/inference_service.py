"""Inference proxy: validate, persist, stream, persist.

Request lifecycle:
Received -> Authenticated -> Validated -> PersistingUserMessage -> Streaming
-> PersistingAssistantMessage -> (TitleGeneration) -> Done, with Failed
reachable from any state.

Everything that can reject the request (shape, content types, ownership,
attachment fetches) runs before the first write.
"""
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlmodel import Session

from uraan_chat import database
from uraan_chat.core.errors import BadRequest, UnsupportedContentType
from uraan_chat.prompts import build_system_prompt
from uraan_chat.services import llm_client
from uraan_chat.services.chat_service import ChatService

logger = logging.getLogger(__name__)

PART_TYPES = ("text", "image", "document")
ROLES = ("user", "assistant")


class InferenceState(str, Enum):
    RECEIVED = "received"
    AUTHENTICATED = "authenticated"
    VALIDATED = "validated"
    PERSISTING_USER_MESSAGE = "persisting_user_message"
    STREAMING = "streaming"
    PERSISTING_ASSISTANT_MESSAGE = "persisting_assistant_message"
    TITLE_GENERATION = "title_generation"
    DONE = "done"
    FAILED = "failed"


class ContentPart(BaseModel):
    """One typed part of a message. Unknown types are rejected by the service."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str
    text: Optional[str] = None
    url: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    name: Optional[str] = None


class ChatMessageIn(BaseModel):
    role: str
    content: Union[str, list[ContentPart]]


class ChatRequest(BaseModel):
    """Request model for a streamed chat turn."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    messages: Optional[list[ChatMessageIn]] = None
    model: Optional[str] = None
    credential: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("credential", "apikey", "apiKey"),
    )


@dataclass
class PreparedChat:
    """Everything the streaming phase needs, resolved before the first byte."""
    chat_id: str
    user_id: str
    model: str
    credential: Optional[str]
    upstream_messages: list[Dict[str, Any]]
    created: bool
    title_seed: Optional[str] = None
    state: InferenceState = InferenceState.PERSISTING_USER_MESSAGE
    usage: Optional[Dict[str, int]] = field(default=None)


def sse(event: Dict[str, Any]) -> str:
    """Encode one event as a Server-Sent Events data frame."""
    return "data: " + json.dumps(event) + "\n\n"


def message_text(content: Any) -> str:
    """Plain text of a stored or incoming message content."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        part_type = part.get("type") if isinstance(part, dict) else part.type
        text = part.get("text") if isinstance(part, dict) else part.text
        if part_type == "text" and text:
            parts.append(text)
    return "\n".join(parts)


def log_transition(chat_id: Optional[str], state: InferenceState) -> InferenceState:
    logger.debug(f"chat={chat_id} state={state.value}")
    return state


class InferenceService:
    """Service layer for streamed chat turns."""

    def __init__(
        self,
        chat_service: Optional[ChatService] = None,
        fetch_document: Optional[Callable[[str], bytes]] = None,
    ):
        self.chat_service = chat_service or ChatService()
        self._fetch_document = fetch_document

    def fetch_document(self, url: str) -> bytes:
        if self._fetch_document is not None:
            return self._fetch_document(url)
        return llm_client.fetch_document(url)

    def validate_request(self, request: ChatRequest) -> list[ChatMessageIn]:
        """
        Check the request shape and every content part.

        Raises:
            BadRequest: Missing id/model/messages, bad role, no user message,
                document without mimeType, image/document without url
            UnsupportedContentType: Part type outside text/image/document
        """
        if not request.id or not request.id.strip():
            raise BadRequest("Chat ID is required")
        if not request.model:
            raise BadRequest("Model is required")
        if not request.messages:
            raise BadRequest("Messages are required")

        for message in request.messages:
            if message.role not in ROLES:
                raise BadRequest(f"Unsupported role: {message.role}")
            if isinstance(message.content, str):
                continue
            for part in message.content:
                self._validate_part(part)

        if not any(m.role == "user" for m in request.messages):
            raise BadRequest("At least one user message is required")

        return request.messages

    def _validate_part(self, part: ContentPart) -> None:
        if part.type not in PART_TYPES:
            raise UnsupportedContentType(f"Unsupported content type: {part.type}")
        if part.type == "text" and part.text is None:
            raise BadRequest("Text part requires text")
        if part.type in ("image", "document") and not part.url:
            raise BadRequest(f"{part.type.capitalize()} part requires a url")
        if part.type == "document" and not part.mime_type:
            raise BadRequest("Document part requires a mimeType")

    def to_upstream(self, message: ChatMessageIn) -> Dict[str, Any]:
        """
        Convert one message to the OpenAI chat format.

        Documents are fetched and inlined as bytes; images stay URL references.

        Raises:
            UpstreamFetchError: If a document cannot be fetched
        """
        if isinstance(message.content, str):
            return {"role": message.role, "content": message.content}

        parts: list[Dict[str, Any]] = []
        for part in message.content:
            if part.type == "text":
                parts.append({"type": "text", "text": part.text})
            elif part.type == "image":
                parts.append({"type": "image_url", "image_url": {"url": part.url}})
            else:
                data = self.fetch_document(part.url)
                parts.append(
                    llm_client.document_part(data, part.mime_type, part.name or "document")
                )
        return {"role": message.role, "content": parts}

    def prepare(
        self,
        session: Session,
        user_id: str,
        request: ChatRequest,
    ) -> PreparedChat:
        """
        Run every pre-stream step: validate, authorise, resolve, persist.

        Returns:
            PreparedChat ready for stream()

        Raises:
            BadRequest / UnsupportedContentType / UpstreamFetchError: Invalid input
            Forbidden: If the chat exists under another owner
        """
        chat_id = request.id
        log_transition(chat_id, InferenceState.AUTHENTICATED)

        messages = self.validate_request(request)
        self.chat_service.check_writable(session, chat_id, user_id)
        upstream = [
            {"role": "system", "content": build_system_prompt()},
            *[self.to_upstream(m) for m in messages],
        ]
        log_transition(chat_id, InferenceState.VALIDATED)

        chat, created = self.chat_service.get_or_create_chat(session, chat_id, user_id)

        log_transition(chat_id, InferenceState.PERSISTING_USER_MESSAGE)
        last_user = next(m for m in reversed(messages) if m.role == "user")
        self.chat_service.store_message(
            session,
            chat.id,
            user_id,
            role="user",
            content=self._storable(last_user.content),
        )

        first_user = next(m for m in messages if m.role == "user")
        return PreparedChat(
            chat_id=chat.id,
            user_id=user_id,
            model=request.model,
            credential=request.credential,
            upstream_messages=upstream,
            created=created,
            title_seed=message_text(first_user.content) or None,
        )

    @staticmethod
    def _storable(content: Union[str, list[ContentPart]]) -> Any:
        if isinstance(content, str):
            return content
        return [part.model_dump(by_alias=True, exclude_none=True) for part in content]

    def stream(self, prepared: PreparedChat) -> Iterator[str]:
        """
        Relay upstream events as SSE frames, then persist the assistant turn.

        Upstream failures become an "error" frame and nothing more is stored.
        A failure while persisting the assistant message is logged only; the
        client already holds the streamed content.
        """
        chat_id = prepared.chat_id
        prepared.state = log_transition(chat_id, InferenceState.STREAMING)
        yield sse({"type": "metadata", "chatId": chat_id, "model": prepared.model})

        accumulated: list[str] = []
        try:
            for event in llm_client.stream_chat(
                prepared.model,
                prepared.upstream_messages,
                credential=prepared.credential,
            ):
                if event["type"] == "token":
                    accumulated.append(event["content"])
                elif event["type"] == "usage":
                    prepared.usage = event["usage"]
                yield sse(event)
        except Exception as e:
            prepared.state = log_transition(chat_id, InferenceState.FAILED)
            logger.error(f"Upstream stream failed for chat {chat_id}: {str(e)}")
            yield sse({"type": "error", "error": "Model request failed"})
            return

        prepared.state = log_transition(chat_id, InferenceState.PERSISTING_ASSISTANT_MESSAGE)
        try:
            with database.new_session() as session:
                self.chat_service.store_message(
                    session,
                    chat_id,
                    None,
                    role="assistant",
                    content="".join(accumulated),
                )
        except Exception as e:
            logger.error(f"Failed to persist assistant message for chat {chat_id}: {str(e)}")

        prepared.state = log_transition(chat_id, InferenceState.DONE)

        logger.info(
            f"Chat turn streamed: user={prepared.user_id}, chat={chat_id}, "
            f"model={prepared.model}, chars={sum(len(c) for c in accumulated)}"
        )
        yield sse({"type": "done", "chatId": chat_id})
