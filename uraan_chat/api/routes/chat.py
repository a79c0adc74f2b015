"""Streaming chat route.

Provides:
- POST /api/chat-messages - Send a chat turn and stream the model response
- GET /api/models - List selectable models
"""
import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from sqlmodel import Session

from uraan_chat.catalog import MODELS
from uraan_chat.core.deps import get_current_user, get_db
from uraan_chat.core.errors import BadRequest
from uraan_chat.services.inference_service import ChatRequest, InferenceService
from uraan_chat.services.title_service import generate_title_in_background

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

# Stateless; the database session is passed per call
inference_service = InferenceService()


@router.post("/chat-messages")
def send_chat_message(
    background_tasks: BackgroundTasks,
    body: Any = Body(default=None),
    current_user_id: str = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> StreamingResponse:
    """
    Send a chat turn and stream the response as Server-Sent Events.

    Flow:
    1. Verify session (dependency)
    2. Validate messages, content parts and chat ownership
    3. Fetch document attachments
    4. Create the chat if new, store the user message
    5. Stream upstream tokens, reasoning, sources and usage
    6. Store the assistant message
    7. For new chats, generate a title after the stream (background task)

    Raises:
        Unauthorized: Without a valid session
        BadRequest: Malformed or incomplete request
        UnsupportedContentType: Unknown message part type
        UpstreamFetchError: A document attachment could not be fetched
        Forbidden: The chat belongs to another user
    """
    try:
        request = ChatRequest.model_validate(body or {})
    except ValidationError as e:
        logger.info(f"Rejected chat request from user {current_user_id}: {e.error_count()} errors")
        raise BadRequest("Invalid chat request")

    prepared = inference_service.prepare(session, current_user_id, request)

    if prepared.created and prepared.title_seed:
        background_tasks.add_task(
            generate_title_in_background,
            prepared.chat_id,
            current_user_id,
            prepared.title_seed,
            prepared.credential,
            model=prepared.model,
        )

    return StreamingResponse(
        inference_service.stream(prepared),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        background=background_tasks,
    )


@router.get("/models")
def list_models() -> dict:
    """Model catalog for the model selector."""
    return {"models": MODELS}
