"""Chat history routes.

Provides:
- GET /api/chats/recent - Page through the caller's chats
- GET /api/chats/{id} - Get a chat with its transcript
- DELETE /api/chats/{id} - Delete a chat and its messages
- POST /api/chats/{id}/title - Generate and store a chat title
"""
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Session

from uraan_chat.config import settings
from uraan_chat.core.deps import get_current_user, get_db
from uraan_chat.models.conversation import Chat
from uraan_chat.services.chat_service import ChatService
from uraan_chat.services.title_service import TitleService

router = APIRouter(prefix="/api/chats", tags=["chats"])

chat_service = ChatService()
title_service = TitleService(chat_service)


class MessageResponse(BaseModel):
    """Response model for a single message."""
    id: int
    role: str
    content: Any


class ChatSummary(BaseModel):
    """Response model for the recent-chats list."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    created_at: datetime = Field(serialization_alias="createdAt")


class ChatDetail(BaseModel):
    """Response model for a chat with its transcript."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    owner_id: str = Field(serialization_alias="ownerId")
    title: str
    created_at: datetime = Field(serialization_alias="createdAt")
    messages: list[MessageResponse]


class TitleRequest(BaseModel):
    content: str = ""
    credential: Optional[str] = None


def _summary(chat: Chat) -> dict:
    return ChatSummary(
        id=chat.id,
        title=chat.title,
        created_at=chat.created_at,
    ).model_dump(by_alias=True, mode="json")


@router.get("/recent")
def list_recent_chats(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.RECENT_CHATS_PAGE_SIZE, ge=1, le=100),
    current_user_id: str = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> dict:
    """
    List the caller's chats, newest first.

    Returns:
        {"data": [...], "pagination": {total, page, limit, totalPages}}
    """
    result = chat_service.list_recent_chats(session, current_user_id, page, limit)
    return {
        "data": [_summary(chat) for chat in result["data"]],
        "pagination": result["pagination"],
    }


@router.get("/{chat_id}")
def get_chat(
    chat_id: str,
    current_user_id: str = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> dict:
    """
    Get a chat with all messages.

    Raises:
        Unauthorized: Without a valid session
        NotFound: If the chat is absent or owned by another user
    """
    chat, messages = chat_service.get_transcript(session, chat_id, current_user_id)

    return ChatDetail(
        id=chat.id,
        owner_id=chat.user_id,
        title=chat.title,
        created_at=chat.created_at,
        messages=[
            MessageResponse(id=msg.id, role=msg.role, content=msg.content)
            for msg in messages
        ],
    ).model_dump(by_alias=True, mode="json")


@router.delete("/{chat_id}")
def delete_chat(
    chat_id: str,
    current_user_id: str = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> dict:
    """
    Delete a chat and all its messages.

    Raises:
        Unauthorized: Without a valid session
        Forbidden: If the chat belongs to another user
        NotFound: If the chat does not exist
    """
    chat_service.delete_chat(session, chat_id, current_user_id)
    return {"success": True}


@router.post("/{chat_id}/title")
def generate_title(
    chat_id: str,
    request: TitleRequest,
    current_user_id: str = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> dict:
    """
    Summarise the first user message into a title.

    Best-effort: an upstream failure yields {"title": null}, not an error.

    Raises:
        BadRequest: If content is empty
        NotFound: If the chat is absent or owned by another user
    """
    title = title_service.generate_title(
        session,
        chat_id,
        current_user_id,
        request.content,
        credential=request.credential,
    )
    return {"title": title}
