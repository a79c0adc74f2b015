"""Chat service layer for chat persistence.

Handles:
- Chat creation/lookup with ownership checks
- Message storage (user + assistant)
- Transcript retrieval
- Paginated recent-chats listing
- Chat deletion (messages first, then the chat)
"""
import logging
import math
from typing import Any, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from uraan_chat.core.errors import BadRequest, Forbidden, NotFound
from uraan_chat.models.conversation import Chat, Message

logger = logging.getLogger(__name__)


class ChatService:
    """Service layer for chat operations."""

    def get_or_create_chat(
        self,
        session: Session,
        chat_id: str,
        user_id: str,
    ) -> tuple[Chat, bool]:
        """
        Get existing chat or create a new one under the caller-supplied id.

        Args:
            session: Database session
            chat_id: Opaque chat id (minted client-side for new chats)
            user_id: Authenticated user ID

        Returns:
            (Chat instance, True if it was created by this call)

        Raises:
            Forbidden: If the chat exists and belongs to another user
        """
        chat = session.get(Chat, chat_id)
        if chat is not None:
            if chat.user_id != user_id:
                logger.warning(f"User {user_id} tried to write to chat {chat_id} owned by another user")
                raise Forbidden("Chat belongs to another user")
            return chat, False

        chat = Chat(id=chat_id, user_id=user_id, title="")
        session.add(chat)
        session.commit()
        session.refresh(chat)
        logger.info(f"Chat created: id={chat_id}, user={user_id}")
        return chat, True

    def check_writable(self, session: Session, chat_id: str, user_id: str) -> bool:
        """
        Ownership check without side effects.

        Returns:
            True if the chat does not exist yet, False if it exists and is owned

        Raises:
            Forbidden: If the chat exists and belongs to another user
        """
        chat = session.get(Chat, chat_id)
        if chat is None:
            return True
        if chat.user_id != user_id:
            raise Forbidden("Chat belongs to another user")
        return False

    def get_owned_chat(self, session: Session, chat_id: str, user_id: str) -> Chat:
        """
        Chat owned by user_id.

        Raises:
            NotFound: If absent or owned by someone else
        """
        chat = session.get(Chat, chat_id)
        if chat is None or chat.user_id != user_id:
            raise NotFound("Chat not found")
        return chat

    def store_message(
        self,
        session: Session,
        chat_id: str,
        user_id: Optional[str],
        role: str,
        content: Any,
    ) -> Message:
        """
        Append one immutable message to a chat.

        Args:
            session: Database session
            chat_id: Chat ID
            user_id: Author's user ID, None for assistant messages
            role: "user" or "assistant"
            content: String or list of part dicts

        Returns:
            Stored Message instance
        """
        message = Message(
            chat_id=chat_id,
            user_id=user_id,
            role=role,
            content=content,
        )
        session.add(message)
        session.commit()
        session.refresh(message)
        return message

    def get_transcript(
        self,
        session: Session,
        chat_id: str,
        user_id: str,
    ) -> tuple[Chat, list[Message]]:
        """
        Chat and its messages in chronological order.

        Raises:
            NotFound: If the chat is absent or not owned by user_id
        """
        chat = self.get_owned_chat(session, chat_id, user_id)

        statement = select(Message).where(
            Message.chat_id == chat_id
        ).order_by(Message.created_at, Message.id)

        return chat, list(session.exec(statement).all())

    def list_recent_chats(
        self,
        session: Session,
        user_id: str,
        page: int = 1,
        limit: int = 10,
    ) -> dict:
        """
        Page through the user's chats, newest first.

        Args:
            page: 1-indexed page number
            limit: Page size

        Returns:
            {"data": [Chat, ...], "pagination": {total, page, limit, totalPages}}
        """
        if page < 1 or limit < 1:
            raise BadRequest("page and limit must be positive")

        statement = (
            select(Chat)
            .where(Chat.user_id == user_id)
            .order_by(Chat.created_at.desc(), Chat.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        chats = list(session.exec(statement).all())

        total = session.exec(
            select(func.count()).select_from(Chat).where(Chat.user_id == user_id)
        ).one()

        return {
            "data": chats,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "totalPages": math.ceil(total / limit),
            },
        }

    def delete_chat(self, session: Session, chat_id: str, user_id: str) -> None:
        """
        Delete a chat and all of its messages.

        Raises:
            NotFound: If the chat does not exist
            Forbidden: If the chat belongs to another user
        """
        chat = session.get(Chat, chat_id)
        if chat is None:
            raise NotFound("Chat not found")
        if chat.user_id != user_id:
            logger.warning(f"User {user_id} tried to delete chat {chat_id} owned by another user")
            raise Forbidden("Chat belongs to another user")

        # Messages must never outlive their chat
        messages = session.exec(select(Message).where(Message.chat_id == chat_id)).all()
        for message in messages:
            session.delete(message)
        session.flush()

        session.delete(chat)
        session.commit()

        logger.info(f"Chat deleted: id={chat_id}, user={user_id}")
