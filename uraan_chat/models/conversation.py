"""Chat and Message SQLModel definitions.

Models:
- Chat: Conversation entity with a caller-supplied id and user ownership
- Message: Immutable turn in a chat transcript
"""
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class Chat(SQLModel, table=True):
    """
    Chat entity.

    Ownership: Each chat belongs to exactly one user via user_id, which never
    changes after creation. All reads and writes MUST check user_id.
    """
    __tablename__ = "chat"

    id: str = Field(primary_key=True, max_length=64)
    user_id: str = Field(index=True, nullable=False)
    title: str = Field(default="", max_length=255)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class Message(SQLModel, table=True):
    """
    Message entity for chats.

    Role: "user" or "assistant"
    user_id is None for assistant-authored rows.
    content is either a plain string or a list of part dicts
    ({"type": "text" | "image" | "document", ...}).
    Transcript order is (created_at, id).
    """
    __tablename__ = "message"

    id: Optional[int] = Field(default=None, primary_key=True)
    chat_id: str = Field(foreign_key="chat.id", index=True, nullable=False)
    user_id: Optional[str] = Field(default=None, index=True)
    role: str = Field(default="user", max_length=20)
    content: Any = Field(sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=datetime.utcnow)
