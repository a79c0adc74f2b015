"""Attachment metadata recorded after a confirmed upload."""
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class Attachment(SQLModel, table=True):
    """
    Confirmed file upload.

    key is minted server-side when the upload is requested and is the only
    lookup credential for the object. The row exists only once the stored
    object has been verified against the declared size.
    """
    __tablename__ = "attachment"

    key: str = Field(primary_key=True, max_length=128)
    user_id: str = Field(index=True, nullable=False)
    name: str = Field(max_length=255)
    size: int
    type: str = Field(max_length=100)
    tags: Optional[list[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(default_factory=datetime.utcnow)
