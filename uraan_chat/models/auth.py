"""Session table written by the external auth provider."""
from datetime import datetime

from sqlmodel import Field, SQLModel


class AuthSession(SQLModel, table=True):
    """Opaque bearer token issued at sign-in. Read-only for this service."""
    __tablename__ = "auth_session"

    token: str = Field(primary_key=True, max_length=255)
    user_id: str = Field(index=True, nullable=False)
    expires_at: datetime
