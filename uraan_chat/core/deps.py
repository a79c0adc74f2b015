"""Shared FastAPI dependencies."""
import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from uraan_chat.core.errors import Unauthorized
from uraan_chat.database import get_db
from uraan_chat.models.auth import AuthSession
from uraan_chat.services.storage_service import StorageGateway, get_storage_gateway

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

__all__ = ["get_current_user", "get_db", "get_storage"]


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: Session = Depends(get_db),
) -> str:
    """
    Resolve the caller's user id from a bearer session token.

    Raises:
        Unauthorized: If the token is missing, unknown or expired
    """
    if not credentials or not credentials.credentials:
        raise Unauthorized("Authentication required")

    auth_session = session.get(AuthSession, credentials.credentials)
    if auth_session is None:
        raise Unauthorized("Invalid session")

    if auth_session.expires_at <= datetime.utcnow():
        logger.info(f"Expired session for user {auth_session.user_id}")
        raise Unauthorized("Session expired")

    return auth_session.user_id


def get_storage() -> StorageGateway:
    """FastAPI dependency returning the object storage gateway."""
    return get_storage_gateway()
