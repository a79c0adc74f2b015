"""Attachment service: presigned upload flow and file metadata.

Handles:
- Upload initiation (validation + presigned PUT URL + server-minted key)
- Upload confirmation (re-validation + stored-size check + metadata row)
- Key resolution to a CDN or presigned read URL
- Listing and deleting a user's confirmed files
"""
import logging
import uuid
from typing import Optional

from sqlmodel import Session, select

from uraan_chat.config import settings
from uraan_chat.core.errors import (
    BadRequest,
    FileTooLarge,
    InvalidData,
    InvalidFileType,
    NotFound,
    SizeMismatch,
)
from uraan_chat.models.attachment import Attachment
from uraan_chat.services.storage_service import StorageGateway

logger = logging.getLogger(__name__)


class AttachmentService:
    """Service layer for attachment uploads."""

    def __init__(
        self,
        storage: StorageGateway,
        allowed_types: Optional[list[str]] = None,
        max_size: Optional[int] = None,
        key_prefix: Optional[str] = None,
    ):
        self.storage = storage
        self.allowed_types = allowed_types or settings.ALLOWED_UPLOAD_TYPES
        self.max_size = max_size or settings.MAX_UPLOAD_SIZE
        self.key_prefix = key_prefix or settings.UPLOAD_KEY_PREFIX

    def validate(self, size: int, mime_type: str) -> None:
        """
        Check declared type and size against the upload policy.

        Raises:
            InvalidFileType: If mime_type is not allow-listed
            FileTooLarge: If size exceeds the maximum
        """
        if mime_type not in self.allowed_types:
            raise InvalidFileType()
        if size > self.max_size:
            raise FileTooLarge()

    def new_key(self) -> str:
        return f"{self.key_prefix}/{uuid.uuid4()}"

    def request_upload(self, name: str, size: int, mime_type: str) -> dict[str, str]:
        """
        Reserve a key and sign a PUT URL for it.

        Nothing is persisted here; the key only lives inside the URL until
        the upload is confirmed.

        Returns:
            {"url": presigned PUT URL, "key": storage key}
        """
        if not name or not mime_type or not size or size < 0:
            raise BadRequest("Missing fields")

        self.validate(size, mime_type)

        key = self.new_key()
        url = self.storage.presign_put(key, mime_type, size)
        logger.debug(f"Presigned upload: key={key}, type={mime_type}, size={size}")
        return {"url": url, "key": key}

    def confirm_upload(
        self,
        session: Session,
        user_id: str,
        key: str,
        size: int,
        name: str,
        mime_type: str,
        tags: Optional[list[str]] = None,
    ) -> Attachment:
        """
        Verify the stored object and record its metadata.

        Raises:
            InvalidData: If key was not minted by request_upload
            InvalidFileType / FileTooLarge: Same policy as request_upload
            NotFound: If nothing was stored under key
            SizeMismatch: If the stored size differs from the declared size
            BadRequest: If the key was already confirmed
        """
        if not key.startswith(f"{self.key_prefix}/"):
            raise InvalidData()

        self.validate(size, mime_type)

        if session.get(Attachment, key) is not None:
            raise BadRequest("Upload already confirmed")

        stored_size = self.storage.object_size(key)
        if stored_size != size:
            logger.warning(
                f"Size mismatch for key={key}: declared={size}, stored={stored_size}"
            )
            raise SizeMismatch()

        attachment = Attachment(
            key=key,
            user_id=user_id,
            name=name,
            size=size,
            type=mime_type,
            tags=tags,
        )
        session.add(attachment)
        session.commit()
        session.refresh(attachment)

        logger.info(f"Upload confirmed: user={user_id}, key={key}, size={size}")
        return attachment

    def get_owned(self, session: Session, user_id: str, key: str) -> Attachment:
        """
        Attachment row for key if it belongs to user_id.

        Raises:
            NotFound: If absent or owned by someone else
        """
        attachment = session.get(Attachment, key)
        if attachment is None or attachment.user_id != user_id:
            raise NotFound("File not found")
        return attachment

    def resolve_url(self, session: Session, user_id: str, key: str) -> str:
        self.get_owned(session, user_id, key)
        return self.storage.public_url(key)

    def list_files(
        self,
        session: Session,
        user_id: str,
        type_filter: Optional[str] = None,
        sort: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Attachment]:
        """
        List the user's confirmed files.

        Args:
            type_filter: Substring of the MIME type; "all" or None disables it
            sort: "size" for largest first, otherwise newest first
            search: Substring of the file name
        """
        statement = select(Attachment).where(Attachment.user_id == user_id)

        if type_filter and type_filter != "all":
            statement = statement.where(Attachment.type.contains(type_filter))
        if search:
            statement = statement.where(Attachment.name.contains(search))

        if sort == "size":
            statement = statement.order_by(Attachment.size.desc())
        else:
            statement = statement.order_by(Attachment.created_at.desc())

        return list(session.exec(statement).all())

    def delete_file(self, session: Session, user_id: str, key: str) -> None:
        """Delete the metadata row, then the stored object (best-effort)."""
        attachment = self.get_owned(session, user_id, key)
        session.delete(attachment)
        session.commit()

        try:
            self.storage.delete_object(key)
        except Exception as e:
            logger.error(f"Failed to delete stored object {key}: {str(e)}")
