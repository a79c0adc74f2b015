"""Composer attachment state.

Each attachment goes Uploading -> Complete, or is removed when any step of
request-url -> PUT -> confirm fails. Steps for one attachment run strictly in
order; different attachments upload concurrently.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

import httpx

from uraan_chat.client.api import ApiError, ChatApiClient, UploadFailed

logger = logging.getLogger(__name__)

MAX_ATTACHMENTS = 3


class AttachmentStatus(str, Enum):
    UPLOADING = "uploading"
    COMPLETE = "complete"


@dataclass
class Attachment:
    id: str
    name: str
    size: int
    type: str
    status: AttachmentStatus = AttachmentStatus.UPLOADING
    key: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.status is AttachmentStatus.COMPLETE

    @property
    def is_image(self) -> bool:
        return self.type.startswith("image/")


class AttachmentTray:
    """Attachments of the message being composed."""

    def __init__(
        self,
        api: ChatApiClient,
        max_attachments: int = MAX_ATTACHMENTS,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.api = api
        self.max_attachments = max_attachments
        self.notify = notify or (lambda message: logger.info(message))
        self.attachments: list[Attachment] = []

    def can_attach(self) -> bool:
        return len(self.attachments) < self.max_attachments

    def add(self, name: str, size: int, mime_type: str) -> Optional[Attachment]:
        """Register a chosen file; refuses past the cap with a notice."""
        if not self.can_attach():
            self.notify(f"Maximum of {self.max_attachments} attachments allowed")
            return None

        attachment = Attachment(id=uuid.uuid4().hex, name=name, size=size, type=mime_type)
        self.attachments.append(attachment)
        return attachment

    def get(self, attachment_id: str) -> Optional[Attachment]:
        for attachment in self.attachments:
            if attachment.id == attachment_id:
                return attachment
        return None

    def remove(self, attachment_id: str) -> None:
        self.attachments = [a for a in self.attachments if a.id != attachment_id]

    def clear(self) -> None:
        self.attachments = []

    def completed(self) -> list[Attachment]:
        return [a for a in self.attachments if a.is_complete]

    async def upload(self, attachment: Attachment, data: bytes) -> bool:
        """
        Run the three upload steps for one attachment.

        Returns:
            True if the attachment is now complete, False if it was dropped
        """
        try:
            ticket = await self.api.request_upload(attachment.name, attachment.size, attachment.type)
            await self.api.put_object(ticket["url"], data, attachment.type)
            await self.api.confirm_upload(
                ticket["key"], attachment.size, attachment.name, attachment.type
            )
        except (ApiError, UploadFailed, httpx.HTTPError) as e:
            self.remove(attachment.id)
            detail = e.detail if isinstance(e, ApiError) else str(e) or type(e).__name__
            self.notify(f"Failed to upload file: {detail}")
            return False

        # Removed by the user while uploading
        if self.get(attachment.id) is None:
            return False

        attachment.key = ticket["key"]
        attachment.status = AttachmentStatus.COMPLETE
        self.notify("File uploaded successfully")
        return True

    async def attach(self, name: str, mime_type: str, data: bytes) -> Optional[Attachment]:
        attachment = self.add(name, len(data), mime_type)
        if attachment is None:
            return None
        if await self.upload(attachment, data):
            return attachment
        return None

    async def attach_many(self, files: Iterable[tuple[str, str, bytes]]) -> list[Attachment]:
        """Add files up to the cap, then upload them concurrently."""
        pending = []
        for name, mime_type, data in files:
            attachment = self.add(name, len(data), mime_type)
            if attachment is None:
                break
            pending.append((attachment, data))

        results = await asyncio.gather(*(self.upload(a, d) for a, d in pending))
        return [a for (a, _), ok in zip(pending, results) if ok]

    def can_submit(self, text: str, in_flight: bool) -> bool:
        if in_flight:
            return False
        return bool(text.strip()) or bool(self.completed())
