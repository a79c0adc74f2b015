"""Client-side helpers: API access, attachment uploads and chat sessions."""
from uraan_chat.client.api import ApiError, ChatApiClient, UploadFailed
from uraan_chat.client.attachments import Attachment, AttachmentStatus, AttachmentTray
from uraan_chat.client.cache import RecentChatsCache, TranscriptCache, group_chats_by_date
from uraan_chat.client.session import (
    ChatMessage,
    ChatSessionController,
    Draft,
    Persisted,
    retry_last_turn,
)

__all__ = [
    "ApiError",
    "Attachment",
    "AttachmentStatus",
    "AttachmentTray",
    "ChatApiClient",
    "ChatMessage",
    "ChatSessionController",
    "Draft",
    "Persisted",
    "RecentChatsCache",
    "TranscriptCache",
    "UploadFailed",
    "group_chats_by_date",
    "retry_last_turn",
]
