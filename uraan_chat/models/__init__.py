from uraan_chat.models.attachment import Attachment
from uraan_chat.models.auth import AuthSession
from uraan_chat.models.conversation import Chat, Message

__all__ = ["Attachment", "AuthSession", "Chat", "Message"]
