"""Best-effort chat title generation.

A title is a short summary of the first user message. Failures are logged
and leave the title unset; they never reach the chat flow.
"""
import logging
from typing import Optional

from sqlmodel import Session

from uraan_chat import database
from uraan_chat.config import settings
from uraan_chat.core.errors import BadRequest
from uraan_chat.prompts import build_title_prompt
from uraan_chat.services import llm_client
from uraan_chat.services.chat_service import ChatService
from uraan_chat.services.inference_service import InferenceState, log_transition

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 100
FALLBACK_TITLE = "Untitled"


def clean_title(raw: str) -> str:
    """Strip whitespace and wrapping quotes, fall back, cap the length."""
    title = raw.strip().strip("\"'").strip()
    if not title:
        title = FALLBACK_TITLE
    return title[:MAX_TITLE_LENGTH]


class TitleService:
    """Generates and stores chat titles."""

    def __init__(self, chat_service: Optional[ChatService] = None):
        self.chat_service = chat_service or ChatService()

    def generate_title(
        self,
        session: Session,
        chat_id: str,
        user_id: str,
        content: str,
        credential: Optional[str] = None,
    ) -> Optional[str]:
        """
        Summarise `content` into a title and persist it on the chat.

        Args:
            session: Database session
            chat_id: Chat ID
            user_id: Authenticated user ID
            content: Seed text (first user message)
            credential: Optional caller-supplied upstream API key

        Returns:
            The stored title, or None if generation failed

        Raises:
            BadRequest: If content is empty
            NotFound: If the chat is absent or not owned by user_id
        """
        if not content or not content.strip():
            raise BadRequest("Content is required")

        chat = self.chat_service.get_owned_chat(session, chat_id, user_id)

        try:
            raw = llm_client.complete(
                settings.TITLE_MODEL,
                [{"role": "user", "content": build_title_prompt(content)}],
                credential=credential,
                max_tokens=settings.TITLE_MAX_TOKENS,
                temperature=settings.TITLE_TEMPERATURE,
            )
            title = clean_title(raw)

            chat.title = title
            session.add(chat)
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Title generation failed for chat {chat_id}: {str(e)}")
            return None

        logger.info(f"Title set for chat {chat_id}: {title!r}")
        return title


def title_credential(chat_model: Optional[str], credential: Optional[str]) -> Optional[str]:
    """
    Caller key to reuse for the title call, if any.

    A chat credential only works for the provider serving the chat model; the
    title model may be served elsewhere, in which case the configured key for
    that provider is used instead.
    """
    if not credential or not chat_model:
        return None
    if llm_client.provider_for_model(chat_model) != llm_client.provider_for_model(settings.TITLE_MODEL):
        return None
    return credential


def generate_title_in_background(
    chat_id: str,
    user_id: str,
    content: str,
    credential: Optional[str] = None,
    model: Optional[str] = None,
) -> None:
    """Background-task entry point; owns its session and swallows every error."""
    log_transition(chat_id, InferenceState.TITLE_GENERATION)
    try:
        with database.new_session() as session:
            TitleService().generate_title(
                session,
                chat_id,
                user_id,
                content,
                title_credential(model, credential),
            )
    except Exception as e:
        logger.error(f"Background title generation failed for chat {chat_id}: {str(e)}")
