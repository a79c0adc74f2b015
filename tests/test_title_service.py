"""Tests for chat title generation."""
import pytest

from uraan_chat.core.errors import BadRequest, NotFound
from uraan_chat.models.conversation import Chat
from uraan_chat.services.title_service import (
    FALLBACK_TITLE,
    MAX_TITLE_LENGTH,
    TitleService,
    clean_title,
    generate_title_in_background,
    title_credential,
)


@pytest.fixture
def chat(session):
    chat = Chat(id="c1", user_id="alice")
    session.add(chat)
    session.commit()
    return chat


class TestCleanTitle:

    def test_strips_quotes_and_whitespace(self):
        assert clean_title('  "Baking Sourdough Bread"\n') == "Baking Sourdough Bread"

    def test_empty_falls_back(self):
        assert clean_title("  ''  ") == FALLBACK_TITLE

    def test_caps_length(self):
        assert len(clean_title("x" * 300)) == MAX_TITLE_LENGTH


class TestTitleService:

    def test_uses_prompt_built_from_seed(self, session, chat, fake_llm):
        title = TitleService().generate_title(session, "c1", "alice", "y" * 500)

        assert title == "Friendly Greeting Exchange"
        prompt = fake_llm.complete_calls[0]["messages"][0]["content"]
        assert "y" * 200 in prompt
        assert "y" * 201 not in prompt

    def test_failure_returns_none_and_keeps_title(self, session, chat, fake_llm):
        fake_llm.title_error = RuntimeError("rate limited")

        assert TitleService().generate_title(session, "c1", "alice", "hello") is None
        session.refresh(chat)
        assert chat.title == ""

    def test_empty_content_rejected(self, session, chat, fake_llm):
        with pytest.raises(BadRequest):
            TitleService().generate_title(session, "c1", "alice", "   ")

    def test_foreign_chat_not_found(self, session, chat, fake_llm):
        with pytest.raises(NotFound):
            TitleService().generate_title(session, "c1", "bob", "hello")


def test_background_entry_point_swallows_errors(session, chat, fake_llm):
    generate_title_in_background("missing", "alice", "hello")
    generate_title_in_background("c1", "alice", "")
    assert fake_llm.complete_calls == []


def test_background_entry_point_sets_title(session, chat, fake_llm):
    generate_title_in_background("c1", "alice", "hello")

    session.expire_all()
    assert session.get(Chat, "c1").title == "Friendly Greeting Exchange"


class TestTitleCredential:

    def test_chat_key_reused_when_provider_matches(self):
        assert title_credential("openai/gpt-4o", "sk-or-user") == "sk-or-user"

    def test_chat_key_dropped_for_other_provider(self):
        assert title_credential("gemini-2.0-flash", "AIza-user") is None

    def test_no_key(self):
        assert title_credential("openai/gpt-4o", None) is None


def test_background_title_ignores_key_for_other_provider(session, chat, fake_llm):
    generate_title_in_background("c1", "alice", "hello", credential="AIza-user", model="gemini-2.0-flash")

    assert fake_llm.complete_calls[0]["credential"] is None
    session.expire_all()
    assert session.get(Chat, "c1").title == "Friendly Greeting Exchange"
