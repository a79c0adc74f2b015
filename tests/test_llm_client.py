"""Tests for the upstream inference client."""
from types import SimpleNamespace

import httpx
import pytest

from uraan_chat.core.errors import BadRequest, UpstreamFetchError
from uraan_chat.services import llm_client


def _chunk(content=None, reasoning=None, annotations=None, usage=None, choices=True):
    delta = SimpleNamespace(content=content, reasoning=reasoning, annotations=annotations)
    return SimpleNamespace(
        choices=[SimpleNamespace(delta=delta)] if choices else [],
        usage=usage,
    )


class FakeCompletions:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return self.result


def _fake_client(monkeypatch, result):
    completions = FakeCompletions(result)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    monkeypatch.setattr(llm_client, "build_client", lambda model, credential=None: client)
    return completions


class TestProviderRouting:

    @pytest.mark.parametrize("model, provider", [
        ("gemini-2.0-flash", llm_client.GEMINI),
        ("models/gemini-2.5-flash", llm_client.GEMINI),
        ("google/gemini-1.5-pro", llm_client.OPENROUTER),
        ("openai/gpt-4o", llm_client.OPENROUTER),
    ])
    def test_provider_for_model(self, model, provider):
        assert llm_client.provider_for_model(model) == provider

    def test_caller_credential_wins(self, monkeypatch):
        monkeypatch.setattr(llm_client.settings, "OPENROUTER_API_KEY", "sk-server")
        client = llm_client.build_client("openai/gpt-4o", credential="sk-user")
        assert client.api_key == "sk-user"

    def test_missing_key_is_bad_request(self, monkeypatch):
        monkeypatch.setattr(llm_client.settings, "GEMINI_API_KEY", None)
        with pytest.raises(BadRequest):
            llm_client.build_client("gemini-2.0-flash")


class TestStreamChat:

    def test_maps_chunks_to_events(self, monkeypatch):
        citation = {"url_citation": {"url": "https://example.com/a", "title": "A"}}
        completions = _fake_client(monkeypatch, iter([
            _chunk(reasoning="Let me think."),
            _chunk(content="Hel", annotations=[citation]),
            _chunk(content="lo", annotations=[citation]),
            _chunk(choices=False, usage=SimpleNamespace(prompt_tokens=4, completion_tokens=2, total_tokens=6)),
        ]))

        events = list(llm_client.stream_chat("openai/gpt-4o", [{"role": "user", "content": "hi"}]))

        assert events == [
            {"type": "reasoning", "content": "Let me think."},
            {"type": "source", "url": "https://example.com/a", "title": "A"},
            {"type": "token", "content": "Hel"},
            {"type": "token", "content": "lo"},
            {"type": "usage", "usage": {"prompt_tokens": 4, "completion_tokens": 2, "total_tokens": 6}},
        ]
        assert completions.calls[0]["stream"] is True
        assert completions.calls[0]["stream_options"] == {"include_usage": True}

    def test_complete_returns_text(self, monkeypatch):
        response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="A Title"))])
        completions = _fake_client(monkeypatch, response)

        text = llm_client.complete("openai/gpt-4o", [], max_tokens=50, temperature=0.7)

        assert text == "A Title"
        assert completions.calls[0]["max_tokens"] == 50
        assert completions.calls[0]["temperature"] == 0.7


class TestFetchDocument:

    def test_returns_bytes(self, monkeypatch):
        request = httpx.Request("GET", "https://storage.test/doc.pdf")
        monkeypatch.setattr(
            llm_client.httpx, "get",
            lambda url, **kwargs: httpx.Response(200, content=b"%PDF", request=request),
        )
        assert llm_client.fetch_document("https://storage.test/doc.pdf") == b"%PDF"

    def test_error_status(self, monkeypatch):
        request = httpx.Request("GET", "https://storage.test/doc.pdf")
        monkeypatch.setattr(
            llm_client.httpx, "get",
            lambda url, **kwargs: httpx.Response(403, request=request),
        )
        with pytest.raises(UpstreamFetchError):
            llm_client.fetch_document("https://storage.test/doc.pdf")

    def test_transport_error(self, monkeypatch):
        def boom(url, **kwargs):
            raise httpx.ConnectError("refused")

        monkeypatch.setattr(llm_client.httpx, "get", boom)
        with pytest.raises(UpstreamFetchError):
            llm_client.fetch_document("https://storage.test/doc.pdf")


def test_document_part_inlines_base64():
    part = llm_client.document_part(b"abc", "text/plain", "notes.txt")
    assert part == {
        "type": "file",
        "file": {"filename": "notes.txt", "file_data": "data:text/plain;base64,YWJj"},
    }
