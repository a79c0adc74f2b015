"""Upstream inference client.

OpenRouter and Google Gemini both expose OpenAI-compatible chat completion
endpoints, so one OpenAI SDK client is used with a provider-specific base URL.

Streaming yields dict events following this schema:
- {"type": "token", "content": "..."}
- {"type": "reasoning", "content": "..."}
- {"type": "source", "url": "...", "title": "..."}
- {"type": "usage", "usage": {...}}
"""
import base64
import logging
from typing import Any, Dict, Iterator, Optional

import httpx
from openai import OpenAI

from uraan_chat.config import settings
from uraan_chat.core.errors import BadRequest, UpstreamFetchError

logger = logging.getLogger(__name__)

OPENROUTER = "openrouter"
GEMINI = "gemini"


def provider_for_model(model: str) -> str:
    """Native Gemini ids go to Google; everything else is brokered by OpenRouter."""
    if model.startswith("gemini-") or model.startswith("models/gemini-"):
        return GEMINI
    return OPENROUTER


def build_client(model: str, credential: Optional[str] = None) -> OpenAI:
    """
    OpenAI SDK client for the provider serving `model`.

    The caller-supplied credential wins over the configured key.

    Raises:
        BadRequest: If no credential is available for the provider
    """
    provider = provider_for_model(model)
    if provider == GEMINI:
        api_key = credential or settings.GEMINI_API_KEY
        base_url = settings.GEMINI_BASE_URL
    else:
        api_key = credential or settings.OPENROUTER_API_KEY
        base_url = settings.OPENROUTER_BASE_URL

    if not api_key:
        raise BadRequest(f"No API key available for provider {provider}")

    return OpenAI(api_key=api_key, base_url=base_url, timeout=settings.LLM_TIMEOUT)


def _get(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _usage_dict(usage: Any) -> Dict[str, int]:
    prompt_tokens = int(_get(usage, "prompt_tokens") or 0)
    completion_tokens = int(_get(usage, "completion_tokens") or 0)
    total_tokens = _get(usage, "total_tokens")
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": int(total_tokens if total_tokens is not None else prompt_tokens + completion_tokens),
    }


def stream_chat(
    model: str,
    messages: list[Dict[str, Any]],
    credential: Optional[str] = None,
) -> Iterator[Dict[str, Any]]:
    """
    Stream a chat completion as event dicts.

    Errors from the provider propagate to the caller.
    """
    client = build_client(model, credential)
    stream = client.chat.completions.create(
        model=model,
        messages=messages,
        stream=True,
        stream_options={"include_usage": True},
    )

    seen_sources: set[str] = set()

    for chunk in stream:
        usage = _get(chunk, "usage")
        if usage:
            yield {"type": "usage", "usage": _usage_dict(usage)}

        choices = _get(chunk, "choices") or []
        if not choices:
            continue
        delta = _get(choices[0], "delta")

        # OpenRouter forwards provider thinking as delta.reasoning
        reasoning = _get(delta, "reasoning") or _get(delta, "reasoning_content")
        if reasoning:
            yield {"type": "reasoning", "content": reasoning}

        for annotation in _get(delta, "annotations") or []:
            citation = _get(annotation, "url_citation")
            url = _get(citation, "url")
            if url and url not in seen_sources:
                seen_sources.add(url)
                yield {"type": "source", "url": url, "title": _get(citation, "title")}

        content = _get(delta, "content")
        if content:
            yield {"type": "token", "content": content}


def complete(
    model: str,
    messages: list[Dict[str, Any]],
    credential: Optional[str] = None,
    max_tokens: Optional[int] = None,
    temperature: Optional[float] = None,
) -> str:
    """Single non-streamed completion; returns the text ("" if none)."""
    client = build_client(model, credential)
    kwargs: Dict[str, Any] = {"model": model, "messages": messages}
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens
    if temperature is not None:
        kwargs["temperature"] = temperature

    response = client.chat.completions.create(**kwargs)
    if not response.choices:
        return ""
    return response.choices[0].message.content or ""


def fetch_document(url: str) -> bytes:
    """
    Download an attachment so the model receives raw bytes, not a URL.

    Raises:
        UpstreamFetchError: On transport errors or a non-2xx status
    """
    try:
        response = httpx.get(
            url,
            timeout=settings.DOCUMENT_FETCH_TIMEOUT,
            follow_redirects=True,
        )
    except httpx.HTTPError as e:
        logger.warning(f"Document fetch failed for {url}: {str(e)}")
        raise UpstreamFetchError(f"Failed to fetch document: {url}") from e

    if not response.is_success:
        logger.warning(f"Document fetch returned {response.status_code} for {url}")
        raise UpstreamFetchError(
            f"Failed to fetch document: {url} (status {response.status_code})"
        )
    return response.content


def document_part(data: bytes, mime_type: str, filename: str = "document") -> Dict[str, Any]:
    """OpenAI-style file content part carrying the bytes inline."""
    encoded = base64.b64encode(data).decode("ascii")
    return {
        "type": "file",
        "file": {
            "filename": filename,
            "file_data": f"data:{mime_type};base64,{encoded}",
        },
    }
