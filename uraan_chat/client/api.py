"""Async HTTP client for the chat API and direct storage uploads."""
import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx response from the chat API."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")


class UploadFailed(Exception):
    """The direct PUT to a presigned URL did not succeed."""


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or body)
    return str(body)


class ChatApiClient:
    """
    Thin wrapper over the /api routes.

    `http` talks to the API with the bearer token; `storage_http` is used for
    presigned URLs, which must not carry the API credentials.
    """

    def __init__(
        self,
        base_url: str = "",
        token: Optional[str] = None,
        http: Optional[httpx.AsyncClient] = None,
        storage_http: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.http = http or httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)
        self.storage_http = storage_http or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self.http.aclose()
        await self.storage_http.aclose()

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self.http.request(method, path, **kwargs)
        if not response.is_success:
            raise ApiError(response.status_code, _detail(response))
        return response.json()

    # ---------- uploads ----------
    async def request_upload(self, name: str, size: int, mime_type: str) -> Dict[str, str]:
        return await self._json(
            "POST",
            "/api/uploads",
            json={"fileName": name, "fileSize": size, "fileType": mime_type},
        )

    async def put_object(self, url: str, data: bytes, content_type: str) -> None:
        try:
            response = await self.storage_http.put(
                url, content=data, headers={"Content-Type": content_type}
            )
        except httpx.HTTPError as e:
            raise UploadFailed(f"File upload failed: {e}") from e
        if not response.is_success:
            raise UploadFailed(f"File upload failed with status {response.status_code}")

    async def confirm_upload(
        self,
        key: str,
        size: int,
        name: str,
        mime_type: str,
        tags: Optional[list[str]] = None,
    ) -> None:
        payload: Dict[str, Any] = {"key": key, "size": size, "name": name, "type": mime_type}
        if tags:
            payload["tags"] = tags
        await self._json("POST", "/api/uploads/confirm", json=payload)

    async def resolve_url(self, key: str) -> str:
        body = await self._json("POST", "/api/uploads/resolve", json={"key": key})
        return body["url"]

    # ---------- chats ----------
    async def stream_chat(
        self,
        chat_id: str,
        messages: list[Dict[str, Any]],
        model: str,
        credential: Optional[str] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        """Yield decoded SSE events from POST /api/chat-messages."""
        payload: Dict[str, Any] = {"id": chat_id, "messages": messages, "model": model}
        if credential:
            payload["credential"] = credential

        async with self.http.stream("POST", "/api/chat-messages", json=payload) as response:
            if not response.is_success:
                await response.aread()
                raise ApiError(response.status_code, _detail(response))

            async for line in response.aiter_lines():
                if not line.startswith("data: "):
                    continue
                yield json.loads(line[len("data: "):])

    async def get_chat(self, chat_id: str) -> Dict[str, Any]:
        return await self._json("GET", f"/api/chats/{chat_id}")

    async def list_recent(self, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        return await self._json("GET", "/api/chats/recent", params={"page": page, "limit": limit})

    async def delete_chat(self, chat_id: str) -> None:
        await self._json("DELETE", f"/api/chats/{chat_id}")

    async def generate_title(self, chat_id: str, content: str) -> Optional[str]:
        """Best-effort; any failure is logged and returns None."""
        try:
            body = await self._json("POST", f"/api/chats/{chat_id}/title", json={"content": content})
        except (ApiError, httpx.HTTPError) as e:
            logger.error(f"Failed to generate title: {e}")
            return None
        return body.get("title")
