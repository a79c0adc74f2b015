"""Error taxonomy shared by services and routes.

Services raise these; ``uraan_chat.main`` renders them as JSON responses
with the matching status code.
"""
from typing import Optional


class ChatAppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthorized(ChatAppError):
    status_code = 401
    default_detail = "Unauthorized"


class Forbidden(ChatAppError):
    status_code = 403
    default_detail = "Forbidden"


class BadRequest(ChatAppError):
    status_code = 400
    default_detail = "Bad request"


class InvalidData(BadRequest):
    default_detail = "Invalid data"


class InvalidFileType(BadRequest):
    default_detail = "File type not allowed"


class FileTooLarge(BadRequest):
    default_detail = "File exceeds 5MB limit"


class SizeMismatch(BadRequest):
    default_detail = "Size mismatch"


class UpstreamFetchError(BadRequest):
    default_detail = "Failed to fetch attachment"


class UnsupportedContentType(BadRequest):
    default_detail = "Unsupported content type"


class NotFound(ChatAppError):
    status_code = 404
    default_detail = "Not found"


class InternalError(ChatAppError):
    status_code = 500
