"""Upload routes for chat attachments.

Provides:
- POST /api/uploads - Validate and presign a direct upload
- POST /api/uploads/confirm - Verify the stored object and record metadata
- POST /api/uploads/resolve - Exchange a key for a readable URL
- GET /api/uploads - List the caller's files
- DELETE /api/uploads - Delete one of the caller's files
"""
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlmodel import Session

from uraan_chat.core.deps import get_current_user, get_db, get_storage
from uraan_chat.core.errors import BadRequest, InvalidData
from uraan_chat.services.attachment_service import AttachmentService
from uraan_chat.services.storage_service import StorageGateway

router = APIRouter(prefix="/api/uploads", tags=["uploads"])


class UploadRequest(BaseModel):
    """Request model for starting an upload."""
    model_config = ConfigDict(populate_by_name=True)

    file_name: Optional[str] = Field(default=None, alias="fileName")
    file_size: Optional[int] = Field(default=None, alias="fileSize")
    file_type: Optional[str] = Field(default=None, alias="fileType")


class UploadResponse(BaseModel):
    url: str
    key: str


class ConfirmRequest(BaseModel):
    """Request model for confirming a finished upload."""
    key: str
    size: int
    name: str
    type: str
    tags: Optional[list[str]] = None


class KeyRequest(BaseModel):
    key: str = Field(min_length=1)


class FileResponse(BaseModel):
    """Response model for a stored file."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    size: int
    type: str
    key: str
    created_at: datetime = Field(serialization_alias="createdAt")


def get_attachment_service(storage: StorageGateway = Depends(get_storage)) -> AttachmentService:
    return AttachmentService(storage)


@router.post("", response_model=UploadResponse)
def request_upload(
    body: Any = Body(default=None),
    current_user_id: str = Depends(get_current_user),
    service: AttachmentService = Depends(get_attachment_service),
) -> UploadResponse:
    """
    Presign a direct PUT for a new file.

    Raises:
        Unauthorized: Without a valid session
        InvalidData: If the body is malformed
        BadRequest: If a field is missing
        InvalidFileType / FileTooLarge: If the declared file breaks policy
    """
    try:
        request = UploadRequest.model_validate(body or {})
    except ValidationError:
        raise InvalidData()

    result = service.request_upload(
        request.file_name or "",
        request.file_size or 0,
        request.file_type or "",
    )
    return UploadResponse(**result)


@router.post("/confirm")
def confirm_upload(
    body: Any = Body(default=None),
    current_user_id: str = Depends(get_current_user),
    session: Session = Depends(get_db),
    service: AttachmentService = Depends(get_attachment_service),
) -> dict:
    """
    Record metadata for an uploaded object.

    The payload is validated here rather than by FastAPI so that a malformed
    body is reported as InvalidData (400).
    """
    try:
        request = ConfirmRequest.model_validate(body)
    except ValidationError:
        raise InvalidData()

    service.confirm_upload(
        session,
        current_user_id,
        key=request.key,
        size=request.size,
        name=request.name,
        mime_type=request.type,
        tags=request.tags,
    )
    return {"success": True}


@router.post("/resolve")
def resolve_upload(
    body: Any = Body(default=None),
    current_user_id: str = Depends(get_current_user),
    session: Session = Depends(get_db),
    service: AttachmentService = Depends(get_attachment_service),
) -> dict:
    """Return a CDN or presigned read URL for one of the caller's files."""
    try:
        request = KeyRequest.model_validate(body)
    except ValidationError:
        raise BadRequest("Missing or invalid key")

    return {"url": service.resolve_url(session, current_user_id, request.key)}


@router.get("")
def list_files(
    type: Optional[str] = Query(default=None),
    sort: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    current_user_id: str = Depends(get_current_user),
    session: Session = Depends(get_db),
    service: AttachmentService = Depends(get_attachment_service),
) -> dict:
    files = service.list_files(session, current_user_id, type, sort, search)
    return {
        "files": [
            FileResponse(
                name=f.name,
                size=f.size,
                type=f.type,
                key=f.key,
                created_at=f.created_at,
            ).model_dump(by_alias=True, mode="json")
            for f in files
        ]
    }


@router.delete("")
def delete_file(
    body: Any = Body(default=None),
    current_user_id: str = Depends(get_current_user),
    session: Session = Depends(get_db),
    service: AttachmentService = Depends(get_attachment_service),
) -> dict:
    try:
        request = KeyRequest.model_validate(body)
    except ValidationError:
        raise BadRequest("File key not provided")

    service.delete_file(session, current_user_id, request.key)
    return {"success": True}
