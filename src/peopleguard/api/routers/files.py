"""
peopleguard.api.routers.files

Generic file store used by leave attachments and QR submissions.

Files live under `files/<file_id><ext>` in the storage root; the id is the only handle.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, File, Response, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel
from starlette.status import HTTP_204_NO_CONTENT

from peopleguard.api.deps import settings_dep, storage_dep
from peopleguard.auth.deps import get_principal
from peopleguard.observability.logging import get_logger
from peopleguard.services.errors import NotFoundError
from peopleguard.services.storage import (
    GENERIC_FILE_EXTENSIONS,
    FileStorage,
    check_upload,
    content_type_for,
)
from peopleguard.settings import Settings

log = get_logger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"], dependencies=[Depends(get_principal)])

_DIRECTORY = "files"


class UploadResult(BaseModel):
    file_id: str
    url: str
    file_name: str
    size: int
    content_type: str


def _locate(storage: FileStorage, file_id: uuid.UUID) -> str:
    key = storage.find(_DIRECTORY, file_id.hex)
    if key is None:
        raise NotFoundError("File not found")
    return key


@router.post("/upload", response_model=UploadResult)
async def upload_file(
    file: UploadFile = File(...),
    storage: FileStorage = Depends(storage_dep),
    settings: Settings = Depends(settings_dep),
) -> UploadResult:
    data = await file.read()
    name = file.filename or ""
    ext = check_upload(
        file_name=name,
        size=len(data),
        max_bytes=settings.max_upload_bytes,
        allowed=GENERIC_FILE_EXTENSIONS,
    )
    file_id = uuid.uuid4().hex
    storage.save(f"{_DIRECTORY}/{file_id}{ext}", data)
    log.info("file_uploaded", file_id=file_id, size=len(data))
    return UploadResult(
        file_id=file_id,
        url=f"/api/files/{file_id}",
        file_name=name,
        size=len(data),
        content_type=file.content_type or content_type_for(name),
    )


@router.get("/{file_id}")
async def get_file(
    file_id: uuid.UUID, storage: FileStorage = Depends(storage_dep)
) -> FileResponse:
    key = _locate(storage, file_id)
    return FileResponse(storage.path(key), media_type=content_type_for(key))


@router.delete("/{file_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_file(file_id: uuid.UUID, storage: FileStorage = Depends(storage_dep)) -> Response:
    storage.delete(_locate(storage, file_id))
    return Response(status_code=HTTP_204_NO_CONTENT)
