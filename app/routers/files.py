# app/routers/files.py
"""
File storage endpoints.

POST   /v1/files        - Store a base64 upload, returns its URL
DELETE /v1/files        - Delete the file behind a stored URL
GET    /v1/files/exists - Check whether a stored URL still points at a file
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.config import Settings, get_settings
from app.schemas.files import (
    FileDeleteResponse,
    FileExistsResponse,
    FileUploadRequest,
    FileUploadResponse,
)
from app.storage import StorageGateway, UploadFailed, UploadOptions, get_storage_gateway
from app.utils.uploads import decode_data_uri, estimate_data_uri_size

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/files", tags=["files"])


@router.post("", response_model=FileUploadResponse, status_code=status.HTTP_201_CREATED)
def upload_file(
    payload: FileUploadRequest,
    gateway: StorageGateway = Depends(get_storage_gateway),
    settings: Settings = Depends(get_settings),
) -> FileUploadResponse:
    if estimate_data_uri_size(payload.data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.MAX_UPLOAD_BYTES} bytes",
        )

    try:
        upload = decode_data_uri(payload.data, payload.filename)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    options = UploadOptions(
        prefix=payload.prefix,
        width=payload.width,
        height=payload.height,
        quality=payload.quality,
    )

    try:
        if options.wants_resize:
            url = gateway.store_image(upload, payload.directory, options)
        else:
            url = gateway.store(upload, payload.directory, options)
    except UploadFailed as e:
        logger.error(f"Upload failed for {upload.filename}: {e}", extra={"event": "upload_failed"})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    finally:
        upload.close()

    return FileUploadResponse(url=url)


@router.delete("", response_model=FileDeleteResponse)
def delete_file(
    url: str = Query(..., min_length=1),
    gateway: StorageGateway = Depends(get_storage_gateway),
) -> FileDeleteResponse:
    return FileDeleteResponse(url=url, deleted=gateway.delete(url))


@router.get("/exists", response_model=FileExistsResponse)
def file_exists(
    url: str = Query(..., min_length=1),
    gateway: StorageGateway = Depends(get_storage_gateway),
) -> FileExistsResponse:
    return FileExistsResponse(url=url, exists=gateway.exists(url))
