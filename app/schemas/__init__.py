# app/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.
"""

from app.schemas.files import (
    FileDeleteResponse,
    FileExistsResponse,
    FileUploadRequest,
    FileUploadResponse,
)

__all__ = [
    "FileUploadRequest",
    "FileUploadResponse",
    "FileDeleteResponse",
    "FileExistsResponse",
]
