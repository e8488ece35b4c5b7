# app/schemas/files.py
"""
Request/response schemas for the file endpoints.
"""

from pydantic import BaseModel, Field


class FileUploadRequest(BaseModel):
    """A file sent as a base64 data URI plus where and how to store it."""

    data: str = Field(..., description="data:<mime>;base64,<payload>")
    filename: str | None = Field(default=None, description="Original client filename")
    directory: str = Field(..., min_length=1, description="Target directory or full relative path")
    prefix: str = Field(default="file", pattern=r"^[A-Za-z0-9_-]+$")
    width: int | None = Field(default=None, gt=0, le=10000)
    height: int | None = Field(default=None, gt=0, le=10000)
    quality: int | None = Field(default=None, ge=0, le=100)


class FileUploadResponse(BaseModel):
    url: str


class FileDeleteResponse(BaseModel):
    url: str
    deleted: bool


class FileExistsResponse(BaseModel):
    url: str
    exists: bool
