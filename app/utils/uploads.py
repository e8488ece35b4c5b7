# app/utils/uploads.py
"""
Helpers for turning client payloads into UploadRequests.

Clients send files as data URIs ("data:image/png;base64,...."); these
helpers validate and decode them.
"""

import base64
import binascii
import re
import uuid

from app.storage.base import UploadRequest
from app.utils.files import extension_for_mime

DATA_URI_PATTERN = re.compile(r"^data:([^;,]+);base64,(.+)$", re.DOTALL)


def is_data_uri(data: str) -> bool:
    return bool(DATA_URI_PATTERN.match(data or ""))


def mime_from_data_uri(data: str) -> str | None:
    match = DATA_URI_PATTERN.match(data or "")
    return match.group(1) if match else None


def estimate_data_uri_size(data: str) -> int:
    """Approximate decoded size; base64 adds ~33% overhead."""
    match = DATA_URI_PATTERN.match(data or "")
    if not match:
        return 0
    return int(len(match.group(2)) * 0.75)


def decode_data_uri(data: str, original_name: str | None = None) -> UploadRequest:
    """
    Decode a base64 data URI into an UploadRequest.

    Raises:
        ValueError: if the string is not a data URI or the payload is not base64
    """
    match = DATA_URI_PATTERN.match(data or "")
    if not match:
        raise ValueError("Invalid base64 file data format")

    mime_type, payload = match.group(1), "".join(match.group(2).split())
    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("Invalid base64 data") from e

    filename = original_name or f"upload_{uuid.uuid4()}.{extension_for_mime(mime_type)}"
    return UploadRequest.from_bytes(content, filename=filename, content_type=mime_type)
