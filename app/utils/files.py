# app/utils/files.py
"""
Pure helpers for file names and sizes.
"""

MIME_EXTENSIONS = {
    # Images
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    # Documents
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.ms-powerpoint": "ppt",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": "pptx",
    "application/vnd.ms-excel": "xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    # Text
    "text/plain": "txt",
    "text/csv": "csv",
    # Audio
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/ogg": "ogg",
    "audio/aac": "aac",
    # Video
    "video/mp4": "mp4",
    "video/avi": "avi",
    "video/quicktime": "mov",
    "video/x-msvideo": "avi",
    # Archives
    "application/zip": "zip",
    "application/x-rar-compressed": "rar",
    "application/x-tar": "tar",
    "application/gzip": "gz",
}

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def extension_for_mime(mime_type: str | None) -> str:
    """File extension for a MIME type, 'bin' when unknown."""
    if not mime_type:
        return "bin"
    return MIME_EXTENSIONS.get(mime_type.lower(), "bin")


def format_bytes(num_bytes: int) -> str:
    """Human readable size: 512 -> '512 B', 1536 -> '1.5 KB', 2048 -> '2 KB'."""
    value = float(num_bytes)
    i = 0
    while value > 1024 and i < len(_SIZE_UNITS) - 1:
        value /= 1024
        i += 1

    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[i]}"
