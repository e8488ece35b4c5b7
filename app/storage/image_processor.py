# app/storage/image_processor.py
"""
Image resizing before upload.

- width + height: cover (aspect fill, centre crop) to exactly width x height
- width or height: scale down preserving aspect ratio, never upscale
- quality: encoder quality for lossy formats
"""

import io
import logging
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from app.storage.base import UploadRequest
from app.storage.exceptions import ImageProcessingError

logger = logging.getLogger(__name__)

DEFAULT_QUALITY = 90

# Formats that cannot carry alpha or palette data as-is
_RGB_ONLY_FORMATS = {"JPEG"}
_LOSSY_FORMATS = {"JPEG", "WEBP"}


def _scale_down(image: Image.Image, width: Optional[int], height: Optional[int]) -> Image.Image:
    src_w, src_h = image.size
    if width:
        ratio = width / src_w
    else:
        ratio = height / src_h
    if ratio >= 1:
        return image
    new_size = (max(1, round(src_w * ratio)), max(1, round(src_h * ratio)))
    return image.resize(new_size, Image.Resampling.LANCZOS)


def process_image(
    content: bytes,
    width: Optional[int] = None,
    height: Optional[int] = None,
    quality: int = DEFAULT_QUALITY,
) -> bytes:
    """
    Resize/transcode image bytes and return the encoded result.

    Raises:
        ImageProcessingError: if the bytes cannot be decoded or re-encoded
    """
    if not 0 <= quality <= 100:
        raise ImageProcessingError(f"Quality must be between 0 and 100, got {quality}")
    if (width is not None and width <= 0) or (height is not None and height <= 0):
        raise ImageProcessingError("Target dimensions must be positive")

    try:
        with Image.open(io.BytesIO(content)) as source:
            fmt = source.format or "PNG"
            image = ImageOps.exif_transpose(source)

            if width and height:
                image = ImageOps.fit(
                    image,
                    (width, height),
                    method=Image.Resampling.LANCZOS,
                    centering=(0.5, 0.5),
                )
            elif width or height:
                image = _scale_down(image, width, height)

            if fmt in _RGB_ONLY_FORMATS and image.mode not in ("RGB", "L"):
                image = image.convert("RGB")

            save_kwargs = {"quality": quality} if fmt in _LOSSY_FORMATS else {}
            out = io.BytesIO()
            image.save(out, format=fmt, **save_kwargs)
    # DecompressionBombError derives from Exception, not OSError
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageProcessingError(f"Image processing failed: {e}") from e

    return out.getvalue()


@contextmanager
def processed_upload(
    upload: UploadRequest,
    width: Optional[int] = None,
    height: Optional[int] = None,
    quality: int = DEFAULT_QUALITY,
) -> Iterator[UploadRequest]:
    """
    Yield an UploadRequest over a processed temporary copy of upload.

    The original upload is only read. The temporary file is removed when
    the block exits, whether it returns or raises.
    """
    processed = process_image(upload.read(), width=width, height=height, quality=quality)

    suffix = Path(upload.filename).suffix
    with tempfile.NamedTemporaryFile(prefix="processed_", suffix=suffix) as tmp:
        tmp.write(processed)
        tmp.flush()
        logger.debug(
            f"Processed image {upload.filename}: {upload.size} -> {len(processed)} bytes",
            extra={"event": "image_processed", "size_bytes": len(processed)},
        )
        yield UploadRequest(
            file=tmp,
            filename=upload.filename,
            content_type=upload.content_type,
            size=len(processed),
        )
