"""
Request validation for image uploads.
"""

import os
from typing import Tuple, Optional, Mapping

from werkzeug.datastructures import FileStorage

from backend.vision_service.errors import ValidationError

# --- CONSTANTS FOR VALIDATION ---
ALLOWED_TYPES = ["image/jpeg", "image/png", "image/gif", "image/webp"]

MISSING_IMAGE_MESSAGE = (
    'No image uploaded or upload error occurred. '
    'Please send image via form-data with key "image"'
)


def upload_size(upload: FileStorage) -> int:
    """
    Measure an uploaded file by seeking to the end of its stream.

    The stream position is restored to the start so the file can still be saved.
    """
    stream = upload.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def validate_upload(files: Mapping[str, FileStorage], form: Mapping[str, str],
                    max_bytes: int) -> Tuple[FileStorage, Optional[str]]:
    """
    Check the multipart request for a usable image.

    Args:
        files (Mapping): `request.files`.
        form (Mapping): `request.form`.
        max_bytes (int): Largest accepted image, in bytes.

    Returns:
        tuple: (upload, prompt). prompt is the trimmed `prompt` field, or None
               when it is absent or blank.

    Raises:
        ValidationError: Missing/broken file, unsupported type, or too large.
    """
    upload = files.get("image")

    # An empty filename is what a browser sends when no file was picked
    if upload is None or not upload.filename:
        raise ValidationError(MISSING_IMAGE_MESSAGE)

    if upload.mimetype not in ALLOWED_TYPES:
        raise ValidationError("Invalid image type. Only JPEG, PNG, GIF, and WebP are allowed.")

    size = upload_size(upload)
    if size == 0:
        raise ValidationError(MISSING_IMAGE_MESSAGE)
    if size > max_bytes:
        raise ValidationError(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.")

    prompt = form.get("prompt")
    prompt = prompt.strip() if prompt is not None else None

    return upload, prompt or None
