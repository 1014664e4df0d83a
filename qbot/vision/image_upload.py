"""
Inspection image upload and validation.

Validates the operator's file before it leaves the browser session,
stores it through the backend and prepares a URL the vision model can read.
"""

import base64
import logging
import mimetypes
from pathlib import Path
from typing import Optional

from qbot.config import config
from qbot.errors import InspectionValidationError
from qbot.backend.store import BackendError, EntityStore, get_store

logger = logging.getLogger(__name__)

INVALID_TYPE_MESSAGE = "Please upload a PNG, JPEG, WEBP, or GIF image file."
TOO_LARGE_MESSAGE = "File size must be less than 20MB."
UPLOAD_FAILED_MESSAGE = "Failed to upload image. Please try again."

# Extensions accepted by the Streamlit file picker
ACCEPTED_EXTENSIONS = ["png", "jpg", "jpeg", "webp", "gif"]


def validate_image(content_type: Optional[str], size: int):
    """Raise InspectionValidationError if the file can't be inspected."""
    upload_cfg = config["upload"]
    if (content_type or "").lower() not in upload_cfg["allowed_types"]:
        raise InspectionValidationError(INVALID_TYPE_MESSAGE)
    if size > upload_cfg["max_size_mb"] * 1024 * 1024:
        raise InspectionValidationError(TOO_LARGE_MESSAGE)


def upload_image(
    data: bytes,
    filename: str,
    content_type: str,
    store: Optional[EntityStore] = None,
) -> str:
    """
    Validate and upload an inspection image.

    Args:
        data: Raw file bytes
        filename: Original file name
        content_type: MIME type reported by the browser

    Returns:
        URL (or local path) of the stored file
    """
    validate_image(content_type, len(data))
    store = store or get_store()
    try:
        return store.upload_file(data, filename, content_type)
    except (BackendError, OSError) as e:
        logger.error("Upload failed for %s: %s", filename, e)
        raise InspectionValidationError(UPLOAD_FAILED_MESSAGE) from e


def image_to_model_url(image_url: str) -> str:
    """
    Return a URL the vision model can fetch.

    Remote URLs pass through; local files are inlined as base64 data URLs.
    """
    if image_url.startswith(("http://", "https://", "data:")):
        return image_url

    path = Path(image_url)
    mime = mimetypes.guess_type(path.name)[0] or "image/png"
    encoded = base64.b64encode(path.read_bytes()).decode("utf-8")
    return f"data:{mime};base64,{encoded}"
