"""
Upload validation.

Pulls the single image file out of a parsed multipart form. No size,
dimension or content-type checks are made; the inference service judges
whether the bytes are a usable image.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from starlette.datastructures import UploadFile

from .errors import UploadRejected

DEFAULT_MIME_TYPE = "application/octet-stream"

NO_IMAGE_REASON = "No image uploaded"
MULTIPLE_IMAGES_REASON = "Only one image can be uploaded per request"


@dataclass(frozen=True)
class UploadedImage:
    """Raw image bytes and declared content type for one request."""
    data: bytes
    mime_type: str
    filename: Optional[str] = None


async def validate_upload(form: Optional[Mapping[str, Any]], field_name: str = "image") -> UploadedImage:
    """Extract the uploaded image from a multipart form.

    Args:
        form: Parsed form data (None when the body could not be parsed)
        field_name: Name of the file field

    Returns:
        UploadedImage with the file contents

    Raises:
        UploadRejected: If the field is absent, is not a file, or carries more than one file
    """
    if form is None:
        raise UploadRejected(NO_IMAGE_REASON)
    if hasattr(form, "getlist"):
        values = form.getlist(field_name)
    else:
        values = [form[field_name]] if field_name in form else []

    files = [v for v in values if isinstance(v, UploadFile)]
    if not files:
        raise UploadRejected(NO_IMAGE_REASON)
    if len(files) > 1:
        raise UploadRejected(MULTIPLE_IMAGES_REASON)

    field = files[0]
    data = await field.read()
    return UploadedImage(
        data=data,
        mime_type=field.content_type or DEFAULT_MIME_TYPE,
        filename=field.filename,
    )
