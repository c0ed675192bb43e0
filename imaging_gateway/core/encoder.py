"""
Inline data URL encoding for uploaded images.
"""

import base64
import binascii
from typing import Tuple

from .upload import UploadedImage


def encode_data_url(image: UploadedImage) -> str:
    """Encode image bytes as a base64 data URL.

    Empty images still encode (to an empty payload); the remote service
    decides whether to reject them.
    """
    payload = base64.b64encode(image.data).decode("ascii")
    return f"data:{image.mime_type};base64,{payload}"


def decode_data_url(data_url: str) -> Tuple[str, bytes]:
    """Split a base64 data URL back into (mime_type, bytes).

    Raises:
        ValueError: If data_url is not a base64 data URL
    """
    if not data_url.startswith("data:"):
        raise ValueError("Not a data URL")
    header, sep, payload = data_url[len("data:"):].partition(",")
    if not sep or not header.endswith(";base64"):
        raise ValueError("Data URL is not base64 encoded")
    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}")
    return header[: -len(";base64")], data
