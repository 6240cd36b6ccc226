"""Utility helpers for moving images between files, bytes and data URIs."""

from __future__ import annotations

import base64
import binascii
import io
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

DEFAULT_MIME_TYPE = "image/png"
DOWNLOAD_NAME_TEMPLATE = "morph-seed-{seed}.png"

_DATA_URI_PREFIX = "data:"
_BASE64_MARKER = ";base64"


def split_data_uri(value: str) -> Tuple[Optional[str], str]:
    """Return ``(mime_type, base64_payload)`` for a data URI or bare base64 string."""
    if not value.startswith(_DATA_URI_PREFIX) or "," not in value:
        return None, value
    header, payload = value.split(",", 1)
    mime_type = header[len(_DATA_URI_PREFIX):].split(";", 1)[0].strip()
    return mime_type or None, payload


def encode_data_uri(data: Union[bytes, str], mime_type: Optional[str] = None) -> str:
    """Wrap raw bytes (or an already base64-encoded string) in a data URI."""
    if isinstance(data, (bytes, bytearray)):
        payload = base64.b64encode(bytes(data)).decode("ascii")
    else:
        payload = data
    return f"data:{mime_type or DEFAULT_MIME_TYPE}{_BASE64_MARKER},{payload}"


def sniff_mime_type(data: bytes) -> Optional[str]:
    """Return the MIME type of fully decodable image bytes, or None."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
            image.load()
    except (UnidentifiedImageError, OSError, SyntaxError, EOFError, ValueError):
        return None
    if not image_format:
        return None
    return Image.MIME.get(image_format.upper())


def bytes_to_data_uri(data: bytes, filename: Optional[str] = None) -> str:
    """Encode image bytes as a data URI; raise ValueError when they are not an image."""
    mime_type = sniff_mime_type(data)
    if mime_type is None:
        raise ValueError(f"{filename or 'Uploaded data'} is not a decodable image")
    return encode_data_uri(data, mime_type)


def file_to_data_uri(path: Union[str, Path]) -> str:
    """Read an image file into an embeddable data URI."""
    file_path = Path(path)
    return bytes_to_data_uri(file_path.read_bytes(), filename=file_path.name)


def decode_payload(value: str) -> bytes:
    """Return the raw bytes behind a data URI or bare base64 string."""
    _, payload = split_data_uri(value)
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64 image data: {exc}") from exc


def data_uri_to_image(value: Optional[str]) -> Optional[Image.Image]:
    """Decode a data URI into a PIL image for display."""
    if not value:
        return None
    image = Image.open(io.BytesIO(decode_payload(value)))
    image.load()
    return image


def save_download(value: Optional[str], seed: int, directory: Union[str, Path]) -> Optional[Path]:
    """Write a result as ``morph-seed-<seed>.png`` inside ``directory``."""
    image = data_uri_to_image(value)
    if image is None:
        return None
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / DOWNLOAD_NAME_TEMPLATE.format(seed=seed)
    image.save(path, format="PNG")
    return path
