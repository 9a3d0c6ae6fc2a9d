"""
Wire encoding for chart images.

The inference APIs take an inline image as base64 text plus a declared media
type. Images are sent exactly as uploaded; the only work done here is reading
the bytes, base64-encoding them and, when the upload carries no MIME type,
sniffing the format with Pillow.
"""

import base64
import io
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from chartlens.core.models import ChartImage
from chartlens.logging_config import get_logger
from chartlens.utils.exceptions import EncodingError

logger = get_logger(__name__)


@dataclass(frozen=True)
class InlineImage:
    """Base64 payload and media type, ready for a request body."""

    data_b64: str
    mime_type: str


def _infer_mime_from_magic(data: bytes) -> str | None:
    """Infer MIME type from magic bytes for the common chart export formats."""
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:2] == b"\xff\xd8":
        return "image/jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    return None


def sniff_mime_type(data: bytes, name: str = "") -> str:
    """
    Determine the MIME type of image bytes.

    Raises:
        EncodingError: If the bytes are not a recognizable image
    """
    mime = _infer_mime_from_magic(data)
    if mime:
        return mime
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError) as e:
        raise EncodingError(f"Unreadable image: {e}", image_name=name) from e
    mime = Image.MIME.get(fmt or "")
    if not mime:
        raise EncodingError(f"Unsupported image format: {fmt}", image_name=name)
    return mime


async def encode_image(image: ChartImage) -> InlineImage:
    """
    Read and base64-encode an image for the API.

    Raises:
        EncodingError: If the image is empty or cannot be read
    """
    data = await image.read_bytes()
    if not data:
        raise EncodingError("Image data is empty.", image_name=image.name)
    mime_type = image.mime_type or sniff_mime_type(data, image.name)
    logger.debug("Encoded image name=%s bytes=%d mime=%s", image.name, len(data), mime_type)
    return InlineImage(data_b64=base64.b64encode(data).decode("ascii"), mime_type=mime_type)


def create_image_data_url(image: InlineImage) -> str:
    """Create a data URL (data:<mime>;base64,<payload>) from an encoded image."""
    return f"data:{image.mime_type};base64,{image.data_b64}"
