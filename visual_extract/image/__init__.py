# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

from PIL import Image, ImageOps, UnidentifiedImageError
import base64
import io
import logging
from typing import Optional, Dict, Any, Union

logger = logging.getLogger(__name__)

# Formats accepted by the Bedrock Converse image block
BEDROCK_FORMATS = {
    'JPEG': 'jpeg',
    'PNG': 'png',
    'GIF': 'gif',
    'WEBP': 'webp'
}

_MAGIC_BYTES = (
    (b"\x89PNG", "png"),
    (b"\xff\xd8\xff", "jpeg"),
    (b"GIF8", "gif"),
    (b"BM", "bmp"),
    (b"II*\x00", "tiff"),
    (b"MM\x00*", "tiff"),
)


def detect_image_format(data: bytes) -> Optional[str]:
    """
    Detect the image format of raw bytes.

    Args:
        data: Raw file bytes

    Returns:
        Lower-case format name ('png', 'jpeg', ...) or None if the bytes
        are not a recognised image
    """
    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as img:
            if img.format:
                return img.format.lower()
    except (UnidentifiedImageError, OSError):
        pass

    # Fall back to magic bytes for truncated or exotic files
    for signature, fmt in _MAGIC_BYTES:
        if data.startswith(signature):
            return fmt
    if data.startswith(b"RIFF") and b"WEBP" in data[:12]:
        return "webp"
    return None


def load_image(data: bytes) -> Image.Image:
    """
    Decode image bytes into an RGB pixel buffer.

    EXIF orientation is applied and transparency is flattened onto white,
    so the result matches what a browser would draw.

    Args:
        data: Raw image bytes

    Returns:
        Decoded PIL image in RGB mode
    """
    image = Image.open(io.BytesIO(data))
    image = ImageOps.exif_transpose(image)

    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, "white")
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def _quality_percent(quality: Union[float, int]) -> int:
    """
    Accept 0.95-style fractions or 95-style percentages.

    Any value in (0, 1] is a fraction regardless of type, so 1 and 1.0 both
    mean 100.
    """
    if 0 < quality <= 1:
        return int(round(quality * 100))
    return int(quality)


def encode_jpeg(image: Image.Image, quality: Union[float, int] = 0.95) -> bytes:
    """
    Encode an image as JPEG bytes.

    Args:
        image: PIL image
        quality: Fraction in (0, 1] or integer percentage

    Returns:
        JPEG bytes, or b"" for a zero-area image
    """
    if image.width <= 0 or image.height <= 0:
        logger.debug("Skipping JPEG encoding of zero-area image")
        return b""
    if image.mode != "RGB":
        image = image.convert("RGB")

    img_byte_array = io.BytesIO()
    image.save(img_byte_array, format="JPEG", quality=_quality_percent(quality))
    return img_byte_array.getvalue()


def to_data_url(image_data: bytes, mime_type: str = "image/jpeg") -> str:
    """Format image bytes as a base64 data URL."""
    encoded = base64.b64encode(image_data).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def prepare_bedrock_image_attachment(image_data: bytes) -> Dict[str, Any]:
    """
    Format an image for Bedrock API attachment

    Args:
        image_data: Raw image bytes

    Returns:
        Formatted image attachment for Bedrock API
    """
    image = Image.open(io.BytesIO(image_data))
    detected_format = BEDROCK_FORMATS.get(image.format)
    if not detected_format:
        raise ValueError(f"Unsupported image format: {image.format}")
    logger.debug(f"Detected image format: {detected_format}")
    return {
        "image": {
            "format": detected_format,
            "source": {"bytes": image_data}
        }
    }
