"""
clinic_import/ocr/preprocessing.py

Image normalization ahead of recognition: grayscale, contrast stretch, and
upscaling of narrow scans.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from clinic_import.config import OCRSettings, get_ocr_settings

logger = logging.getLogger(__name__)


def preprocess_image_bytes(raw: bytes, *, settings: OCRSettings | None = None) -> bytes:
    """
    Return the normalized image as PNG bytes.

    Images narrower than ``upscale_below_width`` are resized to
    ``upscale_target_width`` keeping the aspect ratio.
    """

    settings = settings or get_ocr_settings()
    with Image.open(io.BytesIO(raw)) as source:
        logger.debug("Original image: %sx%s", source.width, source.height)
        image = ImageOps.autocontrast(ImageOps.grayscale(source))

    if image.width < settings.upscale_below_width:
        target_width = settings.upscale_target_width
        target_height = max(1, round(image.height * target_width / max(image.width, 1)))
        image = image.resize((target_width, target_height), Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def preprocess_image(image_path: str | Path, *, settings: OCRSettings | None = None) -> bytes:
    """
    Read and normalize an image file.

    Raises ``OSError`` when the file cannot be read. When Pillow cannot
    decode it, the original bytes are returned unchanged and recognition
    gets a chance on its own.
    """

    raw = Path(image_path).read_bytes()
    try:
        return preprocess_image_bytes(raw, settings=settings)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        logger.error("Image preprocessing failed path=%s: %s", image_path, exc)
        return raw
