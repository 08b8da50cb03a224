"""
Shared PyMuPDF and Pillow helpers.
"""

from __future__ import annotations

import io
from collections.abc import Callable

import fitz
from PIL import Image

from .errors import ErrorCode, TransformError

# (completed, total)
ProgressCallback = Callable[[int, int], None]

# Pillow format names keyed by the short names used in the UI
IMAGE_FORMATS = {
    "jpeg": ("JPEG", "image/jpeg", ".jpg"),
    "png": ("PNG", "image/png", ".png"),
    "webp": ("WEBP", "image/webp", ".webp"),
}


def open_pdf(data: bytes, file_name: str = "") -> fitz.Document:
    """
    Open PDF bytes with PyMuPDF.

    Raises:
        TransformError: If the bytes are not a readable PDF or the PDF is
            password protected
    """
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise TransformError(
            code=ErrorCode.PDF_CORRUPT,
            user_message="Failed to process PDF content",
            file_name=file_name or None,
            technical_message=str(e),
            retriable=False,
        ) from e

    if doc.needs_pass:
        doc.close()
        raise TransformError(
            code=ErrorCode.PDF_ENCRYPTED,
            user_message="PDF is password protected",
            file_name=file_name or None,
            retriable=False,
        )
    return doc


def normalize_rotation(degrees: int) -> int:
    """Map any multiple of 90 into 0, 90, 180 or 270."""
    return ((degrees % 360) + 360) % 360


def pixmap_to_image(pix: fitz.Pixmap) -> Image.Image:
    """Convert an RGB or gray pixmap without alpha into a Pillow image."""
    if pix.alpha:
        pix = fitz.Pixmap(pix, 0)
    if pix.n == 1:
        mode = "L"
    elif pix.n == 3:
        mode = "RGB"
    else:
        pix = fitz.Pixmap(fitz.csRGB, pix)
        mode = "RGB"
    return Image.frombytes(mode, (pix.width, pix.height), pix.samples)


def encode_image(image: Image.Image, fmt: str = "jpeg", quality: int = 95) -> bytes:
    """
    Encode a Pillow image.

    Args:
        image: Image to encode
        fmt: One of "jpeg", "png", "webp"
        quality: Lossy quality 1-100, ignored for PNG
    """
    pil_format = IMAGE_FORMATS[fmt][0]
    if pil_format == "JPEG" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buffer = io.BytesIO()
    if pil_format == "PNG":
        image.save(buffer, format=pil_format, optimize=True)
    else:
        image.save(buffer, format=pil_format, quality=quality)
    return buffer.getvalue()


def render_page(page: fitz.Page, scale: float) -> Image.Image:
    """Rasterize one page at the given zoom factor, white background."""
    pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
    return pixmap_to_image(pix)
