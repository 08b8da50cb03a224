"""
Conversions between images, PDFs and Word documents.

Every transform takes in-memory inputs and returns a single TransformResult.
Work inside a transform is sequential so progress is reported as
(completed, total). Any failure is raised as TransformError and nothing
partial is returned.
"""

from __future__ import annotations

import io
import logging
import re
import time
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import fitz
from docx import Document
from PIL import Image, ImageOps, UnidentifiedImageError

from .config import OUTPUT_SCALE
from .errors import BaseAppError, ErrorCode, TransformError
from .media import IMAGE_FORMATS, ProgressCallback, encode_image, normalize_rotation, open_pdf, pixmap_to_image, render_page
from .models import (
    CompressionMethod,
    CompressionSettings,
    ImageItem,
    RenderedImage,
    ResultKind,
    SourceFile,
    TransformResult,
)
from .tools import DOCX_MIME_TYPE

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
PRODUCER = "PDF Processor"
CREATOR = "PDF Toolbox"

# Page sizes in points, portrait
PAGE_SIZES = {
    "a4": (595.28, 841.89),
    "letter": (612.0, 792.0),
    "legal": (612.0, 1008.0),
}
MM_TO_PT = 72 / 25.4
# CSS pixels are 1/96 inch
PX_TO_PT = 72 / 96

IMAGE_QUALITY_CHOICES = (0.6, 0.8, 1.0)

# Word to PDF text layout, in points
WORD_PAGE_MARGIN = 40
WORD_TITLE_SIZE = 16
WORD_BODY_SIZE = 12
WORD_LINE_ADVANCE = 15
WORD_TITLE_GAP = 30
WORD_FONT = "helv"

_WORD_SUFFIX = re.compile(r"\.(doc|docx|rtf|odt)$", re.IGNORECASE)
_PDF_SUFFIX = re.compile(r"\.pdf$", re.IGNORECASE)
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\n]")


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def _report(progress: ProgressCallback | None, done: int, total: int) -> None:
    if progress:
        progress(done, total)


@contextmanager
def _transform_errors(user_message: str, file_name: str | None = None) -> Iterator[None]:
    """Re-raise anything that escapes a transform as TransformError."""
    try:
        yield
    except BaseAppError:
        raise
    except Exception as e:
        logger.exception(f"{user_message}: {e}")
        raise TransformError(
            code=ErrorCode.CONVERSION_FAILED,
            user_message=user_message,
            file_name=file_name,
            technical_message=f"{type(e).__name__}: {e}",
        ) from e


# ---------------------------------------------------------------------------
# Images to PDF
# ---------------------------------------------------------------------------


@dataclass
class PdfPageOptions:
    """Page layout for JPG to PDF."""

    page_size: str = "a4"
    orientation: str = "portrait"
    margin_mm: int = 0
    fit_to_page: bool = True
    quality: float = 1.0

    def __post_init__(self) -> None:
        if self.page_size not in PAGE_SIZES:
            raise ValueError(f"Unknown page size: {self.page_size}")
        if self.orientation not in ("portrait", "landscape"):
            raise ValueError(f"Unknown orientation: {self.orientation}")
        self.margin_mm = max(0, min(50, int(self.margin_mm)))
        if not 0 < self.quality <= 1:
            raise ValueError(f"Quality must be in (0, 1]: {self.quality}")

    def page_rect(self) -> fitz.Rect:
        width, height = PAGE_SIZES[self.page_size]
        if self.orientation == "landscape":
            width, height = height, width
        return fitz.Rect(0, 0, width, height)

    def content_rect(self) -> fitz.Rect:
        margin = self.margin_mm * MM_TO_PT
        rect = self.page_rect()
        return fitz.Rect(rect.x0 + margin, rect.y0 + margin, rect.x1 - margin, rect.y1 - margin)


def load_image(data: bytes, file_name: str = "") -> Image.Image:
    """
    Decode image bytes, applying EXIF orientation.

    Raises:
        TransformError: If the bytes are not a decodable image
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise TransformError(
            code=ErrorCode.IMAGE_CORRUPT,
            user_message="Failed to load image",
            file_name=file_name or None,
            technical_message=str(e),
            retriable=False,
        ) from e
    return ImageOps.exif_transpose(image)


def rotate_image(image: Image.Image, degrees: int) -> Image.Image:
    """Rotate clockwise by a multiple of 90 degrees."""
    rotation = normalize_rotation(degrees)
    if rotation == 90:
        return image.transpose(Image.Transpose.ROTATE_270)
    if rotation == 180:
        return image.transpose(Image.Transpose.ROTATE_180)
    if rotation == 270:
        return image.transpose(Image.Transpose.ROTATE_90)
    return image


def _flatten(image: Image.Image) -> Image.Image:
    """Drop transparency onto white so the image can be stored as JPEG."""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode not in ("RGB", "L"):
        return image.convert("RGB")
    return image


def placement_rect(image_size: tuple[int, int], box: fitz.Rect, fit_to_page: bool) -> fitz.Rect:
    """
    Where an image lands inside the content box.

    With fit_to_page the image is scaled, up or down, to the largest size that
    keeps its aspect ratio. Otherwise it keeps its natural size and only
    shrinks if it would overflow. Either way it is centered.
    """
    width, height = image_size
    if fit_to_page:
        scale = min(box.width / width, box.height / height)
    else:
        scale = min(PX_TO_PT, box.width / width, box.height / height)
    render_width = width * scale
    render_height = height * scale
    x = box.x0 + (box.width - render_width) / 2
    y = box.y0 + (box.height - render_height) / 2
    return fitz.Rect(x, y, x + render_width, y + render_height)


def images_to_pdf(
    items: list[ImageItem],
    options: PdfPageOptions | None = None,
    progress: ProgressCallback | None = None,
) -> TransformResult:
    """
    Build one PDF with one page per image, in list order.

    Args:
        items: Images with their rotation, in the order they become pages
        options: Page layout, defaults to A4 portrait fit-to-page
        progress: Called with (completed, total) after each page

    Returns:
        PDF TransformResult

    Raises:
        TransformError: If the list is empty or any image fails
    """
    options = options or PdfPageOptions()
    if not items:
        raise TransformError(
            code=ErrorCode.NOTHING_SELECTED, user_message="Add at least one image to convert", retriable=False
        )

    quality = max(1, min(100, round(options.quality * 100)))
    total = len(items)
    doc = fitz.open()
    try:
        for done, item in enumerate(items, start=1):
            with _transform_errors("Failed to create PDF", item.source.name):
                image = _flatten(rotate_image(load_image(item.source.data, item.source.name), item.rotation))
                page = doc.new_page(width=options.page_rect().width, height=options.page_rect().height)
                rect = placement_rect(image.size, options.content_rect(), options.fit_to_page)
                page.insert_image(rect, stream=encode_image(image, "jpeg", quality))
            _report(progress, done, total)

        with _transform_errors("Failed to create PDF"):
            doc.set_metadata({"producer": PRODUCER, "creator": CREATOR})
            data = doc.tobytes(garbage=3, deflate=True)
    finally:
        doc.close()

    logger.info(f"Created PDF from {total} image(s)")
    return TransformResult(
        name=f"converted_{_timestamp_ms()}.pdf",
        data=data,
        mime_type=PDF_MIME_TYPE,
        kind=ResultKind.PDF,
        page_count=total,
        source_name=items[0].source.name,
    )


# ---------------------------------------------------------------------------
# PDF to images
# ---------------------------------------------------------------------------


def pdf_to_images(
    source: SourceFile,
    pages: list[int],
    scale: float = OUTPUT_SCALE,
    fmt: str = "jpeg",
    quality: int | None = None,
    progress: ProgressCallback | None = None,
) -> TransformResult:
    """
    Render the selected pages to images.

    Args:
        source: The PDF
        pages: 0-based page indices, any order; output is ascending
        scale: Render zoom, higher than the preview scale
        fmt: "jpeg", "png" or "webp"
        quality: Lossy quality, defaults to 95 for JPEG and 90 for WEBP
        progress: Called with (completed, total) after each page

    Returns:
        IMAGES TransformResult, one RenderedImage per page

    Raises:
        TransformError: If the selection is empty or invalid, or rendering fails
    """
    if not pages:
        raise TransformError(
            code=ErrorCode.NOTHING_SELECTED,
            user_message="Select at least one page to convert",
            file_name=source.name,
            retriable=False,
        )
    if fmt not in IMAGE_FORMATS:
        raise TransformError(
            code=ErrorCode.INVALID_INPUT, user_message=f"Unsupported image format: {fmt}", retriable=False
        )
    if quality is None:
        quality = 90 if fmt == "webp" else 95

    _, mime_type, extension = IMAGE_FORMATS[fmt]
    stem = _PDF_SUFFIX.sub("", source.name)
    indices = sorted(set(pages))

    doc = open_pdf(source.data, source.name)
    try:
        if indices[0] < 0 or indices[-1] >= doc.page_count:
            raise TransformError(
                code=ErrorCode.INVALID_INPUT,
                user_message=f"Page selection is outside the document (1-{doc.page_count})",
                file_name=source.name,
                retriable=False,
            )

        images: list[RenderedImage] = []
        total = len(indices)
        for done, index in enumerate(indices, start=1):
            with _transform_errors(f"Failed to convert page {index + 1}", source.name):
                data = encode_image(render_page(doc.load_page(index), scale), fmt, quality)
            images.append(
                RenderedImage(
                    name=f"{stem}_page_{index + 1}{extension}",
                    data=data,
                    page_number=index + 1,
                    mime_type=mime_type,
                )
            )
            _report(progress, done, total)
        page_count = doc.page_count
    finally:
        doc.close()

    logger.info(f"Rendered {len(images)} page(s) of {source.name} at scale {scale}")
    return TransformResult(
        name=images[0].name if len(images) == 1 else f"{stem}_images.zip",
        data=b"",
        mime_type=mime_type if len(images) == 1 else "application/zip",
        kind=ResultKind.IMAGES,
        page_count=page_count,
        images=tuple(images),
        source_name=source.name,
    )


def images_zip(images: tuple[RenderedImage, ...] | list[RenderedImage]) -> bytes:
    """Pack rendered pages into a zip with ``page_<n>`` entries."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for image in images:
            archive.writestr(f"page_{image.page_number}{Path(image.name).suffix}", image.data)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# PDF compression
# ---------------------------------------------------------------------------


def _recompress_images(doc: fitz.Document, settings: CompressionSettings) -> int:
    """
    Resample and re-encode embedded raster images in place.

    Images with transparency masks or in CMYK are left alone, and a
    replacement is only kept when it is smaller than the original stream.

    Returns:
        Number of images replaced
    """
    seen: set[int] = set()
    replaced = 0
    for page in doc:
        for info in page.get_images(full=True):
            xref, smask = info[0], info[1]
            if xref in seen:
                continue
            seen.add(xref)
            if smask:
                continue
            try:
                pix = fitz.Pixmap(doc, xref)
                if pix.alpha or pix.n >= 4:
                    continue
                image = pixmap_to_image(pix)
                if settings.image_scale < 1:
                    size = (
                        max(1, round(image.width * settings.image_scale)),
                        max(1, round(image.height * settings.image_scale)),
                    )
                    image = image.resize(size, Image.Resampling.LANCZOS)
                stream = encode_image(image, "jpeg", settings.image_quality)
                if len(stream) < len(doc.xref_stream_raw(xref) or b""):
                    page.replace_image(xref, stream=stream)
                    replaced += 1
            except (RuntimeError, ValueError, OSError) as e:
                logger.warning(f"Skipping image {xref} on page {page.number + 1}: {e}")
    return replaced


def compress_pdf(
    source: SourceFile,
    settings: CompressionSettings | None = None,
    progress: ProgressCallback | None = None,
) -> TransformResult:
    """
    Rewrite a PDF smaller.

    Pages are copied into a fresh document, metadata is stamped, raster
    images are recompressed unless the method is lossless, and the result
    is saved with garbage collection, deflated streams and object streams.

    Args:
        source: The PDF
        settings: Compression knobs, Balanced when omitted
        progress: Called with (completed, total) per stage

    Returns:
        PDF TransformResult whose size is the real output length

    Raises:
        TransformError: If the PDF cannot be read or saved
    """
    settings = settings or CompressionSettings()
    total = 3
    stem = _PDF_SUFFIX.sub("", source.name)

    src = open_pdf(source.data, source.name)
    out = fitz.open()
    try:
        with _transform_errors("Failed to process PDF with settings", source.name):
            out.insert_pdf(src)
            out.set_metadata(
                {
                    "title": settings.title,
                    "author": settings.author,
                    "producer": PRODUCER,
                    "creator": CREATOR,
                }
            )
            _report(progress, 1, total)

            replaced = 0
            if settings.compression_method is not CompressionMethod.LOSSLESS:
                replaced = _recompress_images(out, settings)
            _report(progress, 2, total)

            data = out.tobytes(garbage=4, deflate=True, clean=True, use_objstms=1)
            page_count = out.page_count
            _report(progress, 3, total)
    finally:
        out.close()
        src.close()

    logger.info(
        f"Compressed {source.name}: {source.size} -> {len(data)} bytes "
        f"({settings.compression_method.value}, {replaced} image(s) replaced)"
    )
    return TransformResult(
        name=f"{stem}_processed_{_timestamp_ms()}.pdf",
        data=data,
        mime_type=PDF_MIME_TYPE,
        kind=ResultKind.PDF,
        page_count=page_count,
        source_name=source.name,
        original_size=source.size,
    )


# ---------------------------------------------------------------------------
# Word to PDF
# ---------------------------------------------------------------------------


def extract_word_text(data: bytes, file_name: str = "") -> str:
    """
    Pull the text out of a Word document.

    DOCX paragraphs are read with python-docx. Anything it cannot open falls
    back to the raw bytes decoded as UTF-8 with only printable ASCII and
    newlines kept.
    """
    try:
        document = Document(io.BytesIO(data))
        return "\n".join(paragraph.text for paragraph in document.paragraphs)
    except Exception as e:  # python-docx surfaces zip, lxml and lookup errors alike
        logger.info(f"Structured extraction failed for {file_name or 'document'}, using raw text: {e}")
    return _NON_PRINTABLE.sub("", data.decode("utf-8", errors="ignore"))


def wrap_text(text: str, max_width: float, fontsize: float = WORD_BODY_SIZE, fontname: str = WORD_FONT) -> list[str]:
    """
    Split text into lines that fit max_width.

    Explicit newlines are kept, words are wrapped greedily and a word wider
    than a whole line is broken between characters.
    """

    def width(value: str) -> float:
        return fitz.get_text_length(value, fontname=fontname, fontsize=fontsize)

    lines: list[str] = []
    for paragraph in text.split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if width(candidate) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
            current = ""
            while width(word) > max_width:
                cut = len(word)
                while cut > 1 and width(word[:cut]) > max_width:
                    cut -= 1
                lines.append(word[:cut])
                word = word[cut:]
            current = word
        lines.append(current)
    return lines


def word_to_pdf(source: SourceFile, progress: ProgressCallback | None = None) -> TransformResult:
    """
    Reflow a Word document's text onto A4 pages.

    Layout: 40 pt margins, Helvetica, the file stem as a 16 pt title and
    12 pt body text advancing 15 pt per line.

    Raises:
        TransformError: If the PDF cannot be produced
    """
    title = _WORD_SUFFIX.sub("", source.name)
    with _transform_errors("Failed to convert document to PDF", source.name):
        text = extract_word_text(source.data, source.name)
    _report(progress, 1, 2)

    width, height = PAGE_SIZES["a4"]
    max_width = width - WORD_PAGE_MARGIN * 2
    doc = fitz.open()
    try:
        with _transform_errors("Failed to convert document to PDF", source.name):
            page = doc.new_page(width=width, height=height)
            page.insert_text((WORD_PAGE_MARGIN, WORD_PAGE_MARGIN), title, fontname=WORD_FONT, fontsize=WORD_TITLE_SIZE)
            y = WORD_PAGE_MARGIN + WORD_TITLE_GAP
            for line in wrap_text(text, max_width):
                if y > height - WORD_PAGE_MARGIN:
                    page = doc.new_page(width=width, height=height)
                    y = WORD_PAGE_MARGIN
                if line:
                    page.insert_text((WORD_PAGE_MARGIN, y), line, fontname=WORD_FONT, fontsize=WORD_BODY_SIZE)
                y += WORD_LINE_ADVANCE
            doc.set_metadata({"title": title, "producer": PRODUCER, "creator": CREATOR})
            data = doc.tobytes(garbage=3, deflate=True)
            page_count = doc.page_count
    finally:
        doc.close()
    _report(progress, 2, 2)

    return TransformResult(
        name=f"{title}.pdf",
        data=data,
        mime_type=PDF_MIME_TYPE,
        kind=ResultKind.PDF,
        page_count=page_count,
        source_name=source.name,
    )


# ---------------------------------------------------------------------------
# PDF to Word
# ---------------------------------------------------------------------------


def pdf_to_word(source: SourceFile, progress: ProgressCallback | None = None) -> TransformResult:
    """
    Extract a PDF's text blocks into a DOCX, one page break per source page.

    Layout, fonts and images are not carried over.

    Raises:
        TransformError: If the PDF cannot be read or the DOCX cannot be written
    """
    stem = _PDF_SUFFIX.sub("", source.name)
    src = open_pdf(source.data, source.name)
    try:
        with _transform_errors("Failed to convert PDF to Word", source.name):
            document = Document()
            document.core_properties.title = stem
            document.add_heading(stem, level=1)
            total = src.page_count
            for index, page in enumerate(src):
                if index:
                    document.add_page_break()
                for block in page.get_text("blocks", sort=True):
                    # (x0, y0, x1, y1, text, block_no, block_type), type 0 is text
                    if block[6] != 0:
                        continue
                    text = " ".join(line.strip() for line in block[4].splitlines() if line.strip())
                    if text:
                        document.add_paragraph(text)
                _report(progress, index + 1, total)

            buffer = io.BytesIO()
            document.save(buffer)
    finally:
        src.close()

    return TransformResult(
        name=f"{stem}.docx",
        data=buffer.getvalue(),
        mime_type=DOCX_MIME_TYPE,
        kind=ResultKind.DOCX,
        page_count=total,
        source_name=source.name,
    )
