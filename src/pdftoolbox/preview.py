"""
Preview generation for images, PDFs and whole documents.

Images preview as their own data URL. PDF pages are rendered one after
another so progress can be reported as completed/total. Every preview is
a PreviewArtifact that its owner releases when the view is superseded.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from .config import PREVIEW_JPEG_QUALITY, PREVIEW_SCALE
from .errors import ErrorCode, TransformError
from .file_reader import to_data_url
from .media import ProgressCallback, encode_image, open_pdf, render_page
from .models import ArtifactKind, PreviewArtifact, SourceFile

logger = logging.getLogger(__name__)


class ArtifactRegistry:
    """Tracks the previews owned by one workflow so they can be released together."""

    def __init__(self) -> None:
        self._artifacts: list[PreviewArtifact] = []

    def add(self, artifact: PreviewArtifact) -> PreviewArtifact:
        self._artifacts.append(artifact)
        return artifact

    def extend(self, artifacts: list[PreviewArtifact]) -> list[PreviewArtifact]:
        self._artifacts.extend(artifacts)
        return artifacts

    def release(self, artifact: PreviewArtifact) -> None:
        artifact.release()
        if artifact in self._artifacts:
            self._artifacts.remove(artifact)

    def release_all(self) -> None:
        for artifact in self._artifacts:
            artifact.release()
        if self._artifacts:
            logger.debug(f"Released {len(self._artifacts)} preview artifact(s)")
        self._artifacts.clear()

    def __len__(self) -> int:
        return len(self._artifacts)


def image_preview(source: SourceFile) -> PreviewArtifact:
    """The image itself, inline, is its preview."""
    return PreviewArtifact(kind=ArtifactKind.DATA_URL, payload=to_data_url(source.data, source.mime_type))


def pdf_page_count(data: bytes, file_name: str = "") -> int:
    """
    Count pages from the document structure.

    Raises:
        TransformError: If the data is not a readable PDF
    """
    doc = open_pdf(data, file_name)
    try:
        return doc.page_count
    finally:
        doc.close()


def render_pdf_pages(
    data: bytes,
    scale: float = PREVIEW_SCALE,
    pages: list[int] | None = None,
    progress: ProgressCallback | None = None,
    file_name: str = "",
) -> list[PreviewArtifact]:
    """
    Render PDF pages to JPEG data URLs.

    Args:
        data: PDF bytes
        scale: Zoom factor, 1.0 renders at 72 dpi
        pages: 0-based page indices, all pages when None
        progress: Called with (completed, total) after each page
        file_name: Name used in error messages

    Returns:
        One DATA_URL artifact per rendered page, in page order

    Raises:
        TransformError: If the PDF cannot be opened or any page fails to render
    """
    doc = open_pdf(data, file_name)
    try:
        indices = list(range(doc.page_count)) if pages is None else sorted(set(pages))
        total = len(indices)
        artifacts: list[PreviewArtifact] = []
        for done, index in enumerate(indices, start=1):
            try:
                image = render_page(doc.load_page(index), scale)
                payload = to_data_url(encode_image(image, "jpeg", PREVIEW_JPEG_QUALITY), "image/jpeg")
            except (RuntimeError, ValueError, OSError) as e:
                raise TransformError(
                    code=ErrorCode.RENDER_FAILED,
                    user_message=f"Failed to render page {index + 1}",
                    file_name=file_name or None,
                    technical_message=str(e),
                ) from e
            artifacts.append(PreviewArtifact(kind=ArtifactKind.DATA_URL, payload=payload, page_index=index))
            if progress:
                progress(done, total)
        return artifacts
    finally:
        doc.close()


def document_preview(data: bytes, name: str) -> PreviewArtifact:
    """
    Write a whole-document preview to a temporary file.

    Args:
        data: Document bytes
        name: File name, its suffix is kept so viewers recognise the type

    Returns:
        FILE artifact pointing at the temporary copy

    Raises:
        BaseAppError: If the temporary file cannot be written
    """
    suffix = Path(name).suffix or ".bin"
    try:
        with tempfile.NamedTemporaryFile(prefix="pdftoolbox-preview-", suffix=suffix, delete=False) as tmp:
            tmp.write(data)
            path = Path(tmp.name)
    except OSError as e:
        raise TransformError(
            code=ErrorCode.RENDER_FAILED,
            user_message="Could not create document preview",
            file_name=name,
            technical_message=str(e),
        ) from e
    return PreviewArtifact(kind=ArtifactKind.FILE, payload=path)
