"""
Download, share and print for conversion results.

None of these operations mutate the TransformResult: the same result can be
exported any number of times and a failed export leaves it usable.
Platform services (clipboard, print dialog, system viewer) are passed in as
callables so the Qt layer can supply them and tests can replace them.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path

import fitz

from .config import get_share_dir
from .errors import BaseAppError, ErrorCode, ExportError
from .models import ResultKind, TransformResult
from .transforms import images_zip

logger = logging.getLogger(__name__)


class ShareCancelled(Exception):
    """Raised by a native share callable when the user dismisses the share sheet."""


class ShareOutcome(Enum):
    SHARED = "shared"
    COPIED = "copied"
    DOWNLOADED = "downloaded"
    CANCELLED = "cancelled"


class PrintOutcome(Enum):
    PRINTED = "printed"
    OPENED = "opened"  # handed to the system viewer for manual printing
    CANCELLED = "cancelled"


NativeShare = Callable[[Path, TransformResult], bool]
Clipboard = Callable[[str], None]
# Returns True when printed, False when the user cancelled the dialog
PrintDocument = Callable[[bytes], bool]
OpenFallback = Callable[[Path], bool]


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def export_payload(result: TransformResult) -> tuple[str, bytes]:
    """
    File name and bytes a result is saved as.

    Several page images are packed into ``converted_<ms>.zip``; a single
    page image is saved as ``converted_<ms>.<ext>``. Other results keep
    their own name.
    """
    if result.kind is ResultKind.IMAGES:
        if not result.images:
            raise ExportError(code=ErrorCode.NO_RESULT, user_message="Nothing to download", retriable=False)
        if len(result.images) > 1:
            return f"converted_{_timestamp_ms()}.zip", images_zip(result.images)
        image = result.images[0]
        return f"converted_{_timestamp_ms()}{Path(image.name).suffix}", image.data
    return result.name, result.data


def unique_path(directory: Path, filename: str) -> Path:
    """
    A path in directory that does not exist yet.

    ``report.pdf`` becomes ``report (1).pdf``, ``report (2).pdf`` and so on.
    """
    candidate = directory / filename
    stem, suffix = Path(filename).stem, Path(filename).suffix
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem} ({counter}){suffix}"
        counter += 1
    return candidate


def _atomic_write(target: Path, data: bytes) -> None:
    with tempfile.NamedTemporaryFile(dir=target.parent, prefix=".tmp-", delete=False) as tmp:
        tmp.write(data)
        tmp_path = Path(tmp.name)
    try:
        os.replace(tmp_path, target)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def download(result: TransformResult, directory: Path, filename: str | None = None) -> Path:
    """
    Save a result to a directory.

    Args:
        result: The conversion result
        directory: Destination directory, created if missing
        filename: Override the default file name

    Returns:
        Path of the written file

    Raises:
        ExportError: If the file cannot be written
    """
    default_name, data = export_payload(result)
    directory = Path(directory)
    try:
        directory.mkdir(parents=True, exist_ok=True)
        target = unique_path(directory, filename or default_name)
        _atomic_write(target, data)
    except OSError as e:
        raise ExportError(
            code=ErrorCode.DOWNLOAD_FAILED,
            user_message="Failed to download file",
            file_name=filename or default_name,
            technical_message=str(e),
        ) from e

    logger.info(f"Saved {result.name} to {target}")
    return target


def stage(result: TransformResult, directory: Path) -> Path:
    """
    Write the copy handed to share or print.

    The copy is named after the result and replaces any earlier copy of the
    same name, so staging a result again does not add files.

    Raises:
        ExportError: If the file cannot be written
    """
    _, data = export_payload(result)
    directory = Path(directory)
    target = directory / result.name
    try:
        directory.mkdir(parents=True, exist_ok=True)
        _atomic_write(target, data)
    except OSError as e:
        raise ExportError(
            code=ErrorCode.DOWNLOAD_FAILED,
            user_message="Failed to download file",
            file_name=result.name,
            technical_message=str(e),
        ) from e
    return target


def clear_share_dir(share_dir: Path | None = None) -> int:
    """
    Delete every staged copy.

    Files that cannot be removed, for example because a viewer still holds
    them, are left for the next run.

    Returns:
        Number of files removed
    """
    directory = Path(share_dir or get_share_dir())
    if not directory.is_dir():
        return 0

    removed = 0
    for path in directory.iterdir():
        if not path.is_file():
            continue
        try:
            path.unlink()
            removed += 1
        except OSError as e:
            logger.warning(f"Could not remove staged file {path}: {e}")
    if removed:
        logger.info(f"Removed {removed} staged file(s) from {directory}")
    return removed


def share(
    result: TransformResult,
    native_share: NativeShare | None = None,
    clipboard: Clipboard | None = None,
    fallback_dir: Path | None = None,
    share_dir: Path | None = None,
) -> ShareOutcome:
    """
    Share a result with the best mechanism available.

    The result is staged as a file first. Native share is tried, then
    copying the file's URI to the clipboard, then saving into fallback_dir.
    A dismissed native share ends the attempt without falling back.

    Returns:
        Which mechanism handled the share

    Raises:
        ExportError: If every mechanism failed
    """
    try:
        staged = stage(result, share_dir or get_share_dir())
    except ExportError as e:
        raise ExportError(
            code=ErrorCode.SHARE_FAILED,
            user_message="Unable to share or download file",
            file_name=result.name,
            technical_message=e.technical_message,
        ) from e

    if native_share is not None:
        try:
            if native_share(staged, result):
                return ShareOutcome.SHARED
        except ShareCancelled:
            logger.info("Share cancelled by user")
            return ShareOutcome.CANCELLED
        except Exception as e:
            logger.warning(f"Native share failed, falling back: {e}")

    if clipboard is not None:
        try:
            clipboard(staged.resolve().as_uri())
            return ShareOutcome.COPIED
        except Exception as e:
            logger.warning(f"Clipboard share failed, falling back: {e}")

    if fallback_dir is not None:
        try:
            download(result, fallback_dir)
            return ShareOutcome.DOWNLOADED
        except ExportError as e:
            raise ExportError(
                code=ErrorCode.SHARE_FAILED,
                user_message="Failed to share or download file",
                file_name=result.name,
                technical_message=e.technical_message,
            ) from e

    raise ExportError(code=ErrorCode.SHARE_FAILED, user_message="Unable to share or download file", file_name=result.name)


def printable_pdf(result: TransformResult) -> bytes | None:
    """
    PDF bytes suitable for printing, or None when the result cannot be
    printed directly (Word documents).
    """
    if result.kind is ResultKind.PDF:
        return result.data
    if result.kind is ResultKind.IMAGES:
        doc = fitz.open()
        try:
            for image in result.images:
                with fitz.open(stream=image.data) as picture:
                    rect = picture[0].rect
                page = doc.new_page(width=rect.width, height=rect.height)
                page.insert_image(page.rect, stream=image.data)
            return doc.tobytes(deflate=True)
        finally:
            doc.close()
    return None


def print_result(
    result: TransformResult,
    print_document: PrintDocument | None,
    open_fallback: OpenFallback,
    staging_dir: Path | None = None,
) -> PrintOutcome:
    """
    Print a result, falling back to the system viewer.

    Args:
        result: The conversion result
        print_document: Prints PDF bytes, None when printing is unavailable
        open_fallback: Opens a file in the system viewer for manual printing
        staging_dir: Where the fallback copy is written

    Returns:
        PrintOutcome describing what happened

    Raises:
        ExportError: If neither printing nor the fallback worked
    """
    pdf_data = None
    try:
        pdf_data = printable_pdf(result)
    except (RuntimeError, ValueError) as e:
        logger.warning(f"Could not prepare {result.name} for printing: {e}")

    if print_document is not None and pdf_data is not None:
        try:
            if print_document(pdf_data):
                logger.info(f"Printed {result.name}")
                return PrintOutcome.PRINTED
            return PrintOutcome.CANCELLED
        except Exception as e:
            logger.warning(f"Direct printing failed, opening viewer instead: {e}")

    try:
        staged = stage(result, staging_dir or get_share_dir())
        if open_fallback(staged):
            return PrintOutcome.OPENED
    except BaseAppError as e:
        raise ExportError(
            code=ErrorCode.PRINT_FAILED,
            user_message="Failed to print document",
            file_name=result.name,
            technical_message=e.technical_message,
        ) from e

    raise ExportError(code=ErrorCode.PRINT_FAILED, user_message="Failed to print document", file_name=result.name)
