"""
Direct printing of PDF results through the platform print dialog.

Pages are rasterized with PyMuPDF and painted onto a QPrinter, scaled to
the printable area while keeping their aspect ratio.
"""

import logging

import fitz
from PySide6.QtCore import QRect, Qt
from PySide6.QtGui import QImage, QPainter
from PySide6.QtPrintSupport import QPrintDialog, QPrinter, QPrinterInfo
from PySide6.QtWidgets import QDialog, QWidget

logger = logging.getLogger(__name__)

PRINT_DPI = 150


def printing_available() -> bool:
    """Whether any printer is installed."""
    return bool(QPrinterInfo.availablePrinters())


def page_images(data: bytes, dpi: int = PRINT_DPI) -> list[QImage]:
    """Render every page of a PDF to a QImage at the given resolution."""
    scale = dpi / 72
    images: list[QImage] = []
    with fitz.open(stream=data, filetype="pdf") as doc:
        for page in doc:
            pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
            image = QImage(pix.samples, pix.width, pix.height, pix.stride, QImage.Format.Format_RGB888)
            # detach from the pixmap buffer
            images.append(image.copy())
    return images


def print_pdf(data: bytes, parent: QWidget | None = None, dpi: int = PRINT_DPI) -> bool:
    """
    Show the print dialog and print a PDF.

    Args:
        data: PDF bytes
        parent: Parent for the dialog
        dpi: Rasterization resolution

    Returns:
        True if printed, False if the user cancelled the dialog

    Raises:
        RuntimeError: If the printer could not be started
    """
    printer = QPrinter(QPrinter.PrinterMode.HighResolution)
    dialog = QPrintDialog(printer, parent)
    if dialog.exec() != QDialog.DialogCode.Accepted:
        logger.info("Print dialog cancelled")
        return False

    images = page_images(data, dpi)
    painter = QPainter()
    if not painter.begin(printer):
        raise RuntimeError("Could not start the printer")
    try:
        for index, image in enumerate(images):
            if index:
                printer.newPage()
            area = painter.viewport()
            size = image.size().scaled(area.size(), Qt.AspectRatioMode.KeepAspectRatio)
            painter.drawImage(QRect(area.x(), area.y(), size.width(), size.height()), image)
    finally:
        painter.end()

    logger.info(f"Sent {len(images)} page(s) to {printer.printerName()}")
    return True
