"""
Shared test fixtures.

Qt runs offscreen and QStandardPaths points at its test locations so no
test touches the real settings, presets or history of the user. Input
documents are generated on the fly with PyMuPDF, Pillow and python-docx.
"""

import os
import zipfile

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from pathlib import Path

import fitz
import pytest
from docx import Document
from PIL import Image
from PySide6.QtCore import QSettings, QStandardPaths

from pdftoolbox.config_manager import ConfigManager
from pdftoolbox.file_reader import load_source_file
from pdftoolbox.history import CompressionHistory
from pdftoolbox.presets import PresetManager

QStandardPaths.setTestModeEnabled(True)


def noise_image(size: tuple[int, int] = (400, 400)) -> Image.Image:
    """An RGB image that flate compresses poorly and JPEG compresses well."""
    channels = [Image.effect_noise(size, 48 + 16 * index) for index in range(3)]
    return Image.merge("RGB", channels)


@pytest.fixture
def make_pdf(tmp_path):
    """Factory writing a PDF with one line of text per page and optionally a raster image."""

    def _make(name: str = "doc.pdf", pages: int = 2, with_image: bool = False) -> Path:
        doc = fitz.open()
        for index in range(pages):
            page = doc.new_page()
            page.insert_text((72, 72), f"Page {index + 1} text", fontsize=14)
            if with_image:
                image = noise_image()
                png = Path(tmp_path / f"_noise_{index}.png")
                image.save(png, format="PNG")
                page.insert_image(fitz.Rect(72, 100, 472, 500), filename=str(png))
        path = tmp_path / name
        doc.save(str(path))
        doc.close()
        return path

    return _make


@pytest.fixture
def make_image(tmp_path):
    """Factory writing a solid-color image; the format follows the suffix."""

    def _make(name: str = "photo.jpg", size: tuple[int, int] = (60, 40), color: str = "red") -> Path:
        path = tmp_path / name
        Image.new("RGB", size, color).save(path)
        return path

    return _make


@pytest.fixture
def make_docx(tmp_path):
    """Factory writing a DOCX with the given paragraphs."""

    def _make(name: str = "report.docx", paragraphs: tuple[str, ...] = ("First paragraph", "Second paragraph")) -> Path:
        document = Document()
        for text in paragraphs:
            document.add_paragraph(text)
        path = tmp_path / name
        document.save(str(path))
        return path

    return _make


@pytest.fixture
def make_broken_docx(make_docx):
    """Factory writing a DOCX whose word/document.xml is cut short."""

    def _make(name: str = "broken.docx") -> Path:
        path = make_docx(name)
        with zipfile.ZipFile(path) as archive:
            entries = {info.filename: archive.read(info) for info in archive.infolist()}
        xml = entries["word/document.xml"]
        entries["word/document.xml"] = xml[: len(xml) - 40]
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as archive:
            for entry_name, data in entries.items():
                archive.writestr(entry_name, data)
        return path

    return _make


@pytest.fixture
def load_source():
    """Read a generated file into a SourceFile."""
    return load_source_file


@pytest.fixture
def settings(tmp_path):
    """QSettings backed by a throwaway INI file."""
    return QSettings(str(tmp_path / "settings.ini"), QSettings.Format.IniFormat)


@pytest.fixture
def config_manager(settings, tmp_path):
    manager = ConfigManager(settings)
    manager.set("output_dir", str(tmp_path / "out"))
    return manager


@pytest.fixture
def history(tmp_path):
    return CompressionHistory(tmp_path / "history" / "compression_history.json")


@pytest.fixture
def preset_manager(tmp_path):
    return PresetManager(tmp_path / "presets")
