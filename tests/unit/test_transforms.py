"""
Tests for the conversions.
"""

import io
import re
import zipfile

import fitz
import pytest
from docx import Document
from docx.oxml.ns import qn
from PIL import Image

from pdftoolbox.errors import ErrorCode, TransformError
from pdftoolbox.file_reader import load_source_file
from pdftoolbox.models import CompressionMethod, CompressionSettings, ImageItem, ResultKind, SourceFile
from pdftoolbox.presets import builtin_preset
from pdftoolbox.transforms import (
    PAGE_SIZES,
    PdfPageOptions,
    compress_pdf,
    extract_word_text,
    images_to_pdf,
    images_zip,
    pdf_to_images,
    pdf_to_word,
    placement_rect,
    word_to_pdf,
    wrap_text,
)


def _item(path, rotation=0):
    return ImageItem(source=load_source_file(path), rotation=rotation)


def _dominant(pixel):
    """Index of the strongest RGB channel."""
    return max(range(3), key=lambda channel: pixel[channel])


class TestPdfPageOptions:
    """Test page layout options."""

    def test_defaults(self):
        options = PdfPageOptions()

        assert options.page_rect().width == pytest.approx(PAGE_SIZES["a4"][0])
        assert options.content_rect() == options.page_rect()

    def test_landscape_swaps_sides(self):
        rect = PdfPageOptions(page_size="letter", orientation="landscape").page_rect()

        assert (rect.width, rect.height) == (792.0, 612.0)

    def test_margin_is_clamped(self):
        assert PdfPageOptions(margin_mm=80).margin_mm == 50
        assert PdfPageOptions(margin_mm=-5).margin_mm == 0

    @pytest.mark.parametrize(
        "kwargs", [{"page_size": "a3"}, {"orientation": "diagonal"}, {"quality": 0}, {"quality": 1.5}]
    )
    def test_invalid_options(self, kwargs):
        with pytest.raises(ValueError):
            PdfPageOptions(**kwargs)


class TestPlacementRect:
    """Test where images land on the page."""

    def test_fit_scales_up_and_centers(self):
        box = fitz.Rect(0, 0, 200, 400)

        rect = placement_rect((50, 50), box, fit_to_page=True)

        assert rect == fitz.Rect(0, 100, 200, 300)

    def test_natural_size_without_fit(self):
        """Test that pixels map to points at 96 dpi when not fitting."""
        box = fitz.Rect(0, 0, 200, 400)

        rect = placement_rect((40, 40), box, fit_to_page=False)

        assert rect.width == pytest.approx(30)
        assert rect.height == pytest.approx(30)

    def test_large_image_shrinks_without_fit(self):
        box = fitz.Rect(0, 0, 100, 100)

        rect = placement_rect((1000, 500), box, fit_to_page=False)

        assert rect.width == pytest.approx(100)
        assert rect.height == pytest.approx(50)


class TestImagesToPdf:
    """Test JPG to PDF."""

    def test_one_page_per_image_in_order(self, make_image):
        """Test page count and that pages follow the list order."""
        items = [
            _item(make_image("r.png", (80, 80), "red")),
            _item(make_image("g.png", (80, 80), "lime")),
            _item(make_image("b.png", (80, 80), "blue")),
        ]

        result = images_to_pdf(items)

        assert result.kind is ResultKind.PDF
        assert result.page_count == 3
        assert re.fullmatch(r"converted_\d+\.pdf", result.name)
        with fitz.open(stream=result.data, filetype="pdf") as doc:
            assert doc.page_count == 3
            assert doc[0].rect.width == pytest.approx(PAGE_SIZES["a4"][0], abs=0.5)
            colors = []
            for page in doc:
                pix = page.get_pixmap(matrix=fitz.Matrix(0.2, 0.2))
                colors.append(_dominant(pix.pixel(pix.width // 2, pix.height // 2)))
        assert colors == [0, 1, 2]

    def test_rotation_is_applied(self, make_image):
        """Test that a 90 degree rotation turns a landscape image upright."""
        item = _item(make_image("wide.png", (200, 100)), rotation=90)

        result = images_to_pdf([item])

        with fitz.open(stream=result.data, filetype="pdf") as doc:
            info = doc[0].get_image_info()[0]
        assert (info["width"], info["height"]) == (100, 200)

    def test_landscape_pages(self, make_image):
        options = PdfPageOptions(orientation="landscape")

        result = images_to_pdf([_item(make_image())], options)

        with fitz.open(stream=result.data, filetype="pdf") as doc:
            assert doc[0].rect.width > doc[0].rect.height

    def test_margin_keeps_image_inside(self, make_image):
        options = PdfPageOptions(margin_mm=20)

        result = images_to_pdf([_item(make_image(size=(300, 300)))], options)

        with fitz.open(stream=result.data, filetype="pdf") as doc:
            x0, y0, x1, y1 = doc[0].get_image_info()[0]["bbox"]
        margin = 20 * 72 / 25.4
        assert x0 >= margin - 0.5
        assert x1 <= PAGE_SIZES["a4"][0] - margin + 0.5

    def test_transparent_image(self, tmp_path):
        """Test that images with an alpha channel are flattened."""
        path = tmp_path / "alpha.png"
        Image.new("RGBA", (40, 40), (255, 0, 0, 128)).save(path)

        result = images_to_pdf([_item(path)])

        assert result.page_count == 1

    def test_progress(self, make_image):
        calls = []

        images_to_pdf([_item(make_image("a.jpg")), _item(make_image("b.jpg"))], progress=lambda d, t: calls.append((d, t)))

        assert calls == [(1, 2), (2, 2)]

    def test_empty_list(self):
        with pytest.raises(TransformError) as exc_info:
            images_to_pdf([])

        assert exc_info.value.code == ErrorCode.NOTHING_SELECTED

    def test_corrupt_image(self, tmp_path):
        """Test that undecodable bytes fail the whole conversion."""
        path = tmp_path / "broken.jpg"
        path.write_bytes(b"not really a jpeg")

        with pytest.raises(TransformError) as exc_info:
            images_to_pdf([_item(path)])

        assert exc_info.value.code == ErrorCode.IMAGE_CORRUPT
        assert exc_info.value.file_name == "broken.jpg"


class TestPdfToImages:
    """Test PDF to JPG."""

    def test_selected_pages(self, make_pdf):
        """Test naming and ordering of the rendered pages."""
        source = load_source_file(make_pdf("doc.pdf", pages=3))

        result = pdf_to_images(source, [2, 0])

        assert result.kind is ResultKind.IMAGES
        assert [image.name for image in result.images] == ["doc_page_1.jpg", "doc_page_3.jpg"]
        assert [image.page_number for image in result.images] == [1, 3]
        assert result.name == "doc_images.zip"
        assert result.page_count == 3
        assert result.data == b""

    def test_output_scale(self, make_pdf):
        """Test that pages render at twice the point size by default."""
        source = load_source_file(make_pdf(pages=1))

        result = pdf_to_images(source, [0])

        image = Image.open(io.BytesIO(result.images[0].data))
        assert image.format == "JPEG"
        assert image.size == (1190, 1684)

    def test_single_page_name(self, make_pdf):
        source = load_source_file(make_pdf("single.pdf", pages=2))

        result = pdf_to_images(source, [1], scale=0.5)

        assert result.name == "single_page_2.jpg"
        assert result.mime_type == "image/jpeg"

    def test_png_format(self, make_pdf):
        source = load_source_file(make_pdf(pages=1))

        result = pdf_to_images(source, [0], scale=0.5, fmt="png")

        assert result.images[0].name.endswith(".png")
        assert result.images[0].mime_type == "image/png"

    def test_empty_selection(self, make_pdf):
        source = load_source_file(make_pdf())

        with pytest.raises(TransformError) as exc_info:
            pdf_to_images(source, [])

        assert exc_info.value.code == ErrorCode.NOTHING_SELECTED

    def test_out_of_range(self, make_pdf):
        source = load_source_file(make_pdf(pages=2))

        with pytest.raises(TransformError) as exc_info:
            pdf_to_images(source, [5])

        assert exc_info.value.code == ErrorCode.INVALID_INPUT

    def test_unknown_format(self, make_pdf):
        with pytest.raises(TransformError):
            pdf_to_images(load_source_file(make_pdf()), [0], fmt="gif")

    def test_zip_entries(self, make_pdf):
        source = load_source_file(make_pdf(pages=3))
        result = pdf_to_images(source, [0, 2], scale=0.3)

        with zipfile.ZipFile(io.BytesIO(images_zip(result.images))) as archive:
            assert archive.namelist() == ["page_1.jpg", "page_3.jpg"]


class TestCompressPdf:
    """Test PDF compression."""

    def test_balanced_shrinks_images(self, make_pdf):
        """Test that recompressing embedded images makes the file smaller."""
        source = load_source_file(make_pdf("scan.pdf", pages=2, with_image=True))

        result = compress_pdf(source, builtin_preset("Balanced"))

        assert result.size == len(result.data)
        assert result.size < source.size
        assert result.original_size == source.size
        assert result.page_count == 2
        assert re.fullmatch(r"scan_processed_\d+\.pdf", result.name)

    def test_lossless_keeps_pages(self, make_pdf):
        source = load_source_file(make_pdf(pages=3))

        result = compress_pdf(source, builtin_preset("High Quality"))

        with fitz.open(stream=result.data, filetype="pdf") as doc:
            assert doc.page_count == 3
            assert "Page 2 text" in doc[1].get_text()

    def test_metadata(self, make_pdf):
        source = load_source_file(make_pdf(pages=1))
        settings = CompressionSettings(
            compression_method=CompressionMethod.LOSSLESS, title="Quarterly", author="Finance"
        )

        result = compress_pdf(source, settings)

        with fitz.open(stream=result.data, filetype="pdf") as doc:
            assert doc.metadata["title"] == "Quarterly"
            assert doc.metadata["author"] == "Finance"
            assert doc.metadata["producer"] == "PDF Processor"

    def test_progress_stages(self, make_pdf):
        calls = []

        compress_pdf(load_source_file(make_pdf(pages=1)), progress=lambda d, t: calls.append((d, t)))

        assert calls == [(1, 3), (2, 3), (3, 3)]

    def test_corrupt_pdf(self, tmp_path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"%PDF-1.4 garbage")

        with pytest.raises(TransformError):
            compress_pdf(load_source_file(path))


class TestWordToPdf:
    """Test Word to PDF."""

    def test_docx(self, make_docx):
        source = load_source_file(make_docx("report.docx"))

        result = word_to_pdf(source)

        assert result.name == "report.pdf"
        assert result.kind is ResultKind.PDF
        with fitz.open(stream=result.data, filetype="pdf") as doc:
            text = doc[0].get_text()
            assert doc.metadata["title"] == "report"
        assert "report" in text
        assert "First paragraph" in text
        assert "Second paragraph" in text

    def test_long_document_spans_pages(self, make_docx):
        paragraphs = tuple(f"Paragraph number {index}" for index in range(120))
        source = load_source_file(make_docx("long.docx", paragraphs))

        result = word_to_pdf(source)

        assert result.page_count > 1

    def test_raw_text_fallback(self, tmp_path):
        """Test that documents python-docx cannot open still convert."""
        path = tmp_path / "letter.rtf"
        path.write_bytes(b"{\\rtf1 Hello plain world}\x00\x01")

        result = word_to_pdf(load_source_file(path))

        assert result.name == "letter.pdf"
        with fitz.open(stream=result.data, filetype="pdf") as doc:
            assert "Hello plain world" in doc[0].get_text()

    def test_malformed_docx_falls_back(self, make_broken_docx):
        """Test that a DOCX with unreadable XML still converts from its raw text."""
        source = load_source_file(make_broken_docx("broken.docx"))

        result = word_to_pdf(source)

        assert result.name == "broken.pdf"
        assert result.kind is ResultKind.PDF
        assert result.page_count >= 1


class TestWordHelpers:
    """Test text extraction and wrapping."""

    def test_extract_docx(self, make_docx):
        text = extract_word_text(make_docx(paragraphs=("one", "two")).read_bytes())

        assert text == "one\ntwo"

    def test_extract_malformed_xml_uses_raw_text(self, make_broken_docx):
        """Test that a cut-off document.xml falls back to the raw bytes."""
        text = extract_word_text(make_broken_docx().read_bytes(), "broken.docx")

        assert "First paragraph" in text
        assert "<w:t>" in text

    def test_extract_strips_non_printable(self):
        assert extract_word_text(b"ab\x00c\x07d\n\xc3\xa9e") == "abcd\ne"

    def test_wrap_respects_width(self):
        lines = wrap_text("lorem ipsum dolor " * 40, 200)

        assert len(lines) > 1
        assert all(fitz.get_text_length(line, fontname="helv", fontsize=12) <= 200 for line in lines)

    def test_wrap_breaks_long_words(self):
        lines = wrap_text("x" * 300, 100)

        assert "".join(lines) == "x" * 300
        assert len(lines) > 1

    def test_wrap_keeps_blank_lines(self):
        assert wrap_text("a\n\nb", 100) == ["a", "", "b"]


class TestPdfToWord:
    """Test PDF to Word."""

    def test_text_and_page_breaks(self, make_pdf):
        source = load_source_file(make_pdf("doc.pdf", pages=2))

        result = pdf_to_word(source)

        assert result.name == "doc.docx"
        assert result.kind is ResultKind.DOCX
        assert result.page_count == 2
        document = Document(io.BytesIO(result.data))
        texts = [paragraph.text for paragraph in document.paragraphs]
        assert texts[0] == "doc"
        assert "Page 1 text" in texts
        assert "Page 2 text" in texts
        breaks = [br for br in document.element.body.iter(qn("w:br")) if br.get(qn("w:type")) == "page"]
        assert len(breaks) == 1

    def test_corrupt_pdf(self):
        source = SourceFile(name="bad.pdf", path=None, size=3, mime_type="application/pdf", data=b"bad")

        with pytest.raises(TransformError) as exc_info:
            pdf_to_word(source)

        assert exc_info.value.code == ErrorCode.PDF_CORRUPT
