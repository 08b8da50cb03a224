"""
Tests for the shared data model.
"""

import re

import pytest

from pdftoolbox.models import (
    ArtifactKind,
    CompressionMethod,
    CompressionSettings,
    HistoryRecord,
    PreviewArtifact,
    RenderedImage,
    ResultKind,
    TransformResult,
    compression_ratio,
    format_file_size,
)


class TestFormatFileSize:
    """Test human readable sizes."""

    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (0, "0 Bytes"),
            (500, "500 Bytes"),
            (1024, "1 KB"),
            (1536, "1.5 KB"),
            (1048576, "1 MB"),
            (10 * 1024 * 1024, "10 MB"),
            (3 * 1024**3, "3 GB"),
        ],
    )
    def test_format_file_size(self, size, expected):
        """Test base-1024 units with trailing zeros dropped."""
        assert format_file_size(size) == expected

    def test_two_decimals_at_most(self):
        """Test that values are rounded to two decimals."""
        assert format_file_size(1234567) == "1.18 MB"


class TestCompressionRatio:
    """Test the percent-saved figure stored in history."""

    def test_savings(self):
        """Test a file that shrank."""
        assert compression_ratio(1000, 400) == "60.0"

    def test_growth_is_negative(self):
        """Test that a larger output gives a negative ratio."""
        assert compression_ratio(100, 150) == "-50.0"

    def test_zero_original(self):
        """Test that an empty original does not divide by zero."""
        assert compression_ratio(0, 10) == "0.0"


class TestHistoryRecord:
    """Test history record creation and serialization."""

    def test_create(self):
        """Test that create fills the date and ratio."""
        record = HistoryRecord.create("doc.pdf", 2000, 500)

        assert record.compression_ratio == "75.0"
        assert record.date.endswith("Z")
        assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$", record.date)

    def test_dict_uses_camel_case(self):
        """Test the persisted key names."""
        record = HistoryRecord.create("doc.pdf", 2000, 500)
        data = record.to_dict()

        assert set(data) == {"fileName", "originalSize", "compressedSize", "date", "compressionRatio"}
        assert HistoryRecord.from_dict(data) == record


class TestPreviewArtifact:
    """Test preview release semantics."""

    def test_release_data_url(self):
        """Test that releasing drops the payload."""
        artifact = PreviewArtifact(kind=ArtifactKind.DATA_URL, payload="data:image/jpeg;base64,AAAA")
        artifact.release()

        assert artifact.released
        assert artifact.payload is None

    def test_release_file_removes_it(self, tmp_path):
        """Test that a FILE artifact deletes its temporary file."""
        path = tmp_path / "preview.docx"
        path.write_bytes(b"content")
        artifact = PreviewArtifact(kind=ArtifactKind.FILE, payload=path)

        artifact.release()

        assert not path.exists()

    def test_release_is_idempotent(self, tmp_path):
        """Test that releasing twice is harmless."""
        path = tmp_path / "preview.pdf"
        path.write_bytes(b"content")
        artifact = PreviewArtifact(kind=ArtifactKind.FILE, payload=path)

        artifact.release()
        artifact.release()

        assert artifact.released

    def test_artifacts_compare_by_identity(self):
        """Test that two artifacts with the same payload are distinct."""
        first = PreviewArtifact(kind=ArtifactKind.DATA_URL, payload="data:,x")
        second = PreviewArtifact(kind=ArtifactKind.DATA_URL, payload="data:,x")

        assert first != second


class TestTransformResult:
    """Test result size bookkeeping."""

    def test_size_of_pdf(self):
        result = TransformResult(name="a.pdf", data=b"12345", mime_type="application/pdf", kind=ResultKind.PDF)
        assert result.size == 5
        assert result.formatted_size == "5 Bytes"

    def test_size_of_images_sums_pages(self):
        """Test that image results count their pages, not the empty data."""
        images = (
            RenderedImage(name="a_page_1.jpg", data=b"x" * 10, page_number=1),
            RenderedImage(name="a_page_2.jpg", data=b"x" * 20, page_number=2),
        )
        result = TransformResult(
            name="a_images.zip", data=b"", mime_type="application/zip", kind=ResultKind.IMAGES, images=images
        )

        assert result.size == 30

    def test_result_is_immutable(self):
        """Test that a result cannot be changed after creation."""
        result = TransformResult(name="a.pdf", data=b"1", mime_type="application/pdf", kind=ResultKind.PDF)

        with pytest.raises(AttributeError):
            result.name = "b.pdf"


class TestCompressionSettings:
    """Test settings serialization."""

    def test_round_trip_with_metadata(self):
        settings = CompressionSettings(
            image_quality=50, image_scale=0.5, compression_method=CompressionMethod.AGGRESSIVE, title="T", author="A"
        )

        assert CompressionSettings.from_dict(settings.to_dict()) == settings

    def test_empty_metadata_is_omitted(self):
        """Test that blank title and author are not written."""
        data = CompressionSettings().to_dict()

        assert "title" not in data
        assert "author" not in data
        assert data["compression_method"] == "balanced"
