"""
Tests for the persisted compression history.
"""

import json

import pytest

from pdftoolbox.errors import ConfigError, ErrorCode
from pdftoolbox.history import CompressionHistory
from pdftoolbox.models import HistoryRecord


def _record(index):
    return HistoryRecord.create(f"file_{index}.pdf", 1000 + index, 500)


class TestCompressionHistory:
    """Test CompressionHistory."""

    def test_missing_file_is_empty(self, history):
        assert history.load() == []

    def test_newest_first(self, history):
        history.add(_record(1))
        history.add(_record(2))

        assert [record.file_name for record in history.load()] == ["file_2.pdf", "file_1.pdf"]

    def test_capped_at_ten(self, history):
        """Test that the eleventh record evicts the oldest."""
        for index in range(11):
            history.add(_record(index))

        records = history.load()

        assert len(records) == 10
        assert records[0].file_name == "file_10.pdf"
        assert records[-1].file_name == "file_1.pdf"
        assert "file_0.pdf" not in [record.file_name for record in records]

    def test_persisted_format(self, history):
        """Test the JSON written to disk."""
        history.add(HistoryRecord.create("scan.pdf", 2000, 1500))

        data = json.loads(history.path.read_text(encoding="utf-8"))

        assert data[0]["fileName"] == "scan.pdf"
        assert data[0]["originalSize"] == 2000
        assert data[0]["compressedSize"] == 1500
        assert data[0]["compressionRatio"] == "25.0"

    def test_corrupt_file(self, history):
        """Test that an unreadable file reads as an empty history."""
        history.path.parent.mkdir(parents=True, exist_ok=True)
        history.path.write_text("{not json", encoding="utf-8")

        assert history.load() == []

    def test_not_a_list(self, history):
        history.path.parent.mkdir(parents=True, exist_ok=True)
        history.path.write_text('{"fileName": "a.pdf"}', encoding="utf-8")

        assert history.load() == []

    def test_invalid_entries_dropped(self, history):
        """Test that entries failing the schema are skipped individually."""
        good = _record(1).to_dict()
        bad_ratio = {**_record(2).to_dict(), "compressionRatio": "lots"}
        missing = {"fileName": "c.pdf"}
        history.path.parent.mkdir(parents=True, exist_ok=True)
        history.path.write_text(json.dumps([good, bad_ratio, missing]), encoding="utf-8")

        records = history.load()

        assert [record.file_name for record in records] == ["file_1.pdf"]

    def test_recovers_after_corruption(self, history):
        history.path.parent.mkdir(parents=True, exist_ok=True)
        history.path.write_text("garbage", encoding="utf-8")

        history.add(_record(1))

        assert len(history.load()) == 1

    def test_clear(self, history):
        history.add(_record(1))

        history.clear()

        assert history.load() == []

    def test_custom_limit(self, tmp_path):
        history = CompressionHistory(tmp_path / "h.json", limit=2)
        for index in range(4):
            history.add(_record(index))

        assert [record.file_name for record in history.load()] == ["file_3.pdf", "file_2.pdf"]

    def test_write_failure(self, tmp_path):
        """Test that an unwritable location raises a config error."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file")
        history = CompressionHistory(blocker / "history.json")

        with pytest.raises(ConfigError) as exc_info:
            history.add(_record(1))

        assert exc_info.value.code == ErrorCode.OS_ERROR
