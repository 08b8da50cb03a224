"""
Compression history persisted as a small JSON file.

The file holds the most recent compressions, newest first, capped at
HISTORY_LIMIT entries. Writes replace the file atomically and the last
writer wins. Invalid entries are dropped on load and an unreadable file
reads as an empty history.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

import jsonschema

from .config import HISTORY_JSON_SCHEMA, HISTORY_LIMIT, HISTORY_RECORD_SCHEMA, get_history_path
from .errors import ConfigError, ErrorCode
from .models import HistoryRecord

logger = logging.getLogger(__name__)


class CompressionHistory:
    """Read and append compression history records."""

    def __init__(self, path: Path | None = None, limit: int = HISTORY_LIMIT) -> None:
        self._path = Path(path) if path is not None else get_history_path()
        self._limit = limit

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[HistoryRecord]:
        """
        Load the stored history, newest first.

        Returns:
            Valid records only; an empty list when the file is missing or corrupt
        """
        if not self._path.exists():
            return []

        try:
            with open(self._path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Compression history at {self._path} is unreadable, starting fresh: {e}")
            return []

        if not isinstance(raw, list):
            logger.warning(f"Compression history at {self._path} is not a list, starting fresh")
            return []

        records: list[HistoryRecord] = []
        for entry in raw:
            try:
                jsonschema.validate(entry, HISTORY_RECORD_SCHEMA)
            except jsonschema.ValidationError as e:
                logger.warning(f"Dropping invalid history entry: {e.message}")
                continue
            records.append(HistoryRecord.from_dict(entry))

        return records[: self._limit]

    def add(self, record: HistoryRecord) -> list[HistoryRecord]:
        """
        Prepend a record and persist the capped list.

        Args:
            record: The new entry

        Returns:
            The history as saved

        Raises:
            ConfigError: If the file cannot be written
        """
        records = [record, *self.load()][: self._limit]
        self._save(records)
        logger.info(f"Recorded compression of {record.file_name} ({record.compression_ratio}% saved)")
        return records

    def clear(self) -> None:
        self._save([])

    def _save(self, records: list[HistoryRecord]) -> None:
        payload = [record.to_dict() for record in records]
        jsonschema.validate(payload, HISTORY_JSON_SCHEMA)

        temp_path = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w", suffix=".json", dir=self._path.parent, delete=False, encoding="utf-8"
            ) as temp_file:
                json.dump(payload, temp_file, ensure_ascii=False, indent=2)
                temp_path = temp_file.name
            os.replace(temp_path, self._path)
        except OSError as e:
            if temp_path:
                Path(temp_path).unlink(missing_ok=True)
            raise ConfigError(
                code=ErrorCode.OS_ERROR,
                user_message="Could not save compression history",
                technical_message=str(e),
                retriable=True,
            ) from e
