from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import FILE_LEVEL_ROW, ErrorRecord

"""Structured error log (JSON Lines).

- one record per line, fixed key set (see error_log_schema.json)
- one file per run: logs/errors-YYYYMMDD-HHMMSS.log (UTC)
- records are buffered and written once on flush(); nothing is created
  when the run produced no errors
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "FILE_LEVEL_ROW",
    "UNREADABLE_FILE",
    "EMPTY_FILE",
    "NAME_COLUMN_NOT_FOUND",
    "INVALID_MAPPING",
    "PROCESSING_ERROR",
    "SCHEMA_PATH",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"
SCHEMA_PATH = Path(__file__).parent / "error_log_schema.json"

UNREADABLE_FILE = "UNREADABLE_FILE"
EMPTY_FILE = "EMPTY_FILE"
NAME_COLUMN_NOT_FOUND = "NAME_COLUMN_NOT_FOUND"
INVALID_MAPPING = "INVALID_MAPPING"
PROCESSING_ERROR = "PROCESSING_ERROR"


class ErrorLogBuffer:
    """In-memory buffer for error records. flush() appends JSON Lines.

    The file path is fixed on first access; runs are sequential so no
    locking is needed.
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def record(self, file: str, error_type: str, message: str, row: int = FILE_LEVEL_ROW) -> ErrorRecord:
        rec = ErrorRecord.create(file=file, row=row, error_type=error_type, message=message)
        self.append(rec)
        return rec

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the log path, or None if empty."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
