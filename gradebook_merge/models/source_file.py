from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from .column_mapping import ColumnMapping

"""SourceFile domain model and FileStatus enum.

A SourceFile is the processing context for one input spreadsheet, tracking it
from discovery through success / skip / failure.
"""


class FileStatus(Enum):
    """Status of one source file.

    State transitions: pending → processing → (success | skipped | failed)

    - SKIPPED: readable, but nothing could be extracted (empty grid, no name
      column, mapping rejected). Not an error for the run.
    - FAILED: the file could not be read or processing raised.
    """
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceFile:
    path: Path
    name: str
    mapping: ColumnMapping | None = None  # mapping actually used (guessed or confirmed)
    start_time: datetime | None = None
    end_time: datetime | None = None
    status: FileStatus = FileStatus.PENDING
    students_found: int = 0  # distinct names accepted in this file
    records: int = 0  # subject records created from this file
    error: str | None = None  # skip / failure reason summary

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()
