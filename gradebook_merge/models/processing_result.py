from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .student import Student

"""Processing result models.

ProcessingResult aggregates the per-file statistics of one run together with
the merged Student list handed to consumers.
"""


class RunOutcome(Enum):
    """What the caller should tell the user.

    NO_DATA and FILES_FAILED both mean "zero students", but need different
    guidance: check the column layout vs. check the files themselves.
    """
    OK = "ok"
    NO_DATA = "no_data"
    FILES_FAILED = "files_failed"


@dataclass(frozen=True)
class FileStat:
    """Per-file processing statistics."""
    file_name: str
    status: str  # success/skipped/failed
    students: int
    records: int
    elapsed_seconds: float
    error: str | None = None


@dataclass(frozen=True)
class ProcessingResult:
    success_files: int
    skipped_files: int
    failed_files: int
    total_records: int  # subject records across all files
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] = field(default_factory=list)
    students: list[Student] = field(default_factory=list)  # merged, processing order

    @property
    def total_files(self) -> int:
        return self.success_files + self.skipped_files + self.failed_files

    @property
    def total_students(self) -> int:
        return len(self.students)

    @property
    def outcome(self) -> RunOutcome:
        if self.students:
            return RunOutcome.OK
        if self.failed_files > 0:
            return RunOutcome.FILES_FAILED
        return RunOutcome.NO_DATA
