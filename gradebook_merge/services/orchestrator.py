from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path

from ..excel.reader import UnreadableFileError, read_raw_grid
from ..logging.error_log import (
    EMPTY_FILE,
    INVALID_MAPPING,
    NAME_COLUMN_NOT_FOUND,
    PROCESSING_ERROR,
    UNREADABLE_FILE,
    ErrorLogBuffer,
)
from ..logging.init import file_logger
from ..models.column_mapping import UNRESOLVED, ColumnMapping
from ..models.config_models import ReconcileConfig
from ..models.processing_result import FileStat, ProcessingResult
from ..models.source_file import FileStatus, SourceFile
from .aggregator import StudentAggregator
from .column_classifier import MappingError, confirm_mapping, guess_mapping
from .extraction import extract_students
from .progress import ProgressTracker

"""Run orchestration.

process_files() reads each file in order, extracts its students and folds
them into one StudentAggregator. Every file is isolated: whatever goes
wrong inside one file is recorded (log line + error log record) and the
run moves on. A file that fails or is skipped contributes no students.

Only a missing/unreadable source directory is fatal (ProcessingError).
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ProcessingError",
    "scan_source_files",
    "process_files",
    "process_all",
]


class ProcessingError(Exception):
    """Base exception for processing errors."""
    pass


def scan_source_files(directory: Path, suffixes: Iterable[str] = (".xlsx", ".xlsm", ".xls", ".csv")) -> list[Path]:
    """Spreadsheet files directly inside directory, sorted by file name.

    Raises:
        ProcessingError: directory missing, not a directory, or unreadable
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")

    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")

    wanted = {s.lower() for s in suffixes}
    try:
        found = [
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in wanted and not p.name.startswith("~$")
        ]
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e
    return sorted(found, key=lambda p: p.name)


def process_files(
    paths: Iterable[Path],
    config: ReconcileConfig,
    *,
    mappings: Mapping[str, ColumnMapping] | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ProcessingResult:
    """Process files sequentially and merge their students.

    Args:
        paths: files in processing order (first-non-empty-wins fields such as
            phone numbers depend on this order)
        config: run configuration
        mappings: confirmed mappings by file name; they take precedence over
            config.mappings. Files without one are auto-guessed.
        error_log: buffer to record into (a fresh one is created and flushed
            when omitted)

    Returns:
        ProcessingResult with per-file stats and the merged students
    """
    start_time = datetime.now(UTC)
    confirmed = dict(config.mappings)
    if mappings:
        confirmed.update(mappings)

    own_log = error_log is None
    log = error_log if error_log is not None else ErrorLogBuffer()

    file_paths = list(paths)
    aggregator = StudentAggregator()
    file_stats: list[FileStat] = []
    total_records = 0

    with ProgressTracker(len(file_paths)) as progress:
        for path in file_paths:
            progress.start_file(path)
            source = _process_single_file(path, config, confirmed.get(path.name), aggregator, log)
            if source.status is FileStatus.SUCCESS:
                total_records += source.records
            progress.finish_file(source, students=len(aggregator))

            file_stats.append(
                FileStat(
                    file_name=source.name,
                    status=source.status.value,
                    students=source.students_found,
                    records=source.records,
                    elapsed_seconds=source.elapsed_seconds,
                    error=source.error,
                )
            )

    if own_log:
        # flush once per run
        try:
            written = log.flush()
        except OSError as e:
            logger.warning("could not write error log: %s", e)
        else:
            if written is not None:
                logger.info("error log written: %s", written)

    end_time = datetime.now(UTC)
    return ProcessingResult(
        success_files=progress.tally[FileStatus.SUCCESS],
        skipped_files=progress.tally[FileStatus.SKIPPED],
        failed_files=progress.tally[FileStatus.FAILED],
        total_records=total_records,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
        students=aggregator.students(),
    )


def process_all(config: ReconcileConfig) -> ProcessingResult:
    """Scan config.source_directory and process every spreadsheet in it.

    Raises:
        ProcessingError: no source directory configured, or it cannot be scanned
    """
    if not config.source_directory:
        raise ProcessingError("no source_directory configured and no input paths given")
    paths = scan_source_files(Path(config.source_directory), config.file_suffixes)
    logger.info("found %d file(s) in %s", len(paths), config.source_directory)
    return process_files(paths, config)


def _process_single_file(
    path: Path,
    config: ReconcileConfig,
    confirmed: ColumnMapping | None,
    aggregator: StudentAggregator,
    error_log: ErrorLogBuffer,
) -> SourceFile:
    """Read, map and extract one file; fold its students on success only."""
    start_time = datetime.now(UTC)
    name = path.name
    flog = file_logger(logger, name)

    def done(status: FileStatus, mapping: ColumnMapping | None = None, students: int = 0,
             records: int = 0, error: str | None = None) -> SourceFile:
        return SourceFile(
            path=path,
            name=name,
            mapping=mapping,
            start_time=start_time,
            end_time=datetime.now(UTC),
            status=status,
            students_found=students,
            records=records,
            error=error,
        )

    try:
        grid = read_raw_grid(path)
    except UnreadableFileError as e:
        flog.error("unreadable file: %s", e)
        error_log.record(name, UNREADABLE_FILE, str(e))
        return done(FileStatus.FAILED, error=str(e))

    try:
        if not grid:
            flog.warning("file is empty, skipped")
            error_log.record(name, EMPTY_FILE, "no rows in first sheet")
            return done(FileStatus.SKIPPED, error="empty file")

        if confirmed is not None:
            try:
                mapping = confirm_mapping(confirmed, grid)
            except MappingError as e:
                flog.warning("mapping rejected, skipped: %s", e)
                error_log.record(name, INVALID_MAPPING, str(e))
                return done(FileStatus.SKIPPED, mapping=confirmed, error=str(e))
        else:
            mapping = guess_mapping(grid, config)

        if mapping.student_name_index == UNRESOLVED:
            flog.warning("could not identify the student name column, skipped")
            error_log.record(name, NAME_COLUMN_NOT_FOUND, "no student name column", row=mapping.header_row_index + 1)
            return done(FileStatus.SKIPPED, mapping=mapping, error="name column not found")

        flog.debug("mapping %s", mapping.to_dict())
        students = extract_students(grid, mapping, name, config)
        records = sum(len(s.subjects) for s in students)
    except Exception as e:
        flog.error("processing failed: %s", e)
        flog.debug("traceback", exc_info=True)
        error_log.record(name, PROCESSING_ERROR, f"{type(e).__name__}: {e}")
        return done(FileStatus.FAILED, error=str(e))

    aggregator.fold(students)
    flog.info("%d student(s), %d record(s)", len(students), records)
    return done(FileStatus.SUCCESS, mapping=mapping, students=len(students), records=records)
