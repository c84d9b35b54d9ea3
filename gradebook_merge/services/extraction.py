from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..models.column_mapping import UNRESOLVED, ColumnMapping
from ..models.config_models import ReconcileConfig
from ..models.student import Student, SubjectRecord
from .column_classifier import header_labels, is_teacher_header
from .normalizer import clean_cell, subject_from_filename
from .row_filter import StudentRegistry, iter_student_rows

"""Per-file extraction: accepted rows -> Student / SubjectRecord.

Works on a file-local registry so a file that fails halfway never leaks
partial students into the session; the aggregator folds the returned list.
"""

__all__ = [
    "GHOST_COLUMN_PREFIX",
    "retained_columns",
    "extract_students",
]

logger = logging.getLogger(__name__)

# pandas-style placeholder for headerless columns
GHOST_COLUMN_PREFIX = "unnamed"


def retained_columns(headers: Sequence[str], mapping: ColumnMapping, config: ReconcileConfig) -> list[int]:
    """Column indices whose cells are copied into SubjectRecord.cells."""
    skipped = {mapping.student_name_index, mapping.phone_index, mapping.subject_index}
    keep: list[int] = []
    for i, label in enumerate(headers):
        if i in skipped:
            continue
        if label.casefold().startswith(GHOST_COLUMN_PREFIX):
            continue
        if is_teacher_header(label, config.keywords):
            continue
        keep.append(i)
    return keep


def _subject_for_row(row: Sequence[Any], mapping: ColumnMapping, default_subject: str) -> str:
    if mapping.subject_index != UNRESOLVED and mapping.subject_index < len(row):
        value = clean_cell(row[mapping.subject_index])
        if len(value) > 1:
            return value
    return default_subject


def extract_students(
    grid: Sequence[Sequence[Any]],
    mapping: ColumnMapping,
    file_name: str,
    config: ReconcileConfig,
) -> list[Student]:
    """Build this file's students, one SubjectRecord per accepted row.

    Students are returned in first-seen order; the same name appearing on
    several rows yields one Student with several records.
    """
    if mapping.student_name_index == UNRESOLVED:
        return []

    headers = header_labels(grid, mapping.header_row_index)
    columns = retained_columns(headers, mapping, config)
    default_subject = subject_from_filename(file_name) or file_name

    registry = StudentRegistry()
    rows = 0
    for accepted in iter_student_rows(grid, mapping, config.keywords):
        student = registry.resolve(accepted.full_name)
        row = accepted.cells

        if mapping.phone_index != UNRESOLVED and mapping.phone_index < len(row):
            student.adopt_phone(row[mapping.phone_index])

        record = SubjectRecord(subject_name=_subject_for_row(row, mapping, default_subject))
        for col in columns:
            if col >= len(row):
                break
            raw = row[col]
            if not clean_cell(raw):
                continue
            record.add_cell(headers[col], raw, col)
        if accepted.forward_filled and not record.cells:
            # continuation row whose only data sat in excluded columns
            continue
        student.subjects.append(record)
        rows += 1

    logger.debug("%s: %d students from %d rows", file_name, len(registry), rows)
    return registry.students()
