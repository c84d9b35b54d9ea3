from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from ..models.column_mapping import UNRESOLVED, ColumnMapping
from ..models.config_models import KeywordConfig
from ..models.student import Student
from .normalizer import clean_cell, contains_term, normalize_header, normalized_terms

"""Row filter & student resolver.

Decides which data rows are real student rows and threads the forward-fill
state (current_student) through the row loop explicitly:

- accepted named row   -> current_student = that name
- name blank/too short -> reuse current_student when a non-name cell has data
- rejected row         -> current_student = None (structural break)
- fully blank row      -> current_student = None
"""

__all__ = [
    "AcceptedRow",
    "StudentRegistry",
    "is_valid_student_name",
    "iter_student_rows",
]

logger = logging.getLogger(__name__)

_NUMERIC_NAME_STRIP_RE = re.compile(r"[-\s./]")


def is_valid_student_name(name: Any, keywords: KeywordConfig) -> bool:
    text = clean_cell(name)
    if len(text) < 2:
        return False

    normalized = normalize_header(text)
    if normalized in normalized_terms(keywords.invalid_row_keywords):
        return False
    if normalized in normalized_terms(keywords.name_headers):
        return False
    # summary markers may be embedded ("ממוצע כיתה", "Total:")
    if any(contains_term(normalized, m) for m in normalized_terms(keywords.summary_markers)):
        return False
    stripped = _NUMERIC_NAME_STRIP_RE.sub("", text)
    if stripped.isdigit():
        return False
    lowered = text.casefold()
    if any(lowered.startswith(s.casefold()) for s in keywords.teacher_salutations):
        return False
    return True


def _has_data_besides(row: Sequence[Any], name_idx: int) -> bool:
    return any(clean_cell(c) for i, c in enumerate(row) if i != name_idx)


@dataclass(frozen=True)
class AcceptedRow:
    row_index: int  # 0-based index into the grid
    full_name: str
    cells: Sequence[Any]
    forward_filled: bool = False


def iter_student_rows(
    grid: Sequence[Sequence[Any]],
    mapping: ColumnMapping,
    keywords: KeywordConfig,
) -> Iterator[AcceptedRow]:
    """Yield every accepted data row below the header row, in grid order."""
    name_idx = mapping.student_name_index
    if name_idx == UNRESOLVED:
        return

    current_student: str | None = None
    for row_index in range(mapping.header_row_index + 1, len(grid)):
        row = grid[row_index] or []
        if not any(clean_cell(c) for c in row):
            current_student = None
            continue

        name = clean_cell(row[name_idx]) if name_idx < len(row) else ""
        if len(name) < 2:
            if current_student is None or not _has_data_besides(row, name_idx):
                continue
            yield AcceptedRow(row_index, current_student, row, forward_filled=True)
            continue

        if not is_valid_student_name(name, keywords):
            logger.debug("row %d rejected: %r", row_index + 1, name)
            current_student = None
            continue

        current_student = name
        yield AcceptedRow(row_index, name, row)


class StudentRegistry:
    """Identity map keyed by exact full name, in first-seen order."""

    def __init__(self) -> None:
        self._students: dict[str, Student] = {}

    def resolve(self, full_name: str) -> Student:
        student = self._students.get(full_name)
        if student is None:
            student = Student.create(full_name)
            self._students[full_name] = student
        return student

    def get(self, full_name: str) -> Student | None:
        return self._students.get(full_name)

    def students(self) -> list[Student]:
        return list(self._students.values())

    def __len__(self) -> int:
        return len(self._students)

    def __contains__(self, full_name: object) -> bool:
        return full_name in self._students
