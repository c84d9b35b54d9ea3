from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..models.column_mapping import UNRESOLVED, ColumnMapping
from ..models.config_models import KeywordConfig, ReconcileConfig
from .header_locator import locate_header_row
from .normalizer import (
    clean_cell,
    contains_term,
    has_letters,
    is_numeric_like,
    matches_any,
    normalize_header,
    normalized_terms,
)

"""Column classifier.

Resolves the semantic columns of a grid once its header row is known.

Two entry modes share the same keyword logic:
- auto-guess: guess_mapping(grid, config) -> ColumnMapping
- user-confirmed: confirm_mapping(mapping, grid) validates a mapping that a
  human adjusted after looking at preview_rows(grid, mapping)

Name column resolution: exact header match (teacher columns excluded), then
content-based scoring of the sampled data rows.
"""

__all__ = [
    "MappingError",
    "BLANK_HEADER_PREFIX",
    "header_labels",
    "is_teacher_header",
    "find_name_column",
    "detect_name_column_by_content",
    "find_phone_column",
    "find_keyword_column",
    "guess_mapping",
    "confirm_mapping",
    "preview_rows",
]

logger = logging.getLogger(__name__)

BLANK_HEADER_PREFIX = "עמודה"

# content-based name detection weights
_TEXT_BONUS = 2
_NUMERIC_PENALTY = 10
_TEACHER_PENALTY = 20


class MappingError(Exception):
    """A user-confirmed ColumnMapping cannot be applied to the grid."""
    pass


def header_labels(grid: Sequence[Sequence[Any]], header_row_index: int) -> list[str]:
    """Cleaned header labels; blank headers become 'עמודה <n>' (1-based).

    The list is as wide as the widest row so data beyond the header's last
    labelled cell still gets a label.
    """
    header = grid[header_row_index] if 0 <= header_row_index < len(grid) else []
    width = max((len(r) for r in grid if r), default=0)
    labels: list[str] = []
    for i in range(width):
        text = clean_cell(header[i]) if i < len(header) else ""
        labels.append(text or f"{BLANK_HEADER_PREFIX} {i + 1}")
    return labels


def is_teacher_header(label: str, keywords: KeywordConfig) -> bool:
    return matches_any(normalize_header(label), normalized_terms(keywords.teacher_terms))


def find_name_column(headers: Sequence[str], keywords: KeywordConfig) -> int:
    """First header exactly equal to a name term and not a teacher column."""
    name_terms = set(normalized_terms(keywords.name_headers))
    for i, label in enumerate(headers):
        if is_teacher_header(label, keywords):
            continue
        if normalize_header(label) in name_terms:
            return i
    return UNRESOLVED


def detect_name_column_by_content(
    grid: Sequence[Sequence[Any]],
    header_row_index: int,
    headers: Sequence[str],
    keywords: KeywordConfig,
    sample_rows: int = 20,
) -> int:
    """Pick the column whose sampled values look most like person names.

    Per sampled value (length >= 2): +2 for letter-bearing text, -10 for
    number-like values, -20 for text containing a teacher term. Columns with
    a teacher header are skipped. Returns UNRESOLVED unless the best score is
    positive.
    """
    samples = grid[header_row_index + 1 : header_row_index + 1 + sample_rows]
    if not samples:
        return UNRESOLVED

    teacher_terms = normalized_terms(keywords.teacher_terms)
    width = max(len(headers), max((len(r) for r in samples if r), default=0))

    best_col = UNRESOLVED
    best_score: int | None = None
    for col in range(width):
        if col < len(headers) and is_teacher_header(headers[col], keywords):
            continue

        score = 0
        checked = 0
        for row in samples:
            text = clean_cell(row[col]) if row and col < len(row) else ""
            if len(text) < 2:
                continue
            checked += 1
            if is_numeric_like(text):
                score -= _NUMERIC_PENALTY
            elif has_letters(text):
                if matches_any(normalize_header(text), teacher_terms):
                    score -= _TEACHER_PENALTY
                else:
                    score += _TEXT_BONUS

        if checked and (best_score is None or score > best_score):
            best_score = score
            best_col = col

    if best_score is None or best_score <= 0:
        return UNRESOLVED
    return best_col


def find_phone_column(headers: Sequence[str], keywords: KeywordConfig) -> int:
    return find_keyword_column(headers, keywords.phone_headers)


def find_keyword_column(
    headers: Sequence[str],
    terms: Sequence[str],
    exclude: Sequence[int] = (),
) -> int:
    """First header containing any of terms, skipping the excluded indices."""
    normalized = normalized_terms(tuple(terms))
    for i, label in enumerate(headers):
        if i in exclude:
            continue
        header = normalize_header(label)
        if any(contains_term(header, t) for t in normalized):
            return i
    return UNRESOLVED


def guess_mapping(grid: Sequence[Sequence[Any]], config: ReconcileConfig) -> ColumnMapping:
    """Auto-guess mode: locate the header row and every semantic column."""
    keywords = config.keywords
    if not grid:
        return ColumnMapping()

    header_row = locate_header_row(grid, keywords, config.header_scan_limit)
    headers = header_labels(grid, header_row)

    name_idx = find_name_column(headers, keywords)
    if name_idx == UNRESOLVED:
        name_idx = detect_name_column_by_content(
            grid, header_row, headers, keywords, config.name_sample_rows
        )
        if name_idx != UNRESOLVED:
            logger.debug("name column detected by content: %d (%s)", name_idx, headers[name_idx])

    taken = [name_idx]
    phone_idx = find_keyword_column(headers, keywords.phone_headers, exclude=taken)
    taken.append(phone_idx)
    subject_idx = find_keyword_column(headers, keywords.subject_headers, exclude=taken)
    taken.append(subject_idx)
    grade_idx = find_keyword_column(headers, keywords.grade_or_event_headers, exclude=taken)
    taken.append(grade_idx)
    justification_idx = find_keyword_column(headers, keywords.justification_headers, exclude=taken)

    return ColumnMapping(
        header_row_index=header_row,
        student_name_index=name_idx,
        subject_index=subject_idx,
        grade_or_event_index=grade_idx,
        justification_index=justification_idx,
        phone_index=phone_idx,
    )


def confirm_mapping(mapping: ColumnMapping, grid: Sequence[Sequence[Any]]) -> ColumnMapping:
    """User-confirmed mode: validate a (possibly overridden) mapping.

    Raises:
        MappingError: name column unresolved, header row outside the grid, or
            a column index beyond the widest row.
    """
    if mapping.student_name_index == UNRESOLVED:
        raise MappingError("student name column must be selected")
    if not 0 <= mapping.header_row_index < len(grid):
        raise MappingError(
            f"header row {mapping.header_row_index} outside grid of {len(grid)} rows"
        )
    width = max((len(r) for r in grid if r), default=0)
    for role, index in mapping.column_indices().items():
        if index != UNRESOLVED and not 0 <= index < width:
            raise MappingError(f"{role}={index} outside grid of {width} columns")
    return mapping


_PREVIEW_ROLES = {
    "student_name": "student_name_index",
    "subject": "subject_index",
    "grade_or_event": "grade_or_event_index",
    "justification": "justification_index",
    "phone": "phone_index",
}


def preview_rows(
    grid: Sequence[Sequence[Any]],
    mapping: ColumnMapping,
    count: int = 5,
) -> list[dict[str, str]]:
    """First non-blank data rows under mapping, as role -> cleaned value.

    Unmapped roles are omitted from every row.
    """
    rows: list[dict[str, str]] = []
    for row in grid[mapping.header_row_index + 1 :]:
        if len(rows) >= count:
            break
        if not row or not any(clean_cell(c) for c in row):
            continue
        preview: dict[str, str] = {}
        for role, attr in _PREVIEW_ROLES.items():
            index = getattr(mapping, attr)
            if index == UNRESOLVED:
                continue
            preview[role] = clean_cell(row[index]) if index < len(row) else ""
        rows.append(preview)
    return rows
