from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..models.config_models import KeywordConfig
from .normalizer import clean_cell, contains_term, is_numeric_like, normalize_header, normalized_terms

"""Header row locator.

Scores the first rows of a RawGrid as header candidates:

- NAME_HEADER_BONUS when a cell exactly equals a student-name header term
- PHONE_HEADER_BONUS when a cell contains a phone header term
- +1 per text cell (length > 1, not a number) as a density tiebreaker

The name bonus is larger than any density score a row can reach, so a row
holding a name header always wins. No positive score -> row 0.
"""

__all__ = [
    "NAME_HEADER_BONUS",
    "PHONE_HEADER_BONUS",
    "DEFAULT_SCAN_LIMIT",
    "score_header_row",
    "locate_header_row",
]

logger = logging.getLogger(__name__)

NAME_HEADER_BONUS = 1000
PHONE_HEADER_BONUS = 5
DEFAULT_SCAN_LIMIT = 50


def score_header_row(row: Sequence[Any] | None, keywords: KeywordConfig) -> int:
    if not row:
        return 0

    name_terms = set(normalized_terms(keywords.name_headers))
    phone_terms = normalized_terms(keywords.phone_headers)

    score = 0
    has_name = False
    has_phone = False
    for cell in row:
        text = clean_cell(cell)
        if not text:
            continue
        header = normalize_header(text)
        if header in name_terms:
            has_name = True
        if any(contains_term(header, t) for t in phone_terms):
            has_phone = True
        if len(text) > 1 and not is_numeric_like(text):
            score += 1

    if has_name:
        score += NAME_HEADER_BONUS
    if has_phone:
        score += PHONE_HEADER_BONUS
    return score


def locate_header_row(
    grid: Sequence[Sequence[Any]] | None,
    keywords: KeywordConfig,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
) -> int:
    """Return the index of the most header-like row within scan_limit rows."""
    if not grid:
        return 0

    best_index = 0
    best_score = 0
    for index, row in enumerate(grid[:scan_limit]):
        score = score_header_row(row, keywords)
        # strictly greater: earliest row wins ties
        if score > best_score:
            best_score = score
            best_index = index

    logger.debug("header row=%d score=%d", best_index, best_score)
    return best_index
