from __future__ import annotations

import math
import re
from collections.abc import Iterable
from functools import lru_cache
from pathlib import PurePath
from typing import Any

"""Cell normalizer.

Canonicalizes raw cell content so keyword matching is robust against the
noise found in hand-maintained spreadsheets: BOM / zero-width / bidi marks,
case, stray quotes (סה"כ vs סה״כ) and separators (ש.ב vs ש"ב).
"""

__all__ = [
    "clean_cell",
    "normalize_cell",
    "normalize_header",
    "contains_term",
    "matches_any",
    "matches_word",
    "normalized_terms",
    "parse_score",
    "leading_number",
    "is_numeric_like",
    "has_letters",
    "is_blank_row",
    "subject_from_filename",
]

# BOM, zero-width space/joiners, LRM/RLM, bidi embeddings/overrides/isolates
_INVISIBLE_RE = re.compile("[\ufeff\u200b-\u200f\u202a-\u202e\u2066-\u2069]")
_WS_RE = re.compile(r"\s+")
_HEADER_NOISE_RE = re.compile("[-_.\"'`\u05f3\u05f4\u2018\u2019\u201c\u201d]")
_SCORE_RE = re.compile(r"^-?\d+(\.\d+)?$")
_LEADING_NUMBER_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")
_NUMERIC_LIKE_RE = re.compile(r"^[\d.,%\-]+$")
_LETTER_RE = re.compile("[\u0590-\u05ffA-Za-z]")
_LATIN_RE = re.compile("[a-z]")

# terms this short only match whole words ("hw", "no", "id", "ש ב")
SHORT_TERM_LENGTH = 3

# trailing marker turning a Latin term into a word-prefix stem ("volunt*")
STEM_MARKER = "*"


def clean_cell(value: Any) -> str:
    """Raw cell -> trimmed text. None/NaN -> ''."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            value = int(value)
    return _INVISIBLE_RE.sub("", str(value)).strip()


def normalize_cell(value: Any) -> str:
    return _WS_RE.sub(" ", clean_cell(value).casefold()).strip()


def normalize_header(value: Any) -> str:
    """normalize_cell + quotes/separators replaced by spaces."""
    return _WS_RE.sub(" ", _HEADER_NOISE_RE.sub(" ", normalize_cell(value))).strip()


def matches_word(text: str, term: str) -> bool:
    """Whole-word containment on already normalized text."""
    if not term:
        return False
    return f" {term} " in f" {text} "


@lru_cache(maxsize=1024)
def _latin_term_pattern(term: str) -> re.Pattern[str]:
    if term.endswith(STEM_MARKER):
        return re.compile(rf"(?<![a-z0-9]){re.escape(term[:-1])}")
    return re.compile(rf"(?<![a-z0-9]){re.escape(term)}(?:s|es)?(?![a-z0-9])")


def contains_term(text: str, term: str) -> bool:
    """Keyword containment on normalized text.

    Short terms match whole words only. Latin-script terms match at word
    boundaries (plural "s"/"es" allowed), or as a word prefix when written
    with a trailing "*" ("justifi*"). Hebrew terms match as substrings, since
    they carry attached prefixes (ה, ב, ל, ו).
    """
    term = term.strip()
    if not term or term == STEM_MARKER:
        return False
    if len(term.rstrip(STEM_MARKER)) <= SHORT_TERM_LENGTH:
        return matches_word(text, term.rstrip(STEM_MARKER))
    if _LATIN_RE.search(term):
        return _latin_term_pattern(term).search(text) is not None
    return term in text


def matches_any(text: str, terms: Iterable[str]) -> bool:
    return any(contains_term(text, t) for t in terms)


def parse_score(value: Any) -> float:
    """Strict numeric parse used for grades.

    Accepts an optional leading minus, digits and an optional single decimal
    part. Thousands separators, units, '%' etc. -> NaN.
    """
    if isinstance(value, bool):
        return math.nan
    text = clean_cell(value)
    if not _SCORE_RE.match(text):
        return math.nan
    return float(text)


def leading_number(value: Any) -> float:
    """Lenient parse: the number a cell starts with ('3 פעמים' -> 3.0)."""
    if isinstance(value, bool):
        return math.nan
    m = _LEADING_NUMBER_RE.match(clean_cell(value))
    return float(m.group(1)) if m else math.nan


def is_numeric_like(text: str) -> bool:
    """Digits and number punctuation only (grades, ids, percentages)."""
    return bool(_NUMERIC_LIKE_RE.match(text))


def has_letters(text: str) -> bool:
    return bool(_LETTER_RE.search(text))


def is_blank_row(row: Iterable[Any] | None) -> bool:
    if not row:
        return True
    return not any(clean_cell(c) for c in row)


def subject_from_filename(file_name: str) -> str:
    """'math_grades-2024.xlsx' -> 'math grades 2024'."""
    stem = re.sub(r"\.[^/.]+$", "", PurePath(file_name).name)
    return _WS_RE.sub(" ", re.sub(r"[_-]", " ", stem)).strip()


@lru_cache(maxsize=256)
def normalized_terms(terms: tuple[str, ...]) -> tuple[str, ...]:
    """Keyword tuple normalized like headers (cached per KeywordConfig field)."""
    return tuple(t for t in (normalize_header(term) for term in terms) if t)
