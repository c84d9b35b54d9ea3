from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..models.classified_value import ClassifiedValue, ValueTag
from ..models.config_models import KeywordConfig
from ..models.student import Student, SubjectRecord
from .normalizer import (
    clean_cell,
    leading_number,
    matches_any,
    matches_word,
    normalize_header,
    normalized_terms,
    parse_score,
)

"""Value classifier.

Tags one (header, value) cell as grade / positiveEvent / negativeEvent /
ignored / other. The rules are an ordered tuple of pure functions over a
CellContext; the first rule returning a tag wins, OTHER is the fallback.

    positive -> negative -> grade -> ignored -> other

Classification is computed on demand and never stored on the Student.
"""

__all__ = [
    "GRADE_MIN",
    "GRADE_MAX",
    "CellContext",
    "Rule",
    "RULES",
    "ValueClassifier",
    "is_positive",
    "is_negative",
    "is_grade",
    "is_ignored",
]

GRADE_MIN = 0.0
GRADE_MAX = 100.0

_NO_COUNT_VALUES = frozenset({"0", "-"})


@dataclass(frozen=True)
class CellContext:
    header: str  # normalized header
    value: str  # normalized value text
    raw: Any
    keywords: KeywordConfig

    @classmethod
    def build(cls, header: str, raw: Any, keywords: KeywordConfig) -> CellContext:
        return cls(header=normalize_header(header), value=normalize_header(raw), raw=raw, keywords=keywords)

    def header_has(self, terms: tuple[str, ...]) -> bool:
        return matches_any(self.header, normalized_terms(terms))

    def value_has(self, terms: tuple[str, ...]) -> bool:
        return matches_any(self.value, normalized_terms(terms))


Rule = Callable[[CellContext], "ValueTag | None"]


def is_positive(ctx: CellContext) -> ValueTag | None:
    # header and value read together: "מילה" / "טובה" split across them still counts
    combined = f"{ctx.header} {ctx.value}".strip()
    if matches_any(combined, normalized_terms(ctx.keywords.positive_keywords)):
        return ValueTag.POSITIVE_EVENT
    return None


def _is_no_answer(ctx: CellContext) -> bool:
    if parse_score(ctx.raw) == 0:
        return True
    return ctx.value_has(ctx.keywords.negative_answers)


def is_negative(ctx: CellContext) -> ValueTag | None:
    kw = ctx.keywords

    # header counts bad things ("אי הכנת ש.ב", "missing"): the value decides
    if ctx.header_has(kw.negative_count_keywords):
        count = leading_number(ctx.raw)
        if not math.isnan(count):
            return ValueTag.NEGATIVE_EVENT if count > 0 else None
        text = clean_cell(ctx.raw)
        if text and text not in _NO_COUNT_VALUES:
            return ValueTag.NEGATIVE_EVENT
        return None

    if ctx.header_has(kw.behavior_keywords):
        if ctx.header_has(kw.homework_keywords) or ctx.header_has(kw.equipment_keywords):
            return ValueTag.NEGATIVE_EVENT if _is_no_answer(ctx) else None
        return ValueTag.NEGATIVE_EVENT

    # free-text column whose value names a behaviour ("איחור")
    if ctx.value_has(kw.behavior_keywords):
        return ValueTag.NEGATIVE_EVENT
    return None


def _header_is_ignored(ctx: CellContext) -> bool:
    return any(
        ctx.header == term or matches_word(ctx.header, term)
        for term in normalized_terms(ctx.keywords.ignored_headers)
    )


def is_grade(ctx: CellContext) -> ValueTag | None:
    kw = ctx.keywords
    if _header_is_ignored(ctx):
        return None
    if ctx.header_has(kw.non_grade_keywords) or ctx.header_has(kw.negative_count_keywords):
        return None
    if ctx.header_has(kw.teacher_terms):
        return None
    score = parse_score(ctx.raw)
    if math.isnan(score) or not GRADE_MIN <= score <= GRADE_MAX:
        return None
    return ValueTag.GRADE


def is_ignored(ctx: CellContext) -> ValueTag | None:
    return ValueTag.IGNORED if _header_is_ignored(ctx) else None


RULES: tuple[Rule, ...] = (is_positive, is_negative, is_grade, is_ignored)


class ValueClassifier:
    """Shared classification entry point for every consumer."""

    def __init__(self, keywords: KeywordConfig, rules: tuple[Rule, ...] = RULES) -> None:
        self.keywords = keywords
        self.rules = rules

    def tag(self, header: str, value: Any) -> ValueTag:
        ctx = CellContext.build(header, value, self.keywords)
        for rule in self.rules:
            tag = rule(ctx)
            if tag is not None:
                return tag
        return ValueTag.OTHER

    def classify(self, header: str, value: Any, subject_name: str = "") -> ClassifiedValue:
        tag = self.tag(header, value)
        score = parse_score(value) if tag is ValueTag.GRADE else None
        return ClassifiedValue(tag=tag, value=value, subject_name=subject_name, header=header, score=score)

    def classify_record(self, record: SubjectRecord) -> list[ClassifiedValue]:
        return [self.classify(header, raw, record.subject_name) for header, raw in record.items()]

    def classify_student(self, student: Student) -> list[ClassifiedValue]:
        out: list[ClassifiedValue] = []
        for record in student.subjects:
            out.extend(self.classify_record(record))
        return out

    def grade_scores(self, student: Student) -> list[float]:
        """Grade values in chronological (record) order."""
        return [
            cv.score
            for cv in self.classify_student(student)
            if cv.tag is ValueTag.GRADE and cv.score is not None
        ]
