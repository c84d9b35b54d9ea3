from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass, field
from statistics import fmean
from typing import Any

from ..models.classified_value import ValueTag
from ..models.student import Student
from .value_classifier import ValueClassifier

"""Aggregator.

- StudentAggregator folds per-file student lists into the session map
  (subjects concatenated, phone/language first non-empty wins)
- compute_trend: split-half trend over a chronological grade sequence
- summaries consumed by dashboards: per student, per subject, whole class
"""

__all__ = [
    "TREND_IMPROVING",
    "TREND_DECLINING",
    "TREND_STABLE",
    "TREND_INSUFFICIENT",
    "StudentAggregator",
    "TrendSummary",
    "compute_trend",
    "StudentSummary",
    "summarize_student",
    "SubjectSummary",
    "summarize_subjects",
    "GradeDistribution",
    "ClassReport",
    "build_class_report",
]

logger = logging.getLogger(__name__)

TREND_IMPROVING = "improving"
TREND_DECLINING = "declining"
TREND_STABLE = "stable"
TREND_INSUFFICIENT = "insufficient"

STRUGGLING_BELOW = 60.0


class StudentAggregator:
    """Session-wide identity map, keyed by exact full name."""

    def __init__(self) -> None:
        self._students: dict[str, Student] = {}

    def fold(self, file_students: Iterable[Student]) -> int:
        """Merge one file's students; returns the number of new students."""
        added = 0
        for incoming in file_students:
            existing = self._students.get(incoming.full_name)
            if existing is None:
                self._students[incoming.full_name] = incoming
                added += 1
                continue
            existing.subjects.extend(incoming.subjects)
            if incoming.phone_number:
                existing.adopt_phone(incoming.phone_number)
            existing.adopt_language(incoming.language)
        return added

    def students(self) -> list[Student]:
        return list(self._students.values())

    def __len__(self) -> int:
        return len(self._students)


@dataclass(frozen=True)
class TrendSummary:
    trend: str
    diff: float  # second-half mean minus first-half mean
    first_mean: float | None
    second_mean: float | None
    count: int


def compute_trend(scores: Sequence[float], threshold: float = 3.0) -> TrendSummary:
    """Split-half trend: mean of scores[mid:] vs scores[:mid], mid = n // 2."""
    n = len(scores)
    if n < 2:
        return TrendSummary(TREND_INSUFFICIENT, 0.0, None, None, n)

    mid = n // 2
    first = fmean(scores[:mid])
    second = fmean(scores[mid:])
    diff = second - first
    if diff > threshold:
        trend = TREND_IMPROVING
    elif diff < -threshold:
        trend = TREND_DECLINING
    else:
        trend = TREND_STABLE
    return TrendSummary(trend, diff, first, second, n)


@dataclass(frozen=True)
class StudentSummary:
    student_id: str
    full_name: str
    average: float | None  # None when the student has no grades
    grade_count: int
    positive_events: int
    negative_events: int
    trend: TrendSummary


def summarize_student(student: Student, classifier: ValueClassifier, threshold: float = 3.0) -> StudentSummary:
    classified = classifier.classify_student(student)
    scores = [cv.score for cv in classified if cv.tag is ValueTag.GRADE and cv.score is not None]
    return StudentSummary(
        student_id=student.id,
        full_name=student.full_name,
        average=fmean(scores) if scores else None,
        grade_count=len(scores),
        positive_events=sum(1 for cv in classified if cv.tag is ValueTag.POSITIVE_EVENT),
        negative_events=sum(1 for cv in classified if cv.tag is ValueTag.NEGATIVE_EVENT),
        trend=compute_trend(scores, threshold),
    )


@dataclass(frozen=True)
class SubjectSummary:
    subject_name: str
    average: float
    minimum: float
    maximum: float
    count: int


def summarize_subjects(students: Iterable[Student], classifier: ValueClassifier) -> list[SubjectSummary]:
    """Grade statistics per subject name, best average first."""
    by_subject: dict[str, list[float]] = {}
    for student in students:
        for cv in classifier.classify_student(student):
            if cv.tag is ValueTag.GRADE and cv.score is not None:
                by_subject.setdefault(cv.subject_name, []).append(cv.score)

    summaries = [
        SubjectSummary(name, fmean(scores), min(scores), max(scores), len(scores))
        for name, scores in by_subject.items()
    ]
    return sorted(summaries, key=lambda s: s.average, reverse=True)


@dataclass
class GradeDistribution:
    excellent: int = 0  # >= 90
    good: int = 0  # >= 75
    average: int = 0  # >= 55
    failing: int = 0

    def add(self, score: float) -> None:
        if score >= 90:
            self.excellent += 1
        elif score >= 75:
            self.good += 1
        elif score >= 55:
            self.average += 1
        else:
            self.failing += 1

    @property
    def total(self) -> int:
        return self.excellent + self.good + self.average + self.failing

    def percentages(self) -> dict[str, float]:
        total = self.total
        buckets = {"excellent": self.excellent, "good": self.good, "average": self.average, "failing": self.failing}
        return {k: (v / total * 100 if total else 0.0) for k, v in buckets.items()}


@dataclass(frozen=True)
class ClassReport:
    class_average: float | None
    distribution: GradeDistribution
    students: list[StudentSummary] = field(default_factory=list)  # graded students, best average first
    subjects: list[SubjectSummary] = field(default_factory=list)
    top_students: list[StudentSummary] = field(default_factory=list)
    struggling_students: list[StudentSummary] = field(default_factory=list)
    top_improving: list[StudentSummary] = field(default_factory=list)
    most_declining: list[StudentSummary] = field(default_factory=list)
    top_positive: list[StudentSummary] = field(default_factory=list)
    positive_events: int = 0
    negative_events: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["distribution"]["percentages"] = self.distribution.percentages()
        return data


def build_class_report(
    students: Sequence[Student],
    classifier: ValueClassifier,
    threshold: float = 3.0,
) -> ClassReport:
    distribution = GradeDistribution()
    all_scores: list[float] = []
    summaries: list[StudentSummary] = []
    for student in students:
        summary = summarize_student(student, classifier, threshold)
        summaries.append(summary)
        for score in classifier.grade_scores(student):
            distribution.add(score)
            all_scores.append(score)

    graded = sorted(
        (s for s in summaries if s.average is not None),
        key=lambda s: s.average,
        reverse=True,
    )
    improving = sorted(
        (s for s in summaries if s.trend.trend == TREND_IMPROVING), key=lambda s: s.trend.diff, reverse=True
    )
    declining = sorted((s for s in summaries if s.trend.trend == TREND_DECLINING), key=lambda s: s.trend.diff)
    positive = sorted(
        (s for s in summaries if s.positive_events > 0), key=lambda s: s.positive_events, reverse=True
    )

    return ClassReport(
        class_average=fmean(all_scores) if all_scores else None,
        distribution=distribution,
        students=graded,
        subjects=summarize_subjects(students, classifier),
        top_students=graded[:5],
        struggling_students=[s for s in graded if s.average < STRUGGLING_BELOW][:5],
        top_improving=improving[:3],
        most_declining=declining[:3],
        top_positive=positive[:3],
        positive_events=sum(s.positive_events for s in summaries),
        negative_events=sum(s.negative_events for s in summaries),
    )
