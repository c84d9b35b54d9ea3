from __future__ import annotations

from dataclasses import dataclass, field, fields

from .column_mapping import ColumnMapping

"""Config dataclasses for the grade book reconciliation engine.

KeywordConfig replaces the keyword arrays that used to be copied into every
component: one object, grouped by classification category, injected into the
header locator, column classifier, row filter and value classifier.
"""

__all__ = [
    "KeywordConfig",
    "ReconcileConfig",
]


@dataclass(frozen=True)
class KeywordConfig:
    """Bilingual (Hebrew/English) keyword sets, one tuple per category.

    Terms are stored as written; matching code normalizes both sides.
    """
    name_headers: tuple[str, ...] = ()  # exact header match -> student name column
    phone_headers: tuple[str, ...] = ()  # header contains -> phone column
    teacher_terms: tuple[str, ...] = ()  # teacher / homeroom staff guard
    teacher_salutations: tuple[str, ...] = ()  # name cell starts with -> not a student
    invalid_row_keywords: tuple[str, ...] = ()  # name cell equals -> not a student
    summary_markers: tuple[str, ...] = ()  # name cell contains -> summary row
    subject_headers: tuple[str, ...] = ()
    grade_or_event_headers: tuple[str, ...] = ()
    justification_headers: tuple[str, ...] = ()
    ignored_headers: tuple[str, ...] = ()  # structural metadata (row no., class, totals)
    non_grade_keywords: tuple[str, ...] = ()  # header contains -> never a grade
    behavior_keywords: tuple[str, ...] = ()
    negative_count_keywords: tuple[str, ...] = ()  # header is a count of bad things
    positive_keywords: tuple[str, ...] = ()
    homework_keywords: tuple[str, ...] = ()
    equipment_keywords: tuple[str, ...] = ()
    negative_answers: tuple[str, ...] = ()  # "no" / "missing" answers

    @classmethod
    def category_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_mapping(cls, data: dict[str, list[str]]) -> KeywordConfig:
        known = set(cls.category_names())
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"unknown keyword categories: {sorted(unknown)}")
        return cls(**{k: tuple(str(t) for t in v) for k, v in data.items()})

    def merged(self, overrides: dict[str, list[str]]) -> KeywordConfig:
        """Return a copy where each category present in overrides is replaced."""
        base = {name: list(getattr(self, name)) for name in self.category_names()}
        base.update(overrides)
        return KeywordConfig.from_mapping(base)


@dataclass(frozen=True)
class ReconcileConfig:
    """Root configuration object for a reconciliation run."""
    keywords: KeywordConfig
    source_directory: str | None = None  # directory scanned when no paths are given
    file_suffixes: tuple[str, ...] = (".xlsx", ".xlsm", ".xls", ".csv")
    header_scan_limit: int = 50  # rows scanned by the header locator
    name_sample_rows: int = 20  # rows sampled by content-based name detection
    trend_threshold: float = 3.0  # split-half mean difference for improving/declining
    default_language: str = "Hebrew"
    mappings: dict[str, ColumnMapping] = field(default_factory=dict)  # file name -> confirmed mapping
