from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Classification result for a single (header, value) pair.

Derived on demand by the value classifier; never stored on a Student.
"""

__all__ = [
    "ValueTag",
    "ClassifiedValue",
]


class ValueTag(Enum):
    GRADE = "grade"
    POSITIVE_EVENT = "positiveEvent"
    NEGATIVE_EVENT = "negativeEvent"
    IGNORED = "ignored"
    OTHER = "other"


@dataclass(frozen=True)
class ClassifiedValue:
    tag: ValueTag
    value: Any
    subject_name: str
    header: str
    score: float | None = None  # parsed grade, only set for GRADE

    @property
    def is_event(self) -> bool:
        return self.tag in (ValueTag.POSITIVE_EVENT, ValueTag.NEGATIVE_EVENT)
