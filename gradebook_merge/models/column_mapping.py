from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any

"""ColumnMapping model: where the semantic columns of one grid live.

A mapping is produced either by the auto-guess mode of the column classifier
or confirmed/overridden by a human through the mapping preview. Every index
is 0-based; UNRESOLVED (-1) means "not present".
"""

__all__ = [
    "UNRESOLVED",
    "ColumnMapping",
]

UNRESOLVED = -1


@dataclass(frozen=True)
class ColumnMapping:
    """Column positions for one RawGrid.

    Only student_name_index is mandatory before rows can be processed.
    subject_index == UNRESOLVED means the subject is derived from the file name.
    """
    header_row_index: int = 0
    student_name_index: int = UNRESOLVED
    subject_index: int = UNRESOLVED
    grade_or_event_index: int = UNRESOLVED
    justification_index: int = UNRESOLVED
    phone_index: int = UNRESOLVED

    @property
    def is_confirmable(self) -> bool:
        return self.header_row_index >= 0 and self.student_name_index != UNRESOLVED

    def with_overrides(self, **overrides: int) -> ColumnMapping:
        """Return a copy with the given fields replaced (user overrides)."""
        unknown = set(overrides) - {f.name for f in fields(self)}
        if unknown:
            raise TypeError(f"unknown mapping fields: {sorted(unknown)}")
        return replace(self, **overrides)

    def column_indices(self) -> dict[str, int]:
        """Role name -> column index, excluding the header row index."""
        data = asdict(self)
        data.pop("header_row_index")
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ColumnMapping:
        known = {f.name for f in fields(cls)}
        return cls(**{k: int(v) for k, v in data.items() if k in known})

    def to_dict(self) -> dict[str, int]:
        return asdict(self)
