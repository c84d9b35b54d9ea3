from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from typing import Any

"""Student / SubjectRecord domain models.

A Student is keyed by its exact full name for the whole session; all records
found for that name, in any file, are appended to the same subjects list.
phone_number and language follow "first non-empty wins".
"""

__all__ = [
    "CellValue",
    "SubjectRecord",
    "Student",
    "normalize_phone",
]

_MIN_PHONE_DIGITS = 7


@dataclass(frozen=True)
class CellValue:
    """Raw cell content together with its originating column."""
    raw: Any
    column_index: int


@dataclass
class SubjectRecord:
    """One observation row for one student (one accepted data row).

    cells maps the header label to the retained cell. Labels are unique within
    a record; duplicates in the source header get a " #<column>" suffix.
    """
    subject_name: str
    cells: dict[str, CellValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.subject_name:
            raise ValueError("subject_name must be non-empty")

    def add_cell(self, header: str, raw: Any, column_index: int) -> str:
        key = header
        if key in self.cells:
            key = f"{header} #{column_index + 1}"
        self.cells[key] = CellValue(raw=raw, column_index=column_index)
        return key

    def items(self) -> list[tuple[str, Any]]:
        return [(header, cell.raw) for header, cell in self.cells.items()]

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject_name": self.subject_name,
            "cells": {h: {"value": c.raw, "column_index": c.column_index} for h, c in self.cells.items()},
        }


def _first_name_of(full_name: str) -> str:
    # heuristic: last token (Hebrew lists are usually "family given")
    tokens = full_name.split()
    return tokens[-1] if tokens else full_name


def normalize_phone(raw: Any) -> str:
    """Keep digits and a leading '+' only."""
    if raw is None:
        return ""
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    text = str(raw).strip()
    digits = re.sub(r"\D", "", text)
    if not digits:
        return ""
    return f"+{digits}" if text.startswith("+") else digits


@dataclass
class Student:
    id: str
    full_name: str
    first_name: str
    phone_number: str | None = None
    language: str | None = None
    subjects: list[SubjectRecord] = field(default_factory=list)
    is_selected: bool = True

    @classmethod
    def create(cls, full_name: str) -> Student:
        return cls(
            id=uuid.uuid4().hex,
            full_name=full_name,
            first_name=_first_name_of(full_name),
        )

    def adopt_phone(self, raw: Any) -> bool:
        """Set phone_number from raw cell content unless one is already known.

        Returns True when the value was adopted. Values with fewer than 7 digits
        (row numbers, extensions, stray counts) are ignored.
        """
        if self.phone_number:
            return False
        phone = normalize_phone(raw)
        if len(phone.lstrip("+")) < _MIN_PHONE_DIGITS:
            return False
        self.phone_number = phone
        return True

    def adopt_language(self, value: str | None) -> bool:
        if self.language or not value or not str(value).strip():
            return False
        self.language = str(value).strip()
        return True

    def effective_language(self, default: str = "Hebrew") -> str:
        return self.language or default

    def to_dict(self, default_language: str | None = None) -> dict[str, Any]:
        """Serializable view; a missing language falls back to default_language."""
        return {
            "id": self.id,
            "full_name": self.full_name,
            "first_name": self.first_name,
            "phone_number": self.phone_number,
            "language": self.language or default_language,
            "is_selected": self.is_selected,
            "subjects": [s.to_dict() for s in self.subjects],
        }
