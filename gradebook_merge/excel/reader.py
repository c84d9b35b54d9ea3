from __future__ import annotations

import io
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any, BinaryIO

import pandas as pd

"""Spreadsheet reader: file -> RawGrid.

Only the first sheet is read, without a header row (the header locator
decides which row holds the labels). Blank cells come back as "".
CSV files are read as text; Excel cells keep their native numbers.
"""

__all__ = [
    "RawGrid",
    "CSV_SUFFIXES",
    "ReaderError",
    "UnreadableFileError",
    "read_raw_grid",
    "frame_to_grid",
]

RawGrid = list[list[Any]]

CSV_SUFFIXES = frozenset({".csv", ".txt"})


class ReaderError(Exception):
    """Base exception for reader errors."""


class UnreadableFileError(ReaderError):
    """The source cannot be decoded as tabular data."""


def _convert_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return int(value)
        return value
    if value is pd.NaT:
        return ""
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.isoformat()
    # numpy scalars -> python
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        return _convert_cell(value.item())
    return value


def frame_to_grid(df: pd.DataFrame) -> RawGrid:
    """Header-less DataFrame -> list of rows, trailing blank cells trimmed."""
    grid: RawGrid = []
    for values in df.itertuples(index=False, name=None):
        row = [_convert_cell(v) for v in values]
        while row and row[-1] == "":
            row.pop()
        grid.append(row)
    # trailing blank rows carry no information
    while grid and not grid[-1]:
        grid.pop()
    return grid


def read_raw_grid(source: Path | str | bytes | BinaryIO, file_name: str | None = None) -> RawGrid:
    """Read the first sheet of source into a RawGrid.

    Args:
        source: path, raw bytes or a binary file-like object
        file_name: used to pick the CSV/Excel decoder when source is not a
            path (defaults to the path's name)

    Raises:
        UnreadableFileError: any decoder failure, wrapping the original error
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        name = file_name or path.name
        handle: Any = path
    else:
        name = file_name or getattr(source, "name", "") or ""
        handle = io.BytesIO(source) if isinstance(source, bytes) else source

    suffix = Path(str(name)).suffix.lower()
    try:
        if suffix in CSV_SUFFIXES:
            df = pd.read_csv(
                handle,
                header=None,
                dtype=object,
                keep_default_na=False,
                skip_blank_lines=False,
                encoding="utf-8-sig",
            )
        else:
            df = pd.read_excel(handle, sheet_name=0, header=None, keep_default_na=False)
    except pd.errors.EmptyDataError:
        return []
    except Exception as e:
        raise UnreadableFileError(f"cannot read {name or 'source'}: {e}") from e

    return frame_to_grid(df)
