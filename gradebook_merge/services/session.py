from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from ..excel.reader import RawGrid, read_raw_grid
from ..models.column_mapping import ColumnMapping
from ..models.config_models import ReconcileConfig
from ..models.processing_result import ProcessingResult
from ..models.student import Student
from .aggregator import ClassReport, build_class_report
from .column_classifier import confirm_mapping, guess_mapping, preview_rows
from .orchestrator import process_files
from .value_classifier import ValueClassifier

"""Reconciliation session.

Holds the current input file set and the students derived from it. Any
change to the file set or to a confirmed mapping rebuilds the whole student
map from the remaining files; nothing is patched incrementally, so a removed
file leaves no trace.
"""

__all__ = ["ReconciliationSession"]

logger = logging.getLogger(__name__)


class ReconciliationSession:
    def __init__(self, config: ReconcileConfig) -> None:
        self.config = config
        self.classifier = ValueClassifier(config.keywords)
        self._files: dict[str, Path] = {}  # file name -> path, insertion ordered
        self._mappings: dict[str, ColumnMapping] = {}
        self._result: ProcessingResult | None = None

    @property
    def files(self) -> list[Path]:
        return list(self._files.values())

    @property
    def students(self) -> list[Student]:
        return list(self._result.students) if self._result else []

    @property
    def result(self) -> ProcessingResult | None:
        return self._result

    def add_files(self, paths: Iterable[Path | str]) -> ProcessingResult:
        """Add files (a name already present is replaced in place) and rebuild."""
        for p in paths:
            path = Path(p)
            self._files[path.name] = path
        return self.reprocess()

    def remove_file(self, name: str) -> ProcessingResult:
        """Drop a file by name and rebuild from the remaining files.

        Raises:
            KeyError: no file with that name in the session
        """
        if name not in self._files:
            raise KeyError(name)
        del self._files[name]
        self._mappings.pop(name, None)
        return self.reprocess()

    def guess_mapping(self, name: str) -> tuple[ColumnMapping, RawGrid]:
        """Auto-guessed mapping for a file, plus its grid for previewing."""
        grid = read_raw_grid(self._files[name])
        return guess_mapping(grid, self.config), grid

    def preview(self, name: str, mapping: ColumnMapping | None = None, count: int = 5) -> list[dict[str, str]]:
        grid = read_raw_grid(self._files[name])
        if mapping is None:
            mapping = self._mappings.get(name) or guess_mapping(grid, self.config)
        return preview_rows(grid, mapping, count)

    def set_mapping(self, name: str, mapping: ColumnMapping) -> ProcessingResult:
        """Confirm a user-adjusted mapping for one file and rebuild.

        Raises:
            KeyError: unknown file
            MappingError: the mapping cannot be applied to the file's grid
        """
        path = self._files[name]
        confirm_mapping(mapping, read_raw_grid(path))
        self._mappings[name] = mapping
        return self.reprocess()

    def reprocess(self) -> ProcessingResult:
        """Discard every student and derive them again from the current files."""
        self._result = process_files(self.files, self.config, mappings=self._mappings)
        logger.debug(
            "session rebuilt: %d file(s), %d student(s)",
            len(self._files),
            self._result.total_students,
        )
        return self._result

    def report(self) -> ClassReport:
        return build_class_report(self.students, self.classifier, self.config.trend_threshold)
