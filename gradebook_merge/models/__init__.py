"""Domain models for the grade book reconciliation engine.

This package contains the data model shared by every service: column
mappings, students and their subject records, classification results,
configuration objects and processing results.
"""

from .classified_value import ClassifiedValue, ValueTag
from .column_mapping import UNRESOLVED, ColumnMapping
from .config_models import KeywordConfig, ReconcileConfig
from .processing_result import FileStat, ProcessingResult, RunOutcome
from .source_file import FileStatus, SourceFile
from .student import CellValue, Student, SubjectRecord

__all__ = [
    # Configuration models
    "KeywordConfig",
    "ReconcileConfig",
    # Grid models
    "UNRESOLVED",
    "ColumnMapping",
    # Student models
    "CellValue",
    "Student",
    "SubjectRecord",
    "ClassifiedValue",
    "ValueTag",
    # Processing models
    "FileStatus",
    "SourceFile",
    "FileStat",
    "ProcessingResult",
    "RunOutcome",
]
