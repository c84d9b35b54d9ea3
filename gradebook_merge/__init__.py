"""gradebook-merge: heuristic reconciliation of grade book spreadsheets.

Reads loosely structured spreadsheet exports, finds the header row and the
student name column, filters out summary and staff rows, and merges every
student's records across files. Cell values are classified on demand into
grades, positive/negative behaviour events, metadata and other.
"""

__version__ = "0.1.0"
