from __future__ import annotations

import sys
from collections import Counter
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.source_file import FileStatus, SourceFile

"""Progress display with tqdm (TTY only).

One bar counts grade book files; its postfix carries the running
success/skipped/failed tally and the number of merged students. Outside a
TTY (CI, pipes, captured test output) no bar is created, but the tally is
still kept so callers can read it back.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """File-level progress for one run."""

    def __init__(self, total_files: int, *, description: str = "Reading grade books") -> None:
        self.total_files = total_files
        self.description = description
        self.current_file = 0
        self.tally: Counter[FileStatus] = Counter()

        self.pbar: TqdmType[Any] | None = None
        if is_tty_enabled():
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    @property
    def enabled(self) -> bool:
        return self.pbar is not None

    def start_file(self, file_path: Path) -> None:
        self.current_file += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_path.name})")

    def finish_file(self, source: SourceFile, students: int) -> None:
        """Count a finished file and refresh the bar.

        Args:
            source: the file's final processing context
            students: merged students so far (across all files)
        """
        self.tally[source.status] += 1
        if self.pbar is None:
            return
        self.pbar.set_postfix(
            ok=self.tally[FileStatus.SUCCESS],
            skipped=self.tally[FileStatus.SKIPPED],
            failed=self.tally[FileStatus.FAILED],
            students=students,
        )
        self.pbar.update(1)
        self.pbar.set_description(self.description)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
