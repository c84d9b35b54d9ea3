from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock, patch

from gradebook_merge.models.source_file import FileStatus, SourceFile
from gradebook_merge.services.progress import ProgressTracker, is_tty_enabled


def _source(name: str, status: FileStatus) -> SourceFile:
    return SourceFile(path=Path(name), name=name, status=status)


def test_is_tty_enabled_returns_stdout_isatty():
    with patch("sys.stdout.isatty", return_value=True):
        assert is_tty_enabled() is True

    with patch("sys.stdout.isatty", return_value=False):
        assert is_tty_enabled() is False


def test_tracker_keeps_tally_outside_tty():
    with patch("gradebook_merge.services.progress.is_tty_enabled", return_value=False):
        with ProgressTracker(3) as tracker:
            tracker.start_file(Path("a.xlsx"))
            tracker.finish_file(_source("a.xlsx", FileStatus.FAILED), students=0)
            tracker.start_file(Path("b.xlsx"))
            tracker.finish_file(_source("b.xlsx", FileStatus.SUCCESS), students=4)
        assert not tracker.enabled
        assert tracker.current_file == 2
        assert tracker.tally[FileStatus.FAILED] == 1
        assert tracker.tally[FileStatus.SUCCESS] == 1
        assert tracker.tally[FileStatus.SKIPPED] == 0


def test_tracker_drives_tqdm_on_tty():
    mock_pbar = Mock()
    with patch("gradebook_merge.services.progress.is_tty_enabled", return_value=True), \
         patch("gradebook_merge.services.progress.tqdm", return_value=mock_pbar) as mock_tqdm:
        tracker = ProgressTracker(2, description="Reading grade books")
        mock_tqdm.assert_called_once_with(
            total=2,
            desc="Reading grade books",
            unit="file",
            leave=True,
            position=0,
            ncols=80,
            ascii=True,
        )
        tracker.start_file(Path("/x/grades.xlsx"))
        mock_pbar.set_description.assert_called_with("Reading grade books (grades.xlsx)")

        tracker.finish_file(_source("grades.xlsx", FileStatus.SKIPPED), students=0)
        mock_pbar.set_postfix.assert_called_once_with(ok=0, skipped=1, failed=0, students=0)
        mock_pbar.update.assert_called_once_with(1)

        tracker.close()
        mock_pbar.close.assert_called_once()
        assert tracker.pbar is None
