from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from gradebook_merge.excel.reader import UnreadableFileError
from gradebook_merge.logging.error_log import ErrorLogBuffer
from gradebook_merge.models.column_mapping import ColumnMapping
from gradebook_merge.models.processing_result import RunOutcome
from gradebook_merge.services.orchestrator import (
    ProcessingError,
    process_all,
    process_files,
    scan_source_files,
)

GRIDS = {
    "math.xlsx": [["שם תלמיד", "טלפון", "ציון"], ["יוסי כהן", "0501111111", 85], ["דנה לוי", "", 92]],
    "english.xlsx": [["שם תלמיד", "טלפון", "ציון"], ["יוסי כהן", "0502222222", 70]],
    "empty.xlsx": [],
    "noname.xlsx": [["a", "b"], [1, 2], [3, 4]],
}


def _fake_reader(path, file_name=None):
    name = Path(path).name
    if name.startswith("broken"):
        raise UnreadableFileError(f"cannot read {name}: bad zip")
    if name.startswith("boom"):
        return [["שם"], ["יוסי כהן"]]
    return GRIDS[name]


@pytest.fixture()
def fake_reader():
    with patch("gradebook_merge.services.orchestrator.read_raw_grid", side_effect=_fake_reader) as m:
        yield m


def test_scan_source_files_sorted_and_filtered(tmp_path: Path):
    for name in ["b.xlsx", "a.CSV", "notes.txt", "~$lock.xlsx", "c.xls"]:
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "sub.xlsx").mkdir()
    found = scan_source_files(tmp_path, (".xlsx", ".csv", ".xls"))
    assert [p.name for p in found] == ["a.CSV", "b.xlsx", "c.xls"]


def test_scan_source_files_missing_directory(tmp_path: Path):
    with pytest.raises(ProcessingError):
        scan_source_files(tmp_path / "nope")
    (tmp_path / "f.xlsx").write_bytes(b"")
    with pytest.raises(ProcessingError):
        scan_source_files(tmp_path / "f.xlsx")


def test_process_files_merges_across_files(config, fake_reader, temp_workdir):
    result = process_files([Path("math.xlsx"), Path("english.xlsx")], config)

    assert result.success_files == 2
    assert result.outcome is RunOutcome.OK
    by_name = {s.full_name: s for s in result.students}
    assert set(by_name) == {"יוסי כהן", "דנה לוי"}
    assert len(by_name["יוסי כהן"].subjects) == 2
    assert [r.subject_name for r in by_name["יוסי כהן"].subjects] == ["math", "english"]
    # first file in processing order fixes the phone
    assert by_name["יוסי כהן"].phone_number == "0501111111"
    assert result.total_records == 3


def test_process_order_decides_phone(config, fake_reader, temp_workdir):
    result = process_files([Path("english.xlsx"), Path("math.xlsx")], config)
    (yossi,) = [s for s in result.students if s.full_name == "יוסי כהן"]
    assert yossi.phone_number == "0502222222"


def test_per_file_isolation(config, fake_reader, temp_workdir):
    paths = [Path(n) for n in ["broken.xlsx", "empty.xlsx", "noname.xlsx", "math.xlsx"]]
    result = process_files(paths, config)

    assert (result.success_files, result.skipped_files, result.failed_files) == (1, 2, 1)
    assert [f.status for f in result.file_stats] == ["failed", "skipped", "skipped", "success"]
    assert len(result.students) == 2

    (log_file,) = (temp_workdir / "logs").glob("errors-*.log")
    types = [json.loads(l)["error_type"] for l in log_file.read_text(encoding="utf-8").splitlines()]
    assert types == ["UNREADABLE_FILE", "EMPTY_FILE", "NAME_COLUMN_NOT_FOUND"]


def test_unexpected_error_fails_file_without_partial_merge(config, fake_reader, temp_workdir):
    with patch(
        "gradebook_merge.services.orchestrator.extract_students",
        side_effect=RuntimeError("kaboom"),
    ):
        result = process_files([Path("boom.xlsx")], config, error_log=ErrorLogBuffer())
    assert result.failed_files == 1
    assert result.students == []
    assert result.outcome is RunOutcome.FILES_FAILED
    assert result.file_stats[0].error == "kaboom"


def test_no_students_is_no_data(config, fake_reader, temp_workdir):
    result = process_files([Path("noname.xlsx")], config)
    assert result.outcome is RunOutcome.NO_DATA


def test_confirmed_mapping_overrides_guess(config, fake_reader, temp_workdir):
    # confirmed mapping points at the phone column: every value is numeric and rejected
    mapping = ColumnMapping(student_name_index=1)
    result = process_files([Path("math.xlsx")], config, mappings={"math.xlsx": mapping})
    assert result.students == []
    assert result.success_files == 1


def test_invalid_confirmed_mapping_skips_file(config, fake_reader, temp_workdir):
    log = ErrorLogBuffer()
    mapping = ColumnMapping(student_name_index=9)
    result = process_files([Path("math.xlsx")], config, mappings={"math.xlsx": mapping}, error_log=log)
    assert result.skipped_files == 1
    assert [r.error_type for r in log.records] == ["INVALID_MAPPING"]


def test_process_all_requires_source_directory(config):
    with pytest.raises(ProcessingError):
        process_all(config)
