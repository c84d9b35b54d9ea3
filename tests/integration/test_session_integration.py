from __future__ import annotations

from pathlib import Path

import pytest

from gradebook_merge.models.column_mapping import ColumnMapping
from gradebook_merge.services.column_classifier import MappingError
from gradebook_merge.services.session import ReconciliationSession

"""Session lifecycle over real workbooks: add, preview, confirm, remove."""


@pytest.fixture()
def session_files(temp_workdir: Path, make_xlsx) -> dict[str, Path]:
    data = temp_workdir / "data"
    return {
        "math": make_xlsx(
            data / "math.xlsx",
            [["רשימת תלמידים"], ["שם התלמיד", "ציון", "טלפון"], ["יוסי כהן", 60, "0501234567"], ["דנה לוי", 95, ""]],
        ),
        "science": make_xlsx(
            data / "science.xlsx",
            [["שם התלמיד", "ציון", "טלפון"], ["יוסי כהן", 90, "0529999999"], ["דנה לוי", 85, "0541111111"]],
        ),
        "roster": make_xlsx(
            data / "roster.xlsx",
            [["קוד", "תלמידים", "ציון"], [101, "יוסי כהן", 70], [102, "רון שמש", 65]],
        ),
    }


def test_session_full_lifecycle(config, session_files):
    session = ReconciliationSession(config)
    result = session.add_files([session_files["math"], session_files["science"]])
    assert result.success_files == 2

    by_name = {s.full_name: s for s in session.students}
    assert by_name["יוסי כהן"].phone_number == "0501234567"
    assert by_name["דנה לוי"].phone_number == "0541111111"

    report = session.report()
    yossi = next(s for s in report.students if s.full_name == "יוסי כהן")
    assert yossi.trend.trend == "improving"
    assert yossi.trend.diff == pytest.approx(30)

    session.remove_file("math.xlsx")
    by_name = {s.full_name: s for s in session.students}
    assert by_name["יוסי כהן"].phone_number == "0529999999"
    assert [r.subject_name for r in by_name["יוסי כהן"].subjects] == ["science"]
    assert session.report().students[0].trend.trend == "insufficient"


def test_session_preview_and_confirm(config, session_files):
    session = ReconciliationSession(config)
    session.add_files([session_files["roster"]])

    guessed, grid = session.guess_mapping("roster.xlsx")
    assert guessed.student_name_index == 1
    preview = session.preview("roster.xlsx")
    assert preview[0]["student_name"] == "יוסי כהן"
    assert preview[0]["grade_or_event"] == "70"

    # point the name column at the codes: every row is rejected as numeric
    result = session.set_mapping("roster.xlsx", guessed.with_overrides(student_name_index=0))
    assert result.total_students == 0

    with pytest.raises(MappingError):
        session.set_mapping("roster.xlsx", ColumnMapping(header_row_index=0, student_name_index=7))

    result = session.set_mapping("roster.xlsx", guessed)
    assert {s.full_name for s in result.students} == {"יוסי כהן", "רון שמש"}
    assert len(grid) == 3
