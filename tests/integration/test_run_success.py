from __future__ import annotations

import json
from pathlib import Path

import pytest

from gradebook_merge.cli import main as cli_main

"""End-to-end run over real files: an .xlsx with title rows, a summary row and
forward-filled rows, followed by a BOM-prefixed CSV for the same class.
"""


@pytest.fixture()
def class_files(temp_workdir: Path, make_xlsx) -> list[Path]:
    data = temp_workdir / "data"
    math = make_xlsx(
        data / "math.xlsx",
        [
            ["דוח ציונים כיתה ז2"],
            [],
            ["מס'", "שם התלמיד", "טלפון", "ציון", "איחורים", "מילה טובה", "המורה"],
            [1, "כהן יוסי", "050-1234567", 85, 0, "", "רונית"],
            [2, "לוי דנה", "052 7654321", 92, 2, "כן", "רונית"],
            ["", "", "", 70],
            ["", "ממוצע כיתה", "", 82.3],
            ["", "", "", 99],
        ],
    )
    english = data / "english.csv"
    english.write_text(
        "שם תלמיד,טלפון,ציון,הערות\n"
        "כהן יוסי,,75,\n"
        "לוי דנה,054-0000000,88,איחור\n"
        "רון שמש,0501112222,60,\n",
        encoding="utf-8-sig",
    )
    return [math, english]


def _run(files: list[Path], out_path: Path, *extra: str) -> int:
    return cli_main([str(f) for f in files] + ["--output", str(out_path), *extra])


def test_run_success_merges_students_across_files(temp_workdir: Path, class_files, capsys):
    out_path = temp_workdir / "out" / "result.json"
    code = _run(class_files, out_path)

    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY files=2/2 success=2 skipped=0 failed=0 students=3 records=6" in out

    data = json.loads(out_path.read_text(encoding="utf-8"))
    students = {s["full_name"]: s for s in data["students"]}
    assert list(students) == ["כהן יוסי", "לוי דנה", "רון שמש"]

    yossi = students["כהן יוסי"]
    assert yossi["first_name"] == "יוסי"
    assert [r["subject_name"] for r in yossi["subjects"]] == ["math", "english"]
    # teacher and phone columns never become cells
    assert set(yossi["subjects"][0]["cells"]) == {"מס'", "ציון", "איחורים"}


def test_run_success_forward_fill_and_summary_rows(temp_workdir: Path, class_files):
    out_path = temp_workdir / "result.json"
    _run(class_files, out_path)
    data = json.loads(out_path.read_text(encoding="utf-8"))
    dana = next(s for s in data["students"] if s["full_name"] == "לוי דנה")

    math_records = [r for r in dana["subjects"] if r["subject_name"] == "math"]
    assert [r["cells"]["ציון"]["value"] for r in math_records] == [92, 70]
    # the summary row and the orphan row below it are not student data
    all_values = [c["value"] for s in data["students"] for r in s["subjects"] for c in r["cells"].values()]
    assert 82.3 not in all_values and 99 not in all_values


def test_run_success_phone_first_non_empty_wins(temp_workdir: Path, class_files):
    out_path = temp_workdir / "result.json"
    _run(class_files, out_path)
    phones = {s["full_name"]: s["phone_number"] for s in json.loads(out_path.read_text(encoding="utf-8"))["students"]}
    assert phones == {"כהן יוסי": "0501234567", "לוי דנה": "0527654321", "רון שמש": "0501112222"}


def test_run_success_phone_order_follows_file_order(temp_workdir: Path, class_files):
    out_path = temp_workdir / "result.json"
    _run(list(reversed(class_files)), out_path)
    data = json.loads(out_path.read_text(encoding="utf-8"))
    dana = next(s for s in data["students"] if s["full_name"] == "לוי דנה")
    assert dana["phone_number"] == "0540000000"


def test_run_success_class_report(temp_workdir: Path, class_files, capsys):
    out_path = temp_workdir / "result.json"
    _run(class_files, out_path, "--report")
    out = capsys.readouterr().out
    report = json.loads(out_path.read_text(encoding="utf-8"))["report"]

    assert report["class_average"] == pytest.approx(470 / 6)
    dist = report["distribution"]
    assert (dist["excellent"], dist["good"], dist["average"], dist["failing"]) == (1, 3, 2, 0)
    assert [s["full_name"] for s in report["top_students"]] == ["לוי דנה", "כהן יוסי", "רון שמש"]
    assert report["struggling_students"] == []
    assert [s["full_name"] for s in report["top_positive"]] == ["לוי דנה"]
    assert report["negative_events"] == 2
    assert {s["subject_name"] for s in report["subjects"]} == {"math", "english"}

    assert "student=כהן יוסי average=80.0 grades=2 trend=declining diff=-10.0" in out
