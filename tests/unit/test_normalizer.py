from __future__ import annotations

import math

from gradebook_merge.services.normalizer import (
    clean_cell,
    contains_term,
    has_letters,
    is_blank_row,
    is_numeric_like,
    leading_number,
    matches_word,
    normalize_cell,
    normalize_header,
    normalized_terms,
    parse_score,
    subject_from_filename,
)


def test_clean_cell_blank_values():
    assert clean_cell(None) == ""
    assert clean_cell(float("nan")) == ""
    assert clean_cell("   ") == ""


def test_clean_cell_integral_float_renders_without_fraction():
    assert clean_cell(85.0) == "85"
    assert clean_cell(85.5) == "85.5"


def test_clean_cell_strips_bom_and_bidi_marks():
    assert clean_cell("\ufeffשם תלמיד\u200f ") == "שם תלמיד"
    assert clean_cell("\u200bname") == "name"


def test_normalize_cell_casefolds_and_collapses_whitespace():
    assert normalize_cell("  Student   NAME ") == "student name"


def test_normalize_header_unifies_quote_variants():
    assert normalize_header('סה"כ') == normalize_header("סה״כ") == "סה כ"
    assert normalize_header("ש.ב") == normalize_header('ש"ב') == "ש ב"
    assert normalize_header("first_name") == "first name"


def test_contains_term_short_terms_need_whole_words():
    assert contains_term("hw done", "hw")
    assert not contains_term("chwa", "hw")
    assert contains_term("אי הכנת ש ב", "ש ב")
    assert contains_term("homework 3", "homework")


def test_contains_term_latin_terms_respect_word_boundaries():
    assert not contains_term("calculated grade", "late")
    assert not contains_term("related test", "late")
    assert not contains_term("goodman test", "good")
    assert contains_term("late arrivals", "late")
    assert contains_term("notes", "note")
    assert contains_term("2 absences", "absence")
    assert contains_term("teacher: dana", "teacher")


def test_contains_term_stem_matches_word_prefix():
    assert contains_term("justification", "justifi*")
    assert contains_term("volunteering", "volunt*")
    assert contains_term("behaviour", "behavio*")
    assert not contains_term("unjustified", "justifi*")
    assert not contains_term("anything", "*")


def test_contains_term_hebrew_terms_match_inside_words():
    # attached prefixes: "והאיחור" still carries "איחור"
    assert contains_term("והאיחור", "איחור")
    assert contains_term("ציון ממוצע", "ממוצע")


def test_matches_word():
    assert matches_word("class average", "class")
    assert not matches_word("classroom", "class")
    assert not matches_word("anything", "")


def test_parse_score_strict():
    assert parse_score("85") == 85.0
    assert parse_score(" 92.5 ") == 92.5
    assert parse_score(-3) == -3.0
    assert parse_score(100.0) == 100.0
    for bad in ("85%", "1,000", "85 pts", "", None, True, "abc", "8.5.1"):
        assert math.isnan(parse_score(bad)), bad


def test_leading_number():
    assert leading_number("3 פעמים") == 3.0
    assert leading_number(0) == 0.0
    assert math.isnan(leading_number("לא"))


def test_is_numeric_like_and_has_letters():
    assert is_numeric_like("85")
    assert is_numeric_like("12.5%")
    assert is_numeric_like("050-1234567")
    assert not is_numeric_like("יוסי")
    assert has_letters("יוסי כהן")
    assert has_letters("Dana")
    assert not has_letters("12-34")


def test_is_blank_row():
    assert is_blank_row([])
    assert is_blank_row(None)
    assert is_blank_row(["", None, "  "])
    assert not is_blank_row(["", 0])


def test_subject_from_filename():
    assert subject_from_filename("math_grades-2024.xlsx") == "math grades 2024"
    assert subject_from_filename("/tmp/x/היסטוריה.csv") == "היסטוריה"


def test_normalized_terms_drops_empty():
    assert normalized_terms(("ש.ב", "  ", "Grade")) == ("ש ב", "grade")
