import json

import pytest

from syllabus_deadlines.errors import MalformedResponse, UnexpectedFormat
from syllabus_deadlines.normalize import (
    normalize_date,
    normalize_time,
    normalize_type,
    parse_model_response,
    salvage_events,
    strip_code_fences,
)


# ============================================================
# DATES
# ============================================================
@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2026-01-30", "2026-01-30"),
        ("2026-1-30", "2026-01-30"),
        ("2026-01-3", "2026-01-03"),
        ("2026-1-3", "2026-01-03"),
        ("2026-12-31", "2026-12-31"),
    ],
)
def test_dash_dates_are_zero_padded(raw, expected):
    assert normalize_date(raw) == expected


def test_generic_date_parsing_keeps_year_month_day():
    assert normalize_date("January 30, 2026") == "2026-01-30"
    assert normalize_date("2026/02/14") == "2026-02-14"


def test_missing_year_uses_default_year():
    assert normalize_date("Mar 5", default_year=2027) == "2027-03-05"


def test_unparseable_date_passes_through():
    assert normalize_date("Week 5") == "Week 5"
    assert normalize_date("TBD") == "TBD"


def test_out_of_range_canonical_date_is_left_for_the_encoder():
    assert normalize_date("2026-13-01") == "2026-13-01"


def test_date_normalization_is_idempotent():
    once = normalize_date("2026-3-9")
    assert normalize_date(once) == once


# ============================================================
# TIMES
# ============================================================
@pytest.mark.parametrize(
    "raw, expected",
    [
        ("12:00 am", "00:00"),
        ("12:00 pm", "12:00"),
        ("2:00 PM", "14:00"),
        ("11:59pm", "23:59"),
        ("9:30 AM", "09:30"),
        ("9:30", "09:30"),
        ("14:00", "14:00"),
    ],
)
def test_times_become_24_hour(raw, expected):
    assert normalize_time(raw) == expected


def test_absent_or_blank_time_means_all_day():
    assert normalize_time(None) is None
    assert normalize_time("") is None
    assert normalize_time("   ") is None


def test_unrecognized_time_passes_through():
    assert normalize_time("noon") == "noon"
    assert normalize_time("2 PM") == "2 PM"


def test_time_normalization_is_idempotent():
    once = normalize_time("3:15 pm")
    assert once == "15:15"
    assert normalize_time(once) == once


# ============================================================
# TYPES
# ============================================================
@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Midterm Exam", "Exam"),
        ("quiz", "Exam"),
        ("Final", "Exam"),
        ("Lab Report 3", "Assignment"),
        ("HW", "Assignment"),
        ("project", "Assignment"),
        ("Reading: Ch.4", "Reading"),
        ("Guest Lecture", "Other"),
        ("", "Other"),
    ],
)
def test_type_keyword_buckets(raw, expected):
    assert normalize_type(raw) == expected


def test_exam_keywords_win_over_assignment_keywords():
    assert normalize_type("Final Project") == "Exam"


@pytest.mark.parametrize("category", ["Exam", "Assignment", "Reading", "Other"])
def test_type_normalization_is_idempotent(category):
    assert normalize_type(category) == category


# ============================================================
# RESPONSE PARSING
# ============================================================
def test_valid_response_is_normalized(model_response):
    result = parse_model_response(model_response)

    assert result.course_name == "MATH 201"
    assert len(result.events) == 2
    midterm, pset = result.events
    assert midterm.date == "2026-02-14"
    assert midterm.time == "14:00"
    assert midterm.type == "Exam"
    assert midterm.course == "MATH 201"
    assert pset.type == "Assignment"
    assert pset.time is None
    assert midterm.id and pset.id and midterm.id != pset.id


def test_event_course_is_kept_when_present():
    raw = json.dumps({
        "courseName": "CS 350",
        "events": [{"title": "Lab 2", "date": "2026-03-01", "type": "lab", "course": "CS 351"}],
    })
    result = parse_model_response(raw)
    assert result.events[0].course == "CS 351"
    assert result.events[0].weight == ""
    assert result.events[0].notes == ""


def test_code_fenced_json_is_accepted():
    fenced = '```json\n{"courseName": "X", "events": [{"title": "T", "date": "2026-01-01", "type": "Other"}]}\n```'
    assert strip_code_fences(fenced).startswith("{")
    assert len(parse_model_response(fenced).events) == 1


def test_non_json_is_malformed():
    with pytest.raises(MalformedResponse):
        parse_model_response("Sure! Here are your deadlines.")


def test_partial_salvage_keeps_valid_events():
    raw = json.dumps({
        "courseName": 42,
        "events": [
            {"title": "Quiz 1", "date": "2026-02-01", "type": "quiz"},
            {"title": "", "date": "2026-02-02", "type": "quiz"},
            {"title": "Essay", "date": "2026-2-9", "time": "11:59pm", "type": "essay"},
        ],
    })
    result = parse_model_response(raw)

    assert len(result.events) == 2
    assert result.dropped == 1
    assert result.course_name == "Unknown Course"
    assert [e.title for e in result.events] == ["Quiz 1", "Essay"]
    assert result.events[1].date == "2026-02-09"
    assert result.events[1].time == "23:59"
    assert all(e.course == "Unknown Course" for e in result.events)


def test_salvage_keeps_string_course_name():
    raw = json.dumps({
        "courseName": "BIO 100",
        "events": [{"title": "Reading", "date": "2026-02-01", "type": "Reading"}, "garbage"],
    })
    result = parse_model_response(raw)
    assert result.course_name == "BIO 100"
    assert result.events[0].course == "BIO 100"


def test_missing_course_name_triggers_salvage():
    raw = json.dumps({"events": [{"title": "Exam", "date": "2026-04-01", "type": "Exam"}]})
    result = parse_model_response(raw)
    assert result.course_name == "Unknown Course"
    assert len(result.events) == 1


@pytest.mark.parametrize(
    "payload",
    [
        {"courseName": "X", "events": []},
        {"courseName": "X"},
        {"courseName": "X", "events": [{"title": "No date", "type": "Exam"}, {"date": "2026-01-01"}]},
        {"courseName": "X", "events": "not a list"},
        [{"title": "T", "date": "2026-01-01", "type": "Exam"}],
    ],
)
def test_nothing_salvageable_is_unexpected_format(payload):
    with pytest.raises(UnexpectedFormat):
        parse_model_response(json.dumps(payload))


def test_salvage_events_folds_without_raising():
    items = [
        {"title": "A", "date": "2026-01-01", "type": "Exam"},
        None,
        {"title": "B", "date": "2026-01-02", "type": 7},
        {"title": "C", "date": "2026-01-03", "type": "Reading", "weight": None},
    ]
    valid, dropped = salvage_events(items, "HIST 210")
    assert [e.title for e in valid] == ["A", "C"]
    assert dropped == 2
    assert valid[1].weight == ""
