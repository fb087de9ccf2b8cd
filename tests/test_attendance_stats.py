from datetime import date, datetime

import pytest

from academic_portal.services.attendance import (
    attendance_percentage,
    day_bounds,
    student_statistics,
    summarize_day,
)


def _records(*statuses, course="c1"):
    return [{"status": s, "course": course} for s in statuses]


def test_percentage_counts_late_as_attended():
    assert attendance_percentage(_records("Present", "Absent", "Late", "Excused")) == 50.0


def test_percentage_of_empty_set_is_zero():
    assert attendance_percentage([]) == 0


def test_day_bounds_cover_whole_day():
    start, end = day_bounds(date(2024, 3, 1))
    assert start == datetime(2024, 3, 1, 0, 0, 0)
    assert end == datetime(2024, 3, 1, 23, 59, 59, 999999)
    assert day_bounds(datetime(2024, 3, 1, 14, 30)) == (start, end)


def test_summarize_day():
    summary = summarize_day(_records("Present", "Present", "Absent", "Late"))
    assert summary == {
        "totalStudents": 4,
        "present": 2,
        "absent": 1,
        "late": 1,
        "excused": 0,
        "attendancePercentage": 75.0,
    }


def test_student_statistics():
    records = _records("Present", "Absent", "Absent") + _records("Excused", course="c2")
    stats = student_statistics(records)

    by_course = {c["course"]: c for c in stats["courseStats"]}
    assert by_course["c1"]["total"] == 3
    assert by_course["c1"]["percentage"] == pytest.approx(100 / 3)
    assert by_course["c2"]["excused"] == 1
    assert by_course["c2"]["percentage"] == 0

    assert stats["overall"] == {
        "totalRecords": 4,
        "present": 1,
        "absent": 2,
        "late": 0,
        "excused": 1,
        "percentage": 25.0,
    }


def test_student_statistics_without_records():
    stats = student_statistics([])
    assert stats["courseStats"] == []
    assert stats["overall"]["totalRecords"] == 0
    assert stats["overall"]["percentage"] == 0
