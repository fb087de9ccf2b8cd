"""
Attendance aggregation over already-fetched record sets.

Late counts as attended; Absent and Excused do not. Empty sets give 0.
"""

from datetime import date, datetime, time
from typing import Iterable

STATUSES = ("Present", "Absent", "Late", "Excused")
ATTENDED = frozenset({"Present", "Late"})


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Midnight to the last microsecond of `day`, both inclusive."""
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def day_query(day: date) -> dict:
    start, end = day_bounds(day)
    return {"$gte": start, "$lte": end}


def attendance_percentage(records: Iterable[dict]) -> float:
    records = list(records)
    if not records:
        return 0.0
    attended = sum(1 for r in records if r.get("status") in ATTENDED)
    return attended / len(records) * 100


def _count(records: list[dict]) -> dict:
    counts = {status.lower(): 0 for status in STATUSES}
    for record in records:
        key = str(record.get("status", "")).lower()
        if key in counts:
            counts[key] += 1
    return counts


def summarize_day(records: Iterable[dict]) -> dict:
    records = list(records)
    return {
        "totalStudents": len(records),
        **_count(records),
        "attendancePercentage": attendance_percentage(records),
    }


def _course_key(record: dict) -> str:
    course = record.get("course")
    if isinstance(course, dict):
        course = course.get("_id", course.get("id"))
    return str(course)


def group_by_course(records: Iterable[dict]) -> dict[str, list[dict]]:
    grouped: dict[str, list[dict]] = {}
    for record in records:
        grouped.setdefault(_course_key(record), []).append(record)
    return grouped


def student_statistics(records: Iterable[dict]) -> dict:
    """
    Per-course counts and percentage plus an overall block.
    Overall percentage is rounded to two decimals for display.
    """
    records = list(records)
    course_stats = []
    for course_id, items in group_by_course(records).items():
        course_stats.append({
            "course": course_id,
            **_count(items),
            "total": len(items),
            "percentage": attendance_percentage(items),
        })

    totals = _count(records)
    return {
        "courseStats": course_stats,
        "overall": {
            "totalRecords": len(records),
            **totals,
            "percentage": round(attendance_percentage(records), 2),
        },
    }
