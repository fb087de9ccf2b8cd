"""
Attendance router — Bulk marking per course/day, corrections, percentages.

A course/day is marked once; later changes go through PUT on the
individual record. Late counts as attended.
"""

import logging
from datetime import date as Date, datetime, time
from typing import Optional

from fastapi import APIRouter, Depends, status
from pymongo import DESCENDING, ReturnDocument

from academic_portal.core.database import get_db
from academic_portal.core.errors import bad_request, not_found
from academic_portal.core.policy import enforce, policy_for, scoped_record_query
from academic_portal.core.security import require_any_role, require_faculty_or_admin
from academic_portal.routers.courses import course_filter, get_course_or_404
from academic_portal.schemas.attendance import AttendanceMark, AttendanceUpdate
from academic_portal.services.attendance import (
    attendance_percentage,
    day_query,
    group_by_course,
    student_statistics,
    summarize_day,
)
from academic_portal.utils.mongo import populate, serialize, to_object_id, utcnow
from academic_portal.utils.response import Pagination, message_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/attendance", tags=["Attendance"])

COURSE_FIELDS = ("courseCode", "courseName")


def render_attendance(db, records: list[dict]) -> list[dict]:
    populate(db, records, "student", "users", ("firstName", "lastName", "studentId"))
    populate(db, records, "course", "courses", COURSE_FIELDS)
    populate(db, records, "markedBy", "users", ("firstName", "lastName"))
    return serialize(records)


def _manageable_record(db, record_id: str, user: dict, action: str) -> dict:
    record = db.attendance.find_one({"_id": to_object_id(record_id, "attendance id")})
    if not record:
        raise not_found("Attendance record not found", "ATTENDANCE_NOT_FOUND")
    course = db.courses.find_one({"_id": record["course"]}, {"instructor": 1}) or {}
    enforce(policy_for(user).can_manage_course(course, f"{action} attendance for"))
    return record


def _narrow(db, user: dict, query: dict, courseId, semester, academicYear) -> dict:
    if courseId:
        query["course"] = course_filter(db, user, courseId)
    if semester:
        query["semester"] = semester
    if academicYear:
        query["academicYear"] = academicYear
    return query


def _student_query(db, user: dict, student_id: str, courseId, semester, academicYear) -> dict:
    oid = to_object_id(student_id, "student id")
    enforce(policy_for(user).can_view_student(oid))
    query = {**scoped_record_query(db, user), "student": oid}
    return _narrow(db, user, query, courseId, semester, academicYear)


@router.get("")
def list_attendance(
    studentId: Optional[str] = None,
    courseId: Optional[str] = None,
    date: Optional[Date] = None,
    semester: Optional[str] = None,
    academicYear: Optional[str] = None,
    paging: Pagination = Depends(),
    user: dict = Depends(require_any_role),
):
    db = get_db()
    if studentId:
        query = _student_query(db, user, studentId, courseId, semester, academicYear)
    else:
        query = _narrow(db, user, scoped_record_query(db, user), courseId, semester, academicYear)
    if date:
        query["date"] = day_query(date)

    cursor = (
        db.attendance.find(query)
        .sort("date", DESCENDING)
        .skip(paging.skip)
        .limit(paging.limit)
    )
    return paging.respond(render_attendance(db, list(cursor)), db.attendance.count_documents(query))


@router.get("/student/{student_id}")
def get_student_attendance(
    student_id: str,
    courseId: Optional[str] = None,
    semester: Optional[str] = None,
    academicYear: Optional[str] = None,
    user: dict = Depends(require_any_role),
):
    """Records of one student grouped per course with the attended percentage."""
    db = get_db()
    query = _student_query(db, user, student_id, courseId, semester, academicYear)
    records = list(db.attendance.find(query).sort("date", DESCENDING))

    rendered = render_attendance(db, records)
    course_attendance = [
        {
            "course": items[0]["course"],
            "records": items,
            "percentage": attendance_percentage(items),
        }
        for items in group_by_course(rendered).values()
    ]
    return {"attendance": rendered, "courseAttendance": course_attendance}


@router.get("/course/{course_id}")
def get_course_attendance(
    course_id: str,
    date: Optional[Date] = None,
    semester: Optional[str] = None,
    academicYear: Optional[str] = None,
    user: dict = Depends(require_faculty_or_admin),
):
    db = get_db()
    course = get_course_or_404(db, course_id)
    enforce(policy_for(user).can_manage_course(course, "view attendance for"))

    query = {"course": course["_id"]}
    if semester:
        query["semester"] = semester
    if academicYear:
        query["academicYear"] = academicYear
    if date:
        query["date"] = day_query(date)

    records = list(db.attendance.find(query).sort("date", DESCENDING))
    return {"attendance": render_attendance(db, records), "summary": summarize_day(records)}


@router.post("", status_code=status.HTTP_201_CREATED)
def mark_attendance(body: AttendanceMark, user: dict = Depends(require_faculty_or_admin)):
    db = get_db()
    course = get_course_or_404(db, body.course_id)
    enforce(policy_for(user).can_manage_course(course, "mark attendance for"))

    if db.attendance.find_one({"course": course["_id"], "date": day_query(body.date)}, {"_id": 1}):
        raise bad_request("Attendance already marked for this date", "ATTENDANCE_EXISTS")

    student_ids = [to_object_id(entry.student_id, "student id") for entry in body.attendance_data]
    if len(set(student_ids)) != len(student_ids):
        raise bad_request("A student can be marked only once per day", "DUPLICATE_STUDENT")
    known = db.users.count_documents({"_id": {"$in": student_ids}, "role": "student"})
    if known != len(student_ids):
        raise bad_request("Invalid student ID", "INVALID_STUDENT")

    marked_on = datetime.combine(body.date, time.min)
    now = utcnow()
    records = [
        {
            "student": student_id,
            "course": course["_id"],
            "date": marked_on,
            "status": entry.status,
            "markedBy": user["_id"],
            "remarks": entry.remarks or "",
            "semester": body.semester,
            "academicYear": body.academic_year,
            "createdAt": now,
            "updatedAt": now,
        }
        for student_id, entry in zip(student_ids, body.attendance_data)
    ]
    result = db.attendance.insert_many(records)
    records = list(db.attendance.find({"_id": {"$in": result.inserted_ids}}))

    logger.info(
        "Attendance marked for %s on %s: %d records",
        course.get("courseCode"), body.date.isoformat(), len(records),
    )
    return message_response("Attendance marked successfully", attendance=render_attendance(db, records))


@router.put("/{record_id}")
def update_attendance(
    record_id: str,
    body: AttendanceUpdate,
    user: dict = Depends(require_faculty_or_admin),
):
    db = get_db()
    record = _manageable_record(db, record_id, user, "update")

    updates = body.to_document(exclude_none=True)
    updates["updatedAt"] = utcnow()
    updated = db.attendance.find_one_and_update(
        {"_id": record["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    logger.info("Attendance %s updated by %s", record_id, user["_id"])
    return message_response(
        "Attendance updated successfully",
        attendance=render_attendance(db, [updated])[0],
    )


@router.delete("/{record_id}")
def delete_attendance(record_id: str, user: dict = Depends(require_faculty_or_admin)):
    db = get_db()
    record = _manageable_record(db, record_id, user, "delete")
    db.attendance.delete_one({"_id": record["_id"]})
    logger.info("Attendance %s deleted by %s", record_id, user["_id"])
    return message_response("Attendance record deleted successfully")


@router.get("/stats/student/{student_id}")
def get_student_attendance_stats(
    student_id: str,
    courseId: Optional[str] = None,
    semester: Optional[str] = None,
    academicYear: Optional[str] = None,
    user: dict = Depends(require_any_role),
):
    db = get_db()
    query = _student_query(db, user, student_id, courseId, semester, academicYear)
    records = list(db.attendance.find(query))

    stats = student_statistics(records)
    courses = {
        str(c["_id"]): c
        for c in db.courses.find(
            {"_id": {"$in": list({r["course"] for r in records})}},
            {f: 1 for f in COURSE_FIELDS},
        )
    }
    for entry in stats["courseStats"]:
        entry["course"] = serialize(courses.get(entry["course"], entry["course"]))
    return stats
