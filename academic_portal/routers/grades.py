"""
Grades router — Grade book CRUD and GPA summaries.

Percentage, letter grade and grade points are computed here, at the write
boundary, every time marks are stored. Grades are upserted on
(student, course, assignment title): resubmitting overwrites.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from academic_portal.core.database import get_db
from academic_portal.core.errors import bad_request, not_found
from academic_portal.core.policy import enforce, policy_for, scoped_record_query
from academic_portal.core.security import require_any_role, require_faculty_or_admin
from academic_portal.routers.courses import course_filter, get_course_or_404
from academic_portal.schemas.grades import GradeCreate, GradeUpdate
from academic_portal.services.enrollment import is_enrolled
from academic_portal.services.grading import (
    compute_grade,
    course_gpas,
    course_grade_statistics,
    weighted_gpa,
)
from academic_portal.utils.mongo import populate, search_filter, serialize, to_object_id, utcnow
from academic_portal.utils.response import Pagination, message_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/grades", tags=["Grades"])


def render_grades(db, grades: list[dict]) -> list[dict]:
    populate(db, grades, "student", "users", ("firstName", "lastName", "studentId"))
    populate(db, grades, "course", "courses", ("courseCode", "courseName", "credits"))
    populate(db, grades, "gradedBy", "users", ("firstName", "lastName"))
    return serialize(grades)


def get_grade_or_404(db, grade_id: str) -> dict:
    grade = db.grades.find_one({"_id": to_object_id(grade_id, "grade id")})
    if not grade:
        raise not_found("Grade not found", "GRADE_NOT_FOUND")
    return grade


def _manageable_grade(db, grade_id: str, user: dict, action: str) -> dict:
    grade = get_grade_or_404(db, grade_id)
    course = db.courses.find_one({"_id": grade["course"]}, {"instructor": 1}) or {}
    enforce(policy_for(user).can_manage_course(course, f"{action} grades for"))
    return grade


def _check_marks(marks_obtained: int, max_marks: int) -> None:
    if marks_obtained > max_marks:
        raise bad_request("Marks obtained cannot exceed maximum marks", "INVALID_MARKS")


def _filters(semester: Optional[str], academic_year: Optional[str]) -> dict:
    query = {}
    if semester:
        query["semester"] = semester
    if academic_year:
        query["academicYear"] = academic_year
    return query


@router.get("")
def list_grades(
    studentId: Optional[str] = None,
    courseId: Optional[str] = None,
    semester: Optional[str] = None,
    academicYear: Optional[str] = None,
    paging: Pagination = Depends(),
    user: dict = Depends(require_any_role),
):
    db = get_db()
    query = scoped_record_query(db, user)

    if studentId:
        student_id = to_object_id(studentId, "student id")
        enforce(policy_for(user).can_view_student(student_id))
        query["student"] = student_id
    if courseId:
        query["course"] = course_filter(db, user, courseId)
    query.update(_filters(semester, academicYear))

    cursor = (
        db.grades.find(query)
        .sort("createdAt", DESCENDING)
        .skip(paging.skip)
        .limit(paging.limit)
    )
    return paging.respond(render_grades(db, list(cursor)), db.grades.count_documents(query))


@router.get("/student/{student_id}")
def get_student_grades(
    student_id: str,
    semester: Optional[str] = None,
    academicYear: Optional[str] = None,
    courseId: Optional[str] = None,
    user: dict = Depends(require_any_role),
):
    """Grades of one student with per-course GPA and overall GPA over the same selection."""
    db = get_db()
    oid = to_object_id(student_id, "student id")
    enforce(policy_for(user).can_view_student(oid))

    query = {**scoped_record_query(db, user), "student": oid, **_filters(semester, academicYear)}
    if courseId:
        query["course"] = course_filter(db, user, courseId)
    grades = list(db.grades.find(query).sort("createdAt", DESCENDING))

    per_course = course_gpas(grades)
    return {
        "grades": render_grades(db, grades),
        "courseGPAs": {cid: round(gpa, 2) for cid, gpa in per_course.items()},
        "overallGPA": round(weighted_gpa(grades), 2),
    }


@router.get("/course/{course_id}")
def get_course_grades(
    course_id: str,
    semester: Optional[str] = None,
    academicYear: Optional[str] = None,
    assignment: Optional[str] = None,
    user: dict = Depends(require_faculty_or_admin),
):
    db = get_db()
    course = get_course_or_404(db, course_id)
    enforce(policy_for(user).can_manage_course(course, "view grades for"))

    query = {"course": course["_id"], **_filters(semester, academicYear)}
    query.update(search_filter(assignment, ("assignment.title",)))

    grades = list(db.grades.find(query).sort("assignment.title", ASCENDING))
    statistics = course_grade_statistics(grades, len(course.get("students", [])))
    return {"grades": render_grades(db, grades), "statistics": statistics}


@router.post("", status_code=status.HTTP_201_CREATED)
def upsert_grade(body: GradeCreate, user: dict = Depends(require_faculty_or_admin)):
    """Create or overwrite the grade for (student, course, assignment title)."""
    db = get_db()
    student_id = to_object_id(body.student_id, "student id")
    course = get_course_or_404(db, body.course_id)
    enforce(policy_for(user).can_manage_course(course, "grade for"))

    student = db.users.find_one({"_id": student_id}, {"role": 1})
    if not student or student.get("role") != "student":
        raise bad_request("Invalid student", "INVALID_STUDENT")
    if not is_enrolled(course, student_id):
        raise bad_request("Student is not enrolled in this course", "NOT_ENROLLED")

    _check_marks(body.marks_obtained, body.assignment.max_marks)
    assignment = body.assignment.to_document()
    result = compute_grade(body.marks_obtained, assignment["maxMarks"])
    now = utcnow()

    key = {"student": student_id, "course": course["_id"], "assignment.title": assignment["title"]}
    write = db.grades.update_one(
        key,
        {
            "$set": {
                **{f"assignment.{k}": v for k, v in assignment.items()},
                "marksObtained": body.marks_obtained,
                **result.as_fields(),
                "feedback": body.feedback,
                "gradedBy": user["_id"],
                "gradedAt": now,
                "semester": body.semester,
                "academicYear": body.academic_year,
                "updatedAt": now,
            },
            "$setOnInsert": {
                "student": student_id,
                "course": course["_id"],
                "isPublished": False,
                "createdAt": now,
            },
        },
        upsert=True,
    )
    created = write.upserted_id is not None
    grade = db.grades.find_one(key)

    logger.info(
        "Grade %s for student %s in %s: %s (%.2f%%)",
        "created" if created else "updated",
        student_id, course.get("courseCode"), result.letter_grade, result.percentage,
    )
    return message_response(
        "Grade created successfully" if created else "Grade updated successfully",
        grade=render_grades(db, [grade])[0],
    )


@router.put("/{grade_id}")
def update_grade(grade_id: str, body: GradeUpdate, user: dict = Depends(require_faculty_or_admin)):
    db = get_db()
    grade = _manageable_grade(db, grade_id, user, "update")

    updates = body.to_document(exclude_unset=True, exclude_none=True)
    if "marksObtained" in updates:
        _check_marks(updates["marksObtained"], grade["assignment"]["maxMarks"])
        result = compute_grade(updates["marksObtained"], grade["assignment"]["maxMarks"])
        updates.update(result.as_fields())
    updates["updatedAt"] = utcnow()

    updated = db.grades.find_one_and_update(
        {"_id": grade["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    logger.info("Grade %s updated by %s", grade_id, user["_id"])
    return message_response("Grade updated successfully", grade=render_grades(db, [updated])[0])


@router.delete("/{grade_id}")
def delete_grade(grade_id: str, user: dict = Depends(require_faculty_or_admin)):
    db = get_db()
    grade = _manageable_grade(db, grade_id, user, "delete")
    db.grades.delete_one({"_id": grade["_id"]})
    logger.info("Grade %s deleted by %s", grade_id, user["_id"])
    return message_response("Grade deleted successfully")
