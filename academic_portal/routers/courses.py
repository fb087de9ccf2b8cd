"""
Courses router — Catalogue, course maintenance, roster (enroll / unenroll).

Listings are scoped by role: students see courses they are enrolled in,
faculty see courses they teach, admin sees everything.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from academic_portal.core.database import get_db
from academic_portal.core.errors import bad_request, forbidden, not_found
from academic_portal.core.policy import enforce, policy_for
from academic_portal.core.security import (
    require_admin,
    require_any_role,
    require_faculty_or_admin,
)
from academic_portal.schemas.base import Semester, Year
from academic_portal.schemas.courses import CourseCreate, CourseUpdate, EnrollRequest
from academic_portal.services import enrollment
from academic_portal.utils.mongo import populate, search_filter, serialize, to_object_id, utcnow
from academic_portal.utils.response import Pagination, message_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/courses", tags=["Courses"])

INSTRUCTOR_FIELDS = ("firstName", "lastName", "email", "department")
STUDENT_FIELDS = ("firstName", "lastName", "studentId", "email")


def get_course_or_404(db, course_id: str) -> dict:
    course = db.courses.find_one({"_id": to_object_id(course_id, "course id")})
    if not course:
        raise not_found("Course not found", "COURSE_NOT_FOUND")
    return course


def course_filter(db, user: dict, course_id: str):
    """Id of a course used to filter record listings; faculty only on courses they teach."""
    course = get_course_or_404(db, course_id)
    enforce(policy_for(user).can_view_course_records(course))
    return course["_id"]


def render_course(db, course: dict) -> dict:
    """Course with instructor and roster expanded, ready for JSON."""
    doc = dict(course)
    doc["currentEnrollment"] = len(doc.get("students", []))
    populate(db, [doc], "instructor", "users", INSTRUCTOR_FIELDS)
    populate(db, [doc], "students", "users", STUDENT_FIELDS)
    return serialize(doc)


@router.get("")
def list_courses(
    department: Optional[str] = None,
    semester: Optional[Semester] = None,
    year: Optional[Year] = None,
    instructor: Optional[str] = None,
    search: Optional[str] = None,
    paging: Pagination = Depends(),
    user: dict = Depends(require_any_role),
):
    db = get_db()
    query = policy_for(user).course_scope()
    if department:
        query["department"] = department
    if semester:
        query["semester"] = semester
    if year:
        query["year"] = year
    if instructor:
        requested = to_object_id(instructor, "instructor id")
        if "instructor" in query and query["instructor"] != requested:
            raise forbidden("You can only view courses you teach", "NOT_INSTRUCTOR")
        query["instructor"] = requested
    query.update(search_filter(search, ("courseCode", "courseName", "description")))

    cursor = (
        db.courses.find(query)
        .sort("courseCode", ASCENDING)
        .skip(paging.skip)
        .limit(paging.limit)
    )
    items = [render_course(db, c) for c in cursor]
    return paging.respond(items, db.courses.count_documents(query))


@router.get("/stats/overview")
def course_stats(user: dict = Depends(require_admin)):
    db = get_db()
    courses = list(db.courses.find({}, {"students": 1, "department": 1}))
    enrollments = [len(c.get("students", [])) for c in courses]

    by_department: dict = {}
    for c in courses:
        by_department[c.get("department")] = by_department.get(c.get("department"), 0) + 1

    return {
        "overview": {
            "totalCourses": len(courses),
            "activeCourses": db.courses.count_documents({"isActive": True}),
            "totalEnrollments": sum(enrollments),
            "averageEnrollment": round(sum(enrollments) / len(enrollments)) if enrollments else 0,
        },
        "coursesByDepartment": [
            {"department": dept, "count": count}
            for dept, count in sorted(by_department.items(), key=lambda kv: -kv[1])
        ],
    }


@router.get("/{course_id}")
def get_course(course_id: str, user: dict = Depends(require_any_role)):
    db = get_db()
    course = get_course_or_404(db, course_id)
    enforce(policy_for(user).can_view_course(course))
    return {"course": render_course(db, course)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_course(body: CourseCreate, user: dict = Depends(require_faculty_or_admin)):
    """
    Faculty always create courses for themselves. Admin may name any faculty
    member as instructor; the instructor must hold the faculty role.
    """
    db = get_db()
    code = body.course_code.upper()

    if db.courses.find_one({"courseCode": code}, {"_id": 1}):
        raise bad_request("Course with this code already exists", "COURSE_EXISTS")

    if user["role"] == "faculty" or not body.instructor:
        instructor_id = user["_id"]
    else:
        instructor_id = to_object_id(body.instructor, "instructor id")

    instructor = db.users.find_one({"_id": instructor_id}, {"role": 1})
    if not instructor or instructor.get("role") != "faculty":
        raise bad_request("Invalid instructor - must be a faculty member", "INVALID_INSTRUCTOR")

    now = utcnow()
    doc = body.to_document(exclude={"instructor"})
    doc.update({
        "courseCode": code,
        "instructor": instructor_id,
        "students": [],
        "rosterVersion": 0,
        "isActive": True,
        "createdAt": now,
        "updatedAt": now,
    })

    try:
        result = db.courses.insert_one(doc)
    except DuplicateKeyError:
        raise bad_request("Course with this code already exists", "COURSE_EXISTS")
    doc["_id"] = result.inserted_id

    logger.info("Course %s created by %s", code, user["_id"])
    return message_response("Course created successfully", course=render_course(db, doc))


@router.put("/{course_id}")
def update_course(
    course_id: str,
    body: CourseUpdate,
    user: dict = Depends(require_faculty_or_admin),
):
    db = get_db()
    course = get_course_or_404(db, course_id)
    enforce(policy_for(user).can_manage_course(course, "update"))

    updates = body.to_document(exclude_unset=True, exclude_none=True)
    if "maxStudents" in updates and updates["maxStudents"] < len(course.get("students", [])):
        raise bad_request(
            "Maximum students cannot be lower than current enrollment",
            "CAPACITY_BELOW_ENROLLMENT",
        )
    updates["updatedAt"] = utcnow()

    updated = db.courses.find_one_and_update(
        {"_id": course["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    logger.info("Course %s updated by %s", course.get("courseCode"), user["_id"])
    return message_response("Course updated successfully", course=render_course(db, updated))


@router.delete("/{course_id}")
def deactivate_course(course_id: str, user: dict = Depends(require_admin)):
    """Soft delete — sets isActive=false."""
    db = get_db()
    updated = db.courses.find_one_and_update(
        {"_id": to_object_id(course_id, "course id")},
        {"$set": {"isActive": False, "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise not_found("Course not found", "COURSE_NOT_FOUND")
    logger.info("Course %s deactivated", updated.get("courseCode"))
    return message_response("Course deactivated successfully", course=render_course(db, updated))


# ===== ROSTER =====

@router.post("/{course_id}/enroll")
def enroll_student(
    course_id: str,
    body: EnrollRequest,
    user: dict = Depends(require_faculty_or_admin),
):
    db = get_db()
    student_id = to_object_id(body.student_id, "student id")
    course = get_course_or_404(db, course_id)
    enforce(policy_for(user).can_manage_course(course, "enroll students in"))

    student = db.users.find_one({"_id": student_id}, {"role": 1})
    if not student or student.get("role") != "student":
        raise bad_request("Invalid student ID", "INVALID_STUDENT")

    failure, course = enrollment.enroll(db, course, student_id)
    if failure:
        raise bad_request(enrollment.FAILURE_MESSAGES[failure], failure)

    return message_response("Student enrolled successfully", course=render_course(db, course))


@router.delete("/{course_id}/enroll/{student_id}")
def remove_student(
    course_id: str,
    student_id: str,
    user: dict = Depends(require_faculty_or_admin),
):
    db = get_db()
    course = get_course_or_404(db, course_id)
    enforce(policy_for(user).can_manage_course(course, "remove students from"))

    updated = enrollment.unenroll(db, course["_id"], to_object_id(student_id, "student id"))
    logger.info("Student %s removed from course %s", student_id, course.get("courseCode"))
    return message_response(
        "Student removed from course successfully",
        course=render_course(db, updated),
    )
