"""
Course roster operations.

The capacity and duplicate checks run against a freshly read course. With
ATOMIC_ENROLLMENT the roster write is conditional on `rosterVersion` being
unchanged since that read, so two concurrent enrollments cannot both take the
last seat; the loser re-reads and re-checks.
"""

import logging

from bson import ObjectId
from pymongo import ReturnDocument

from academic_portal.core.config import settings
from academic_portal.utils.mongo import utcnow

logger = logging.getLogger(__name__)

ALREADY_ENROLLED = "ALREADY_ENROLLED"
COURSE_FULL = "COURSE_FULL"
ENROLLMENT_FAILED = "ENROLLMENT_FAILED"

FAILURE_MESSAGES = {
    ALREADY_ENROLLED: "Student is already enrolled in this course",
    COURSE_FULL: "Course is full",
    ENROLLMENT_FAILED: "Failed to enroll student",
}


def is_enrolled(course: dict, student_id) -> bool:
    return any(str(s) == str(student_id) for s in course.get("students", []))


def is_full(course: dict) -> bool:
    return len(course.get("students", [])) >= course.get("maxStudents", 50)


def check_enrollment(course: dict, student_id) -> str | None:
    if is_enrolled(course, student_id):
        return ALREADY_ENROLLED
    if is_full(course):
        return COURSE_FULL
    return None


def add_student(course: dict, student_id: ObjectId) -> bool:
    """In-memory roster add; False (roster untouched) when full or duplicate."""
    if check_enrollment(course, student_id) is not None:
        return False
    course.setdefault("students", []).append(student_id)
    return True


def remove_student(course: dict, student_id) -> None:
    course["students"] = [s for s in course.get("students", []) if str(s) != str(student_id)]


def _version_filter(course: dict) -> dict:
    if "rosterVersion" in course:
        return {"rosterVersion": course["rosterVersion"]}
    return {"rosterVersion": {"$exists": False}}


def enroll(db, course: dict, student_id: ObjectId) -> tuple[str | None, dict]:
    """
    Add `student_id` to the course roster.
    Returns (failure code or None, latest course document).
    """
    attempts = max(1, settings.ENROLLMENT_RETRIES) if settings.ATOMIC_ENROLLMENT else 1

    for _ in range(attempts):
        failure = check_enrollment(course, student_id)
        if failure:
            return failure, course

        now = utcnow()
        if settings.ATOMIC_ENROLLMENT:
            query = {"_id": course["_id"], **_version_filter(course)}
        else:
            query = {"_id": course["_id"]}

        updated = db.courses.find_one_and_update(
            query,
            {
                "$addToSet": {"students": student_id},
                "$inc": {"rosterVersion": 1},
                "$set": {"updatedAt": now},
            },
            return_document=ReturnDocument.AFTER,
        )
        if updated is not None:
            logger.info("Enrolled student %s in course %s", student_id, course["_id"])
            return None, updated

        logger.info("Roster of course %s changed during enrollment, retrying", course["_id"])
        course = db.courses.find_one({"_id": course["_id"]})
        if course is None:
            break

    return ENROLLMENT_FAILED, course


def unenroll(db, course_id: ObjectId, student_id: ObjectId) -> dict | None:
    """Pull the student from the roster; a non-member is a no-op."""
    return db.courses.find_one_and_update(
        {"_id": course_id},
        {
            "$pull": {"students": student_id},
            "$inc": {"rosterVersion": 1},
            "$set": {"updatedAt": utcnow()},
        },
        return_document=ReturnDocument.AFTER,
    )
