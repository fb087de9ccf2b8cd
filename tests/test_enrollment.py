from bson import ObjectId

from academic_portal.core.config import settings
from academic_portal.services import enrollment


def _course(students=(), max_students=2):
    return {"_id": ObjectId(), "students": list(students), "maxStudents": max_students}


def test_add_student():
    course = _course()
    sid = ObjectId()
    assert enrollment.add_student(course, sid)
    assert course["students"] == [sid]


def test_add_student_to_full_course_leaves_roster():
    a, b = ObjectId(), ObjectId()
    course = _course([a, b], max_students=2)
    assert not enrollment.add_student(course, ObjectId())
    assert course["students"] == [a, b]
    assert enrollment.check_enrollment(course, ObjectId()) == enrollment.COURSE_FULL


def test_duplicate_is_reported_before_capacity():
    a = ObjectId()
    course = _course([a], max_students=1)
    assert not enrollment.add_student(course, a)
    assert course["students"] == [a]
    assert enrollment.check_enrollment(course, a) == enrollment.ALREADY_ENROLLED


def test_remove_non_member_is_noop():
    a = ObjectId()
    course = _course([a])
    enrollment.remove_student(course, ObjectId())
    assert course["students"] == [a]
    enrollment.remove_student(course, str(a))
    assert course["students"] == []


def test_enroll_bumps_roster_version(db, faculty, student, make_course):
    course = make_course(faculty)
    failure, updated = enrollment.enroll(db, course, student["_id"])
    assert failure is None
    assert updated["students"] == [student["_id"]]
    assert updated["rosterVersion"] == 1


def test_enroll_retries_after_concurrent_change(db, faculty, make_user, make_course):
    course = make_course(faculty, maxStudents=1)
    first, second = make_user("student"), make_user("student")

    # Another request takes the last seat after `course` was read
    enrollment.enroll(db, dict(course), first["_id"])

    failure, latest = enrollment.enroll(db, course, second["_id"])
    assert failure == enrollment.COURSE_FULL
    assert db.courses.find_one({"_id": course["_id"]})["students"] == [first["_id"]]


def test_enroll_without_version_guard(db, faculty, student, make_course, monkeypatch):
    monkeypatch.setattr(settings, "ATOMIC_ENROLLMENT", False)
    course = make_course(faculty)
    failure, updated = enrollment.enroll(db, course, student["_id"])
    assert failure is None
    assert student["_id"] in updated["students"]


def test_unenroll(db, faculty, student, make_course):
    course = make_course(faculty, students=[student["_id"]], rosterVersion=1)
    updated = enrollment.unenroll(db, course["_id"], student["_id"])
    assert updated["students"] == []
    assert updated["rosterVersion"] == 2
