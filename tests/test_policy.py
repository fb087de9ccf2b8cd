import pytest
from bson import ObjectId
from fastapi import HTTPException

from academic_portal.core.policy import (
    AdminPolicy,
    FacultyPolicy,
    StudentPolicy,
    enforce,
    policy_for,
    scoped_record_query,
)


def _actor(role):
    return {"_id": ObjectId(), "role": role}


def test_policy_for_dispatches_on_role():
    assert isinstance(policy_for(_actor("admin")), AdminPolicy)
    assert isinstance(policy_for(_actor("faculty")), FacultyPolicy)
    assert isinstance(policy_for(_actor("student")), StudentPolicy)


def test_unknown_role_is_forbidden():
    with pytest.raises(HTTPException) as exc:
        policy_for(_actor("guest"))
    assert exc.value.status_code == 403


def test_faculty_manages_only_taught_courses():
    actor = _actor("faculty")
    policy = policy_for(actor)
    assert policy.can_manage_course({"instructor": actor["_id"]}).allowed

    decision = policy.can_manage_course({"instructor": ObjectId()}, "grade for")
    assert not decision.allowed
    assert decision.code == "NOT_INSTRUCTOR"
    assert decision.message == "You can only grade for courses you teach"


def test_student_reads_only_own_records():
    actor = _actor("student")
    policy = policy_for(actor)
    assert policy.can_view_student(actor["_id"]).allowed
    assert policy.can_view_student(str(actor["_id"])).allowed
    assert policy.can_view_student(ObjectId()).code == "ACCESS_DENIED"


def test_student_sees_enrolled_course_only():
    actor = _actor("student")
    policy = policy_for(actor)
    assert policy.can_view_course({"students": [actor["_id"]]}).allowed
    assert policy.can_view_course({"students": []}).code == "NOT_ENROLLED"
    assert not policy.can_manage_course({"students": [actor["_id"]]}).allowed


def test_admin_allows_everything():
    policy = policy_for(_actor("admin"))
    assert policy.can_manage_course({"instructor": ObjectId()}).allowed
    assert policy.can_view_student(ObjectId()).allowed
    assert policy.course_scope() == {}


def test_enforce_raises_forbidden_with_code():
    policy = policy_for(_actor("student"))
    with pytest.raises(HTTPException) as exc:
        enforce(policy.can_view_student(ObjectId()))
    assert exc.value.status_code == 403
    assert exc.value.code == "ACCESS_DENIED"


def test_record_scope_per_role(db, faculty, student, admin, make_course):
    taught = make_course(faculty)
    make_course(admin)

    assert scoped_record_query(db, faculty) == {"course": {"$in": [taught["_id"]]}}
    assert scoped_record_query(db, student) == {"student": student["_id"]}
    assert scoped_record_query(db, admin) == {}


def test_course_records_filter_per_role():
    faculty = _actor("faculty")
    other_course = {"instructor": ObjectId(), "students": []}

    decision = policy_for(faculty).can_view_course_records(other_course)
    assert decision.code == "NOT_INSTRUCTOR"
    assert policy_for(faculty).can_view_course_records({"instructor": faculty["_id"]}).allowed
    assert policy_for(_actor("student")).can_view_course_records(other_course).allowed
    assert policy_for(_actor("admin")).can_view_course_records(other_course).allowed
