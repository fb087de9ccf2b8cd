"""
Authorization policy — one place that decides what an actor may touch.

Every handler resolves the target resource first (so a missing resource is a
404) and then asks the actor's policy. A denial is raised as a 403 with a
specific code; it is never turned into an empty result.

    admin    full access
    faculty  full access to courses they teach, nothing on other courses
    student  read-only access to their own records and enrolled courses
"""

from dataclasses import dataclass

from bson import ObjectId

from academic_portal.core.errors import forbidden


@dataclass(frozen=True)
class Decision:
    allowed: bool
    code: str = ""
    message: str = ""


ALLOW = Decision(True)


def deny(code: str, message: str) -> Decision:
    return Decision(False, code, message)


def enforce(decision: Decision) -> None:
    if not decision.allowed:
        raise forbidden(decision.message, decision.code)


def _same(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


class Policy:
    role = ""

    def __init__(self, actor: dict):
        self.actor = actor
        self.actor_id: ObjectId = actor["_id"]

    def can_view_course(self, course: dict) -> Decision:
        return ALLOW

    def can_manage_course(self, course: dict, action: str = "manage") -> Decision:
        return ALLOW

    def can_view_course_records(self, course: dict) -> Decision:
        """May the actor filter grade/attendance listings by this course."""
        return ALLOW

    def can_view_student(self, student_id) -> Decision:
        return ALLOW

    def can_view_user(self, user_id) -> Decision:
        return ALLOW

    def course_scope(self) -> dict:
        """Mongo filter restricting which courses show up in listings."""
        return {}

    def record_scope(self, taught_course_ids: list[ObjectId] | None = None) -> dict:
        """Mongo filter restricting which grade/attendance records show up in listings."""
        return {}

    @property
    def needs_taught_courses(self) -> bool:
        return False


class AdminPolicy(Policy):
    role = "admin"


class FacultyPolicy(Policy):
    role = "faculty"

    def teaches(self, course: dict) -> bool:
        return _same(course.get("instructor"), self.actor_id)

    def can_view_course(self, course: dict) -> Decision:
        if self.teaches(course):
            return ALLOW
        return deny("NOT_INSTRUCTOR", "You are not the instructor of this course")

    def can_manage_course(self, course: dict, action: str = "manage") -> Decision:
        if self.teaches(course):
            return ALLOW
        return deny("NOT_INSTRUCTOR", f"You can only {action} courses you teach")

    def can_view_course_records(self, course: dict) -> Decision:
        return self.can_manage_course(course, "view records for")

    def course_scope(self) -> dict:
        return {"instructor": self.actor_id}

    def record_scope(self, taught_course_ids: list[ObjectId] | None = None) -> dict:
        return {"course": {"$in": list(taught_course_ids or [])}}

    @property
    def needs_taught_courses(self) -> bool:
        return True


class StudentPolicy(Policy):
    role = "student"

    def can_view_course(self, course: dict) -> Decision:
        if any(_same(s, self.actor_id) for s in course.get("students", [])):
            return ALLOW
        return deny("NOT_ENROLLED", "You are not enrolled in this course")

    def can_manage_course(self, course: dict, action: str = "manage") -> Decision:
        return deny("NOT_INSTRUCTOR", f"You can only {action} courses you teach")

    def can_view_student(self, student_id) -> Decision:
        if _same(student_id, self.actor_id):
            return ALLOW
        return deny("ACCESS_DENIED", "You can only access your own data")

    def can_view_user(self, user_id) -> Decision:
        return self.can_view_student(user_id)

    def course_scope(self) -> dict:
        return {"students": self.actor_id}

    def record_scope(self, taught_course_ids: list[ObjectId] | None = None) -> dict:
        return {"student": self.actor_id}


POLICIES = {
    "admin": AdminPolicy,
    "faculty": FacultyPolicy,
    "student": StudentPolicy,
}


def policy_for(actor: dict) -> Policy:
    try:
        return POLICIES[actor["role"]](actor)
    except KeyError:
        raise forbidden("Insufficient permissions", "INSUFFICIENT_PERMISSIONS")


def taught_course_ids(db, policy: Policy) -> list[ObjectId] | None:
    """Ids of the courses a faculty actor teaches; None for other roles."""
    if not policy.needs_taught_courses:
        return None
    return [c["_id"] for c in db.courses.find({"instructor": policy.actor_id}, {"_id": 1})]


def scoped_record_query(db, actor: dict) -> dict:
    policy = policy_for(actor)
    return policy.record_scope(taught_course_ids(db, policy))
