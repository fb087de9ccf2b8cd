"""
Users router — Directory listings, profile maintenance, soft delete.

Admin manages every account. Faculty can browse the student directory.
Students can read only their own profile.
"""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from academic_portal.core.database import get_db
from academic_portal.core.email import send_welcome_email
from academic_portal.core.errors import bad_request, not_found
from academic_portal.core.policy import enforce, policy_for
from academic_portal.core.security import (
    require_admin,
    require_any_role,
    require_faculty_or_admin,
)
from academic_portal.schemas.auth import UserCreate, UserUpdate
from academic_portal.schemas.base import Role, Semester, Year
from academic_portal.services.accounts import (
    create_user,
    email_taken,
    firebase_uid_taken,
    generate_password,
)
from academic_portal.utils.mongo import public_user, search_filter, to_object_id, utcnow
from academic_portal.utils.response import Pagination, message_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


def _list(query: dict, sort: list, paging: Pagination) -> dict:
    db = get_db()
    cursor = db.users.find(query).sort(sort).skip(paging.skip).limit(paging.limit)
    items = [public_user(u) for u in cursor]
    return paging.respond(items, db.users.count_documents(query))


@router.get("")
def list_users(
    role: Optional[Role] = None,
    department: Optional[str] = None,
    search: Optional[str] = None,
    paging: Pagination = Depends(),
    user: dict = Depends(require_admin),
):
    query = search_filter(search, ("firstName", "lastName", "email", "studentId"))
    if role:
        query["role"] = role
    if department:
        query["department"] = department
    return _list(query, [("createdAt", DESCENDING)], paging)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user_account(
    body: UserCreate,
    background_tasks: BackgroundTasks,
    user: dict = Depends(require_admin),
):
    """Create any account. A password is generated when none is given and e-mailed to the user."""
    db = get_db()
    password = body.password or generate_password()
    created = create_user(
        db,
        body.to_document(exclude={"password", "firebase_uid"}),
        password,
        firebase_uid=body.firebase_uid,
    )

    background_tasks.add_task(
        send_welcome_email,
        created["email"],
        f"{created['firstName']} {created['lastName']}",
        created["role"],
        password,
    )

    return message_response(
        f"User '{created['email']}' ({created['role']}) created successfully",
        user=public_user(created),
        tempPassword=None if body.password else password,
    )


@router.get("/students")
def list_students(
    department: Optional[str] = None,
    year: Optional[Year] = None,
    semester: Optional[Semester] = None,
    search: Optional[str] = None,
    paging: Pagination = Depends(),
    user: dict = Depends(require_faculty_or_admin),
):
    query = {"role": "student", **search_filter(search, ("firstName", "lastName", "studentId"))}
    if department:
        query["department"] = department
    if year:
        query["year"] = year
    if semester:
        query["semester"] = semester
    return _list(query, [("studentId", ASCENDING)], paging)


@router.get("/faculty")
def list_faculty(
    department: Optional[str] = None,
    search: Optional[str] = None,
    paging: Pagination = Depends(),
    user: dict = Depends(require_admin),
):
    query = {"role": "faculty", **search_filter(search, ("firstName", "lastName", "email"))}
    if department:
        query["department"] = department
    return _list(query, [("firstName", ASCENDING)], paging)


@router.get("/stats/overview")
def user_stats(user: dict = Depends(require_admin)):
    db = get_db()
    thirty_days_ago = utcnow() - timedelta(days=30)

    by_department = db.users.aggregate([
        {"$group": {"_id": "$department", "count": {"$sum": 1}}},
        {"$sort": {"count": -1}},
    ])

    return {
        "overview": {
            "totalUsers": db.users.count_documents({}),
            "totalStudents": db.users.count_documents({"role": "student"}),
            "totalFaculty": db.users.count_documents({"role": "faculty"}),
            "totalAdmins": db.users.count_documents({"role": "admin"}),
            "activeUsers": db.users.count_documents({"isActive": True}),
            "inactiveUsers": db.users.count_documents({"isActive": False}),
            "recentRegistrations": db.users.count_documents({"createdAt": {"$gte": thirty_days_ago}}),
        },
        "usersByDepartment": [
            {"department": d["_id"], "count": d["count"]} for d in by_department
        ],
    }


@router.get("/{user_id}")
def get_user(user_id: str, user: dict = Depends(require_any_role)):
    oid = to_object_id(user_id, "user id")
    found = get_db().users.find_one({"_id": oid})
    if not found:
        raise not_found("User not found", "USER_NOT_FOUND")
    enforce(policy_for(user).can_view_user(oid))
    return {"user": public_user(found)}


@router.put("/{user_id}")
def update_user(user_id: str, body: UserUpdate, user: dict = Depends(require_admin)):
    """Update profile fields. Admin can change role and activation as well."""
    db = get_db()
    oid = to_object_id(user_id, "user id")

    updates = body.to_document(exclude_unset=True, exclude_none=True)
    if "email" in updates:
        updates["email"] = updates["email"].lower()
        if email_taken(db, updates["email"], exclude_id=oid):
            raise bad_request("Email already exists", "EMAIL_EXISTS")
    if "firebaseUid" in updates and firebase_uid_taken(db, updates["firebaseUid"], exclude_id=oid):
        raise bad_request("Firebase account is already linked to a user", "FIREBASE_UID_EXISTS")
    updates["updatedAt"] = utcnow()

    updated = db.users.find_one_and_update(
        {"_id": oid}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    if not updated:
        raise not_found("User not found", "USER_NOT_FOUND")

    logger.info("User %s updated by %s (%s)", user_id, user["_id"], sorted(updates))
    return message_response("User updated successfully", user=public_user(updated))


def _set_active(user_id: str, active: bool) -> dict:
    updated = get_db().users.find_one_and_update(
        {"_id": to_object_id(user_id, "user id")},
        {"$set": {"isActive": active, "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise not_found("User not found", "USER_NOT_FOUND")
    logger.info("User %s %s", user_id, "activated" if active else "deactivated")
    return updated


@router.delete("/{user_id}")
def deactivate_user(user_id: str, user: dict = Depends(require_admin)):
    """Soft delete — sets isActive=false."""
    updated = _set_active(user_id, False)
    return message_response("User deactivated successfully", user=public_user(updated))


@router.post("/{user_id}/activate")
def activate_user(user_id: str, user: dict = Depends(require_admin)):
    updated = _set_active(user_id, True)
    return message_response("User activated successfully", user=public_user(updated))
