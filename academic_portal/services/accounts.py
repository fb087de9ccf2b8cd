"""
Account creation shared by self-registration and admin-created users.
"""

import logging
import secrets
import string
from datetime import datetime

from pymongo.errors import DuplicateKeyError

from academic_portal.core.errors import bad_request
from academic_portal.core.security import get_password_hash
from academic_portal.utils.mongo import utcnow

logger = logging.getLogger(__name__)

STUDENT_ONLY_FIELDS = ("year", "semester")


def generate_password(length: int = 10) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_student_id(db, now: datetime | None = None) -> str:
    """STU<year><sequence>, sequence counted over ids already issued this year."""
    year = (now or utcnow()).year
    prefix = f"STU{year}"
    issued = db.users.count_documents({"studentId": {"$regex": f"^{prefix}"}})
    return f"{prefix}{issued + 1:04d}"


def email_taken(db, email: str, exclude_id=None) -> bool:
    query = {"email": email.lower()}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    return db.users.find_one(query, {"_id": 1}) is not None


def firebase_uid_taken(db, uid: str, exclude_id=None) -> bool:
    query = {"firebaseUid": uid}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    return db.users.find_one(query, {"_id": 1}) is not None


def create_user(db, fields: dict, password: str, firebase_uid: str | None = None) -> dict:
    """
    Insert a user document. `fields` are camelCase profile attributes.
    Raises EMAIL_EXISTS when the address is already registered.
    """
    email = fields["email"].lower()
    if email_taken(db, email):
        raise bad_request("User with this email already exists", "EMAIL_EXISTS")
    if firebase_uid and firebase_uid_taken(db, firebase_uid):
        raise bad_request("Firebase account is already linked to a user", "FIREBASE_UID_EXISTS")

    now = utcnow()
    doc = {k: v for k, v in fields.items() if v is not None and k != "password"}
    doc.update({
        "email": email,
        "passwordHash": get_password_hash(password),
        "isActive": True,
        "createdAt": now,
        "updatedAt": now,
    })
    if firebase_uid:
        doc["firebaseUid"] = firebase_uid

    if doc["role"] == "student":
        doc["studentId"] = generate_student_id(db, now)
    else:
        for key in STUDENT_ONLY_FIELDS:
            doc.pop(key, None)

    try:
        result = db.users.insert_one(doc)
    except DuplicateKeyError:
        raise bad_request("User with this email already exists", "EMAIL_EXISTS")

    doc["_id"] = result.inserted_id
    logger.info("Created %s account %s", doc["role"], email)
    return doc
