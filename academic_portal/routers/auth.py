"""
Auth router — Register, Login, Current profile.

Rules:
- Self-registration creates student accounts; faculty/admin accounts need an admin token
- Passwords are verified against the stored bcrypt hash
- Deactivated accounts cannot log in
- Firebase mode: students register with their Firebase ID token as Bearer, which links
  the account; the client then signs in with the Firebase SDK and calls /api/auth/me
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials

from academic_portal.core.config import settings
from academic_portal.core.database import get_db
from academic_portal.core.errors import bad_request, forbidden, unauthorized
from academic_portal.core.security import (
    firebase_uid,
    get_current_user,
    issue_token,
    security_scheme,
    verify_password,
)
from academic_portal.schemas.auth import UserLogin, UserRegister
from academic_portal.services.accounts import create_user
from academic_portal.utils.mongo import public_user, utcnow
from academic_portal.utils.response import message_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    body: UserRegister,
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
):
    linked_uid = None
    if body.role != "student":
        actor = get_current_user(credentials)
        if actor["role"] != "admin":
            raise forbidden(
                "Only administrators can create faculty or admin accounts",
                "INSUFFICIENT_PERMISSIONS",
            )
    elif settings.AUTH_MODE == "firebase":
        linked_uid = firebase_uid(credentials)

    db = get_db()
    fields = body.to_document(exclude={"password"})
    user = create_user(db, fields, body.password, firebase_uid=linked_uid)

    return message_response(
        "User registered successfully",
        token=issue_token(user),
        user=public_user(user),
    )


@router.post("/login")
def login(body: UserLogin):
    """
    jwt mode:  returns a signed access token.
    mock mode: returns a `mock-<email>` token.
    Firebase mode: use the Firebase SDK, then call /api/auth/me with the ID token.
    """
    if settings.AUTH_MODE == "firebase":
        raise bad_request(
            "Use Firebase SDK for login, then call /api/auth/me with the ID token.",
            "USE_FIREBASE",
        )

    db = get_db()
    user = db.users.find_one({"email": body.email.lower()})

    if not user or not verify_password(body.password, user.get("passwordHash", "")):
        logger.warning("Failed login for %s", body.email)
        raise unauthorized("Invalid email or password", "INVALID_CREDENTIALS")

    if body.role and body.role != user["role"]:
        logger.warning("Login for %s rejected: role %s requested", body.email, body.role)
        raise unauthorized("Invalid email or password", "INVALID_CREDENTIALS")

    if not user.get("isActive", True):
        raise unauthorized("Account is deactivated", "ACCOUNT_DEACTIVATED")

    now = utcnow()
    db.users.update_one({"_id": user["_id"]}, {"$set": {"lastLogin": now}})
    user["lastLogin"] = now

    return message_response(
        "Login successful",
        token=issue_token(user),
        user=public_user(user),
    )


@router.get("/me")
def get_me(user: dict = Depends(get_current_user)):
    """Return current authenticated user profile."""
    return {"user": public_user(user)}


@router.post("/logout")
def logout(user: dict = Depends(get_current_user)):
    # Tokens are stateless; the client discards its copy
    return message_response("Logged out successfully")
