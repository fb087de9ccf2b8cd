"""
Security module — Bearer token verification + Role guard + isActive enforcement.

Auth Flow:
1. Client sends `Authorization: Bearer <token>`
2. Token is verified according to AUTH_MODE:
   - jwt:      HS256 token issued by /api/auth/login (claim `sub` = user id)
   - firebase: Firebase ID token verified with the Admin SDK
   - mock:     `mock-<email>` tokens for local demos
3. The user document is loaded from MongoDB and must be active
4. The user document (without credentials) is injected as the actor

Failures map to 401 with NO_TOKEN / INVALID_TOKEN / TOKEN_EXPIRED /
ACCOUNT_DEACTIVATED.
"""

import logging
import os
from datetime import datetime, timedelta, timezone

import bcrypt
from bson import ObjectId
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from academic_portal.core.config import settings
from academic_portal.core.database import get_db
from academic_portal.core.errors import forbidden, unauthorized
from academic_portal.utils.mongo import PRIVATE_USER_FIELDS

logger = logging.getLogger(__name__)

security_scheme = HTTPBearer(auto_error=False)

ROLES = ("student", "faculty", "admin")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


# ---------------------------------------------------------------------------
# Token issuance
# ---------------------------------------------------------------------------
def create_access_token(user_id: str, role: str, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    )
    payload = {"sub": user_id, "role": role, "exp": expire}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def issue_token(user: dict) -> str | None:
    """Token handed back by login/register. Firebase clients sign in with the SDK."""
    if settings.AUTH_MODE == "mock":
        return f"mock-{user['email']}"
    if settings.AUTH_MODE == "jwt":
        return create_access_token(str(user["_id"]), user["role"])
    return None


# ---------------------------------------------------------------------------
# Firebase initialization (lazy)
# ---------------------------------------------------------------------------
_firebase_app = None


def _init_firebase():
    global _firebase_app
    if _firebase_app is not None:
        return
    import firebase_admin
    from firebase_admin import credentials as fb_credentials

    cred_path = settings.FIREBASE_CREDENTIALS_PATH
    if os.path.exists(cred_path):
        cred = fb_credentials.Certificate(cred_path)
        _firebase_app = firebase_admin.initialize_app(cred)
    else:
        # Try default credentials
        _firebase_app = firebase_admin.initialize_app()


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------
def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
) -> dict:
    """Validate the Bearer token and return the active user document."""
    if credentials is None or not credentials.credentials:
        raise unauthorized("Access token required", "NO_TOKEN")

    token = credentials.credentials

    if settings.AUTH_MODE == "mock":
        return _mock_auth(token)
    if settings.AUTH_MODE == "firebase":
        return _firebase_auth(token)
    return _jwt_auth(token)


def _load_active_user(query: dict) -> dict:
    user = get_db().users.find_one(query)
    if not user:
        logger.warning("Token resolved to no user (%s)", list(query))
        raise unauthorized("Invalid token - user not found", "INVALID_TOKEN")
    if not user.get("isActive", True):
        raise unauthorized("Account is deactivated", "ACCOUNT_DEACTIVATED")
    return {k: v for k, v in user.items() if k not in PRIVATE_USER_FIELDS}


def _jwt_auth(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise unauthorized("Token expired", "TOKEN_EXPIRED")
    except JWTError:
        logger.warning("Rejected malformed bearer token")
        raise unauthorized("Invalid token", "INVALID_TOKEN")

    user_id = payload.get("sub")
    if not user_id or not ObjectId.is_valid(user_id):
        raise unauthorized("Invalid token", "INVALID_TOKEN")
    return _load_active_user({"_id": ObjectId(user_id)})


def _mock_auth(token: str) -> dict:
    """Mock mode: `mock-<email>` resolves to that user."""
    if not token.startswith("mock-"):
        raise unauthorized("Invalid token", "INVALID_TOKEN")
    return _load_active_user({"email": token[5:].lower()})


def verify_firebase_token(token: str) -> dict:
    """Decoded Firebase ID token; failures map to TOKEN_EXPIRED / INVALID_TOKEN."""
    _init_firebase()
    from firebase_admin import auth as fb_auth

    try:
        return fb_auth.verify_id_token(token)
    except fb_auth.ExpiredIdTokenError:
        raise unauthorized("Token expired", "TOKEN_EXPIRED")
    except (fb_auth.InvalidIdTokenError, ValueError):
        logger.warning("Rejected Firebase ID token")
        raise unauthorized("Invalid token", "INVALID_TOKEN")


def firebase_uid(credentials: HTTPAuthorizationCredentials | None) -> str:
    """Firebase uid of the caller, used to link a newly registered account."""
    if credentials is None or not credentials.credentials:
        raise unauthorized("Access token required", "NO_TOKEN")
    return verify_firebase_token(credentials.credentials)["uid"]


def _firebase_auth(token: str) -> dict:
    """Firebase mode: verify ID token, then fetch the linked profile."""
    decoded = verify_firebase_token(token)
    return _load_active_user({"firebaseUid": decoded["uid"]})


# ---------------------------------------------------------------------------
# Role guard dependency
# ---------------------------------------------------------------------------
def require_role(allowed_roles: list[str]):
    """
    Usage:
        @router.get("/admin-only")
        def endpoint(user=Depends(require_role(["admin"]))):
    """

    def role_checker(
        user: dict = Depends(get_current_user),
    ) -> dict:
        if user["role"] not in allowed_roles:
            raise forbidden(
                "Insufficient permissions",
                "INSUFFICIENT_PERMISSIONS",
                required=allowed_roles,
                current=user["role"],
            )
        return user

    return role_checker


require_admin = require_role(["admin"])
require_faculty_or_admin = require_role(["faculty", "admin"])
require_any_role = require_role(list(ROLES))
