import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ["AUTH_MODE"] = "jwt"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["EMAILJS_SERVICE_ID"] = ""

import mongomock
import pytest
from fastapi.testclient import TestClient

from academic_portal.core import database
from academic_portal.core.security import create_access_token, get_password_hash
from academic_portal.main import app
from academic_portal.utils.mongo import utcnow

PASSWORD = "password123"


@pytest.fixture(scope="session")
def password_hash():
    return get_password_hash(PASSWORD)


@pytest.fixture
def db():
    mock_db = mongomock.MongoClient()["academic_portal_test"]
    database._db = mock_db
    database.ensure_indexes(mock_db)
    yield mock_db
    database._db = None


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def make_user(db, password_hash):
    counter = {"n": 0}

    def _make(role="student", **fields):
        counter["n"] += 1
        n = counter["n"]
        now = utcnow()
        doc = {
            "firstName": f"{role.title()}{n}",
            "lastName": "Tester",
            "email": f"{role}{n}@example.com",
            "role": role,
            "department": "Computer Science",
            "passwordHash": password_hash,
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
        }
        if role == "student":
            doc["studentId"] = f"STU{now.year}{n:04d}"
        doc.update(fields)
        doc["_id"] = db.users.insert_one(doc).inserted_id
        return doc

    return _make


@pytest.fixture
def make_course(db):
    counter = {"n": 0}

    def _make(instructor, **fields):
        counter["n"] += 1
        now = utcnow()
        doc = {
            "courseCode": f"CS{100 + counter['n']}",
            "courseName": f"Course {counter['n']}",
            "credits": 3,
            "department": "Computer Science",
            "semester": "1st",
            "year": "1st",
            "instructor": instructor["_id"],
            "students": [],
            "maxStudents": 50,
            "rosterVersion": 0,
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
        }
        doc.update(fields)
        doc["_id"] = db.courses.insert_one(doc).inserted_id
        return doc

    return _make


def auth_headers(user: dict, **kwargs) -> dict:
    token = create_access_token(str(user["_id"]), user["role"], **kwargs)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def faculty(make_user):
    return make_user("faculty")


@pytest.fixture
def student(make_user):
    return make_user("student", year="2nd", semester="3rd")


@pytest.fixture
def auth():
    return auth_headers
