import logging

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from academic_portal.core.config import settings

logger = logging.getLogger(__name__)

_mongo_client: MongoClient | None = None
_db: Database | None = None


def get_db() -> Database:
    global _mongo_client, _db
    if _db is None:
        _mongo_client = MongoClient(settings.MONGODB_URL, tz_aware=False)
        _db = _mongo_client[settings.MONGODB_DB]
    return _db


def ensure_indexes(db: Database) -> None:
    """Create the indexes the handlers rely on for uniqueness and lookups."""
    db.users.create_index([("email", ASCENDING)], unique=True)
    db.users.create_index([("role", ASCENDING)])

    db.courses.create_index([("courseCode", ASCENDING)], unique=True)
    db.courses.create_index([("instructor", ASCENDING)])
    db.courses.create_index([("department", ASCENDING)])
    db.courses.create_index([("semester", ASCENDING), ("year", ASCENDING)])

    db.attendance.create_index(
        [("student", ASCENDING), ("course", ASCENDING), ("date", ASCENDING)]
    )
    db.attendance.create_index([("course", ASCENDING), ("date", ASCENDING)])

    # Backs the grade upsert: one record per (student, course, assignment title)
    db.grades.create_index(
        [("student", ASCENDING), ("course", ASCENDING), ("assignment.title", ASCENDING)],
        unique=True,
    )
    db.grades.create_index([("course", ASCENDING)])
    db.grades.create_index([("semester", ASCENDING), ("academicYear", ASCENDING)])
    logger.info("MongoDB indexes ensured on %s", db.name)


def close_db() -> None:
    global _mongo_client, _db
    if _mongo_client is not None:
        _mongo_client.close()
    _mongo_client = None
    _db = None
