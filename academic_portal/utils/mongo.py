"""
Helpers for moving documents between MongoDB and JSON.
"""

import re
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId

from academic_portal.core.errors import bad_request

# Never leaves the API
PRIVATE_USER_FIELDS = ("passwordHash", "firebaseUid")


def to_object_id(value: str, field: str = "id") -> ObjectId:
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise bad_request(f"Invalid {field}", "INVALID_ID", field=field)


def serialize(value: Any) -> Any:
    """Recursively convert ObjectIds to strings and `_id` to `id`."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, list):
        return [serialize(v) for v in value]
    if isinstance(value, dict):
        out = {}
        for key, item in value.items():
            out["id" if key == "_id" else key] = serialize(item)
        return out
    return value


def public_user(doc: dict | None) -> dict | None:
    if doc is None:
        return None
    return serialize({k: v for k, v in doc.items() if k not in PRIVATE_USER_FIELDS})


def populate(db, docs: list[dict], field: str, collection: str, fields: tuple[str, ...]) -> list[dict]:
    """
    Replace the ObjectId reference in `field` with a small sub-document
    fetched from `collection`. References that no longer resolve are left as-is.
    """
    ids = set()
    for doc in docs:
        ref = doc.get(field)
        if isinstance(ref, list):
            ids.update(r for r in ref if isinstance(r, ObjectId))
        elif isinstance(ref, ObjectId):
            ids.add(ref)
    if not ids:
        return docs

    projection = {f: 1 for f in fields}
    found = {d["_id"]: d for d in db[collection].find({"_id": {"$in": list(ids)}}, projection)}

    for doc in docs:
        ref = doc.get(field)
        if isinstance(ref, list):
            doc[field] = [found.get(r, r) for r in ref]
        elif isinstance(ref, ObjectId):
            doc[field] = found.get(ref, ref)
    return docs


def search_filter(search: str | None, fields: tuple[str, ...]) -> dict:
    """Case-insensitive substring match over `fields`; literal, not a regex."""
    if not search:
        return {}
    pattern = re.escape(search)
    return {"$or": [{f: {"$regex": pattern, "$options": "i"}} for f in fields]}


def utcnow() -> datetime:
    """Naive UTC, the form pymongo hands back when reading."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
