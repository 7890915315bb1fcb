"""
Typed access to the shared attendance document.

Session mutations are single targeted ``update_one`` calls against
``class_locations.<code>`` so concurrent requests touching different classes,
or different students of the same class, never overwrite each other.
"""

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Dict, List, Optional, Set

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from errors import NotFoundError, SessionNotOpenError, StoreError, ValidationError
from schemas import ClassSession, Coordinate, RosterEntry, User, user_key

logger = logging.getLogger(__name__)

UNKNOWN_STUDENT_NAME = "Unknown Student"


@dataclass(frozen=True)
class MarkResult:
    already_marked: bool


def check_key(value: str, what: str = "class code") -> str:
    # Keys become dotted field paths in update documents
    if not value or "." in value or value.startswith("$"):
        raise ValidationError(f"Invalid {what}: {value!r}")
    return value


def _store_call(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except PyMongoError as e:
            logger.exception("Store operation %s failed", fn.__name__)
            raise StoreError(f"Server error: {e}") from e
    return wrapper


class SessionStore:
    def __init__(self, collection: Collection, document_id: str = "main"):
        self.collection = collection
        self.document_id = document_id

    def _read(self, *fields: str) -> Dict[str, Any]:
        projection = {f: 1 for f in fields} if fields else None
        doc = self.collection.find_one({"_id": self.document_id}, projection)
        if doc is None:
            raise StoreError("Server error: data document not found")
        return doc

    # ----------------------
    # Reference data
    # ----------------------

    @_store_call
    def get_user(self, role: str, user_id: str) -> Optional[User]:
        key = check_key(user_key(role, user_id), "user id")
        raw = self._read(f"users.{key}").get("users", {}).get(key)
        return User.model_validate(raw) if raw else None

    @_store_call
    def get_timetable(self, name: Optional[str]) -> Optional[Dict[str, Any]]:
        if not name:
            return None
        check_key(name, "timetable name")
        return self._read(f"master_timetables.{name}").get("master_timetables", {}).get(name)

    @_store_call
    def known_class_codes(self) -> Set[str]:
        timetables = self._read("master_timetables").get("master_timetables") or {}
        codes = set()
        for weekly in timetables.values():
            for slots in (weekly or {}).values():
                codes.update(slot.get("code") for slot in slots or [] if slot.get("code"))
        return codes

    # ----------------------
    # Session state
    # ----------------------

    @_store_call
    def get_session(self, code: str) -> Optional[ClassSession]:
        check_key(code)
        raw = self._read(f"class_locations.{code}").get("class_locations", {}).get(code)
        return ClassSession.model_validate(raw) if raw is not None else None

    @_store_call
    def all_sessions(self) -> Dict[str, ClassSession]:
        raw = self._read("class_locations").get("class_locations") or {}
        return {code: ClassSession.model_validate(state) for code, state in raw.items()}

    @_store_call
    def open_session(self, code: str, anchor: Coordinate) -> None:
        check_key(code)
        if code not in self.known_class_codes():
            raise NotFoundError(f"Class {code} not found in any timetable.")

        prefix = f"class_locations.{code}"
        self.collection.update_one(
            {"_id": self.document_id},
            {
                "$set": {
                    f"{prefix}.isAttendanceActive": True,
                    f"{prefix}.location": anchor.model_dump(),
                    f"{prefix}.presentCount": 0,
                    f"{prefix}.presentList": [],
                }
            },
        )
        logger.info("Session opened for %s at (%s, %s)", code, anchor.lat, anchor.lon)

    @_store_call
    def mark_present(self, code: str, student_id: str, marked_at: str) -> MarkResult:
        """Insert-if-absent and increment as one document update."""
        check_key(code)
        prefix = f"class_locations.{code}"
        result = self.collection.update_one(
            {
                "_id": self.document_id,
                # only sessions a teacher has opened
                f"{prefix}.location": {"$exists": True},
                f"{prefix}.presentList.userId": {"$ne": student_id},
                # legacy entries stored the bare id
                f"{prefix}.presentList": {"$ne": student_id},
            },
            {
                "$push": {f"{prefix}.presentList": {"userId": student_id, "time": marked_at}},
                "$inc": {f"{prefix}.presentCount": 1},
            },
        )
        if result.matched_count:
            return MarkResult(already_marked=False)

        # Nothing matched: either the session was never opened or the student is on the list
        session = self.get_session(code)
        if session is None or session.location is None:
            raise SessionNotOpenError()
        return MarkResult(already_marked=True)

    @_store_call
    def list_present(self, code: str) -> List[RosterEntry]:
        check_key(code)
        doc = self._read(f"class_locations.{code}", "users")
        raw = doc.get("class_locations", {}).get(code)
        if raw is None:
            return []
        users = doc.get("users") or {}
        roster = []
        for entry in ClassSession.model_validate(raw).presentList:
            user = users.get(user_key("student", entry.userId))
            name = user.get("name") if user else None
            roster.append(RosterEntry(name=name or UNKNOWN_STUDENT_NAME, userId=entry.userId, time=entry.time))
        return roster
