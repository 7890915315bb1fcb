"""
Provisioning commands for the attendance document.

    python -m provision upload database.json
    python -m provision create-user student 102 "Priya Sharma" 12345 --timetable CSE-A
    python -m provision set-password teacher 201 newpass
    python -m provision update-timetables database.json
    python -m provision migrate

Provisioning assumes a single writer. Each command ``$set``s only the
top-level fields it owns so live session state is left alone.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pymongo.collection import Collection

import config
import database
from credentials import BcryptHasher
from errors import AttendanceError, NotFoundError, ValidationError
from schemas import ClassSession, ROLES, user_key

logger = logging.getLogger("provision")

EMPTY_SESSION = {"isAttendanceActive": False, "presentCount": 0, "presentList": []}


def _load_json(path: str) -> Dict[str, Any]:
    with Path(path).open(encoding="utf-8") as f:
        return json.load(f)


def _require_document(collection: Collection, *fields: str) -> Dict[str, Any]:
    projection = {f: 1 for f in fields} if fields else None
    doc = collection.find_one({"_id": config.DATA_DOCUMENT_ID}, projection)
    if doc is None:
        raise NotFoundError("Database document not found. Run the upload command first.")
    return doc


def upload(collection: Collection, path: str) -> str:
    data = _load_json(path)
    data.pop("_id", None)
    result = collection.update_one({"_id": config.DATA_DOCUMENT_ID}, {"$set": data}, upsert=True)
    if result.upserted_id is not None:
        return "Created and uploaded new database document."
    if result.modified_count:
        return "Updated existing database document."
    return "Database document was already up-to-date."


def create_user(
    collection: Collection,
    hasher: BcryptHasher,
    role: str,
    user_id: str,
    name: str,
    password: str,
    timetable: Optional[str] = None,
) -> Dict[str, Any]:
    if role not in ROLES:
        raise ValidationError('userType must be "student" or "teacher".')
    key = user_key(role, user_id)
    doc = _require_document(collection, f"users.{key}")
    if key in (doc.get("users") or {}):
        raise ValidationError(f"User {key} already exists.")

    user = {"type": role, "id": user_id, "name": name, "passwordHash": hasher.hash(password)}
    if timetable:
        user["timetableId"] = timetable
    collection.update_one({"_id": config.DATA_DOCUMENT_ID}, {"$set": {f"users.{key}": user}})
    return {k: v for k, v in user.items() if k != "passwordHash"}


def set_password(collection: Collection, hasher: BcryptHasher, role: str, user_id: str, password: str) -> None:
    key = user_key(role, user_id)
    result = collection.update_one(
        {"_id": config.DATA_DOCUMENT_ID, f"users.{key}": {"$exists": True}},
        {"$set": {f"users.{key}.passwordHash": hasher.hash(password)}},
    )
    if result.matched_count == 0:
        raise NotFoundError(f"User {key} not found.")


def update_timetables(collection: Collection, path: str) -> str:
    timetables = _load_json(path).get("master_timetables")
    if not timetables:
        raise ValidationError('"master_timetables" section not found in the input file.')
    _require_document(collection, "_id")
    result = collection.update_one({"_id": config.DATA_DOCUMENT_ID}, {"$set": {"master_timetables": timetables}})
    if result.modified_count:
        return "Live timetables have been updated."
    return "Live timetables are already up-to-date. No changes made."


def _timetable_codes(timetables: Dict[str, Any]) -> List[str]:
    codes = []
    for weekly in timetables.values():
        for slots in (weekly or {}).values():
            for slot in slots or []:
                code = slot.get("code")
                if code and code not in codes:
                    codes.append(code)
    return codes


def migrate(collection: Collection) -> List[str]:
    """Bring every session up to the current shape; returns the codes touched."""
    doc = _require_document(collection, "class_locations", "master_timetables")
    sessions = doc.get("class_locations") or {}
    changed = []

    for code, raw in sessions.items():
        normalized = ClassSession.model_validate(raw or {}).model_dump(exclude_none=True)
        normalized["presentCount"] = len(normalized["presentList"])
        if normalized != raw:
            sessions[code] = normalized
            changed.append(code)

    for code in _timetable_codes(doc.get("master_timetables") or {}):
        if code not in sessions:
            sessions[code] = dict(EMPTY_SESSION)
            changed.append(code)

    if changed:
        collection.update_one({"_id": config.DATA_DOCUMENT_ID}, {"$set": {"class_locations": sessions}})
    return changed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="provision", description="Manage the attendance database document.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("upload", help="upsert the whole document from a JSON file")
    p.add_argument("path")

    p = sub.add_parser("create-user", help="add a student or teacher")
    p.add_argument("role", choices=sorted(ROLES))
    p.add_argument("user_id")
    p.add_argument("name")
    p.add_argument("password")
    p.add_argument("--timetable", help="master timetable name")

    p = sub.add_parser("set-password", help="replace a user's password")
    p.add_argument("role", choices=sorted(ROLES))
    p.add_argument("user_id")
    p.add_argument("password")

    p = sub.add_parser("update-timetables", help="replace only master_timetables from a JSON file")
    p.add_argument("path")

    sub.add_parser("migrate", help="normalize session state and add missing sessions")
    return parser


def run(args: argparse.Namespace, collection: Collection, hasher: BcryptHasher) -> str:
    if args.command == "upload":
        return upload(collection, args.path)
    if args.command == "create-user":
        user = create_user(collection, hasher, args.role, args.user_id, args.name, args.password, args.timetable)
        return f"User created: {user}"
    if args.command == "set-password":
        set_password(collection, hasher, args.role, args.user_id, args.password)
        return f"Password updated for {user_key(args.role, args.user_id)}."
    if args.command == "update-timetables":
        return update_timetables(collection, args.path)
    changed = migrate(collection)
    if changed:
        return f"Migrated {len(changed)} classes: {', '.join(changed)}"
    return "Database is already up-to-date. No migration needed."


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)
    try:
        collection = database.data_collection()
        print(run(args, collection, BcryptHasher(config.BCRYPT_ROUNDS)))
    except AttendanceError as e:
        logger.error("%s", e.message)
        return 1
    finally:
        database.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
