from datetime import datetime
from zoneinfo import ZoneInfo

import mongomock
import pytest

from attendance import AttendanceEngine
from credentials import BcryptHasher
from proofs import LocationProofs
from session_store import SessionStore

IST = ZoneInfo("Asia/Kolkata")

# Monday, inside the CS101 slot
MONDAY_0930 = datetime(2025, 10, 6, 9, 30, tzinfo=IST)

ANCHOR = {"lat": 28.7041, "lon": 77.1025}


@pytest.fixture(scope="session")
def hasher():
    return BcryptHasher(rounds=4)


@pytest.fixture(scope="session")
def password_hash(hasher):
    return hasher.hash("12345")


@pytest.fixture
def document(password_hash):
    return {
        "_id": "main",
        "users": {
            "student-101": {"type": "student", "id": "101", "name": "Priya Sharma", "passwordHash": password_hash, "timetableId": "CSE-A"},
            "student-102": {"type": "student", "id": "102", "name": "Rahul Verma", "passwordHash": password_hash, "timetableId": "CSE-A"},
            "student-103": {"type": "student", "id": "103", "name": "No Password", "timetableId": "CSE-A"},
            "teacher-201": {"type": "teacher", "id": "201", "name": "Dr. Mehta", "passwordHash": password_hash, "timetableId": "CSE-A"},
        },
        "master_timetables": {
            "CSE-A": {
                "Monday": [
                    {"code": "CS101", "name": "Data Structures", "room": "LH-1", "startTime": "09:00", "endTime": "10:00"},
                    {"code": "MA102", "name": "Linear Algebra", "room": "LH-2", "startTime": "10:00", "endTime": "11:00"},
                ],
                "Tuesday": [],
            }
        },
        "class_locations": {
            "CS101": {"isAttendanceActive": False, "presentCount": 0, "presentList": []},
            "MA102": {"isAttendanceActive": False, "presentCount": 0, "presentList": []},
        },
    }


@pytest.fixture
def collection(document):
    coll = mongomock.MongoClient().db.data
    coll.insert_one(document)
    return coll


@pytest.fixture
def store(collection):
    return SessionStore(collection, "main")


@pytest.fixture
def clock():
    return lambda: MONDAY_0930


@pytest.fixture
def proofs():
    return LocationProofs("test-secret", ttl_seconds=60)


@pytest.fixture
def engine(store, hasher, clock, proofs):
    return AttendanceEngine(store, hasher, radius_meters=50, clock=clock, proofs=proofs)


@pytest.fixture
def session_state(collection):
    def read(code):
        return collection.find_one({"_id": "main"})["class_locations"].get(code)
    return read
