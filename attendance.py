"""
Attendance engine: login, session start, location verification, marking and
roster retrieval on top of a ``SessionStore``.

Per class code the state is either unopened (no anchor) or open. Starting a
session always resets it to a fresh open state; there is no close transition.
Students see a class as live only while it is open and inside its time
window; teachers see it live by time alone so they can re-open it.

Sessions of different classes are independent: starting one class leaves
every other class's ``isAttendanceActive`` flag as it was.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from math import isnan
from typing import Any, Callable, Dict, List, Optional, Tuple

from credentials import BcryptHasher
from errors import (
    AuthError,
    CredentialError,
    ForbiddenError,
    LocationMismatchError,
    NotFoundError,
    SessionNotOpenError,
    ValidationError,
)
from geofence import within_radius
from proofs import LocationProofs
from schemas import ROLES, Coordinate, RosterEntry, User
from session_store import SessionStore
from timetable import local_now, resolve_today, time_of_day

logger = logging.getLogger(__name__)


class MarkOutcome(str, enum.Enum):
    MARKED = "Attendance Marked!"
    ALREADY_MARKED = "Attendance Already Marked."


@dataclass(frozen=True)
class Verification:
    distance_meters: float
    proof: str


class AttendanceEngine:
    def __init__(
        self,
        store: SessionStore,
        credentials: BcryptHasher,
        radius_meters: float,
        tz: str = "Asia/Kolkata",
        clock: Optional[Callable[[], datetime]] = None,
        proofs: Optional[LocationProofs] = None,
        require_proof: bool = False,
    ):
        if require_proof and proofs is None:
            raise ValueError("require_proof needs a LocationProofs issuer")
        self.store = store
        self.credentials = credentials
        self.radius_meters = radius_meters
        self.clock = clock or partial(local_now, tz)
        self.proofs = proofs
        self.require_proof = require_proof

    # ----------------------
    # Users
    # ----------------------

    def _find_user(self, role: Optional[str], user_id: Optional[str]) -> Optional[User]:
        if role not in ROLES or not user_id:
            return None
        try:
            return self.store.get_user(role, str(user_id))
        except ValidationError:
            # ids that cannot be a document key match no user
            return None

    def _today(self, user: User) -> List[Dict[str, Any]]:
        weekly = self.store.get_timetable(user.timetableId)
        sessions = self.store.all_sessions()
        return list(resolve_today(user.type, user.id, weekly, sessions, self.clock()))

    def login(
        self,
        role: Optional[str],
        user_id: Optional[str],
        password: Optional[str],
    ) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
        if not password:
            raise ValidationError("Password is required.")

        user = self._find_user(role, user_id)
        if user is None:
            logger.info("Login failed for %s-%s: unknown user", role, user_id)
            raise AuthError()
        if not user.passwordHash:
            raise CredentialError("User has no password set.")
        if not self.credentials.verify(password, user.passwordHash):
            logger.info("Login failed for %s-%s: bad password", role, user_id)
            raise AuthError()

        return user.public(), self._today(user)

    def refresh(
        self,
        role: Optional[str],
        user_id: Optional[str],
    ) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
        user = self._find_user(role, user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return user.public(), self._today(user)

    # ----------------------
    # Sessions
    # ----------------------

    def start_session(
        self,
        class_code: Optional[str],
        anchor: Optional[Coordinate],
        teacher_id: Optional[str] = None,
    ) -> str:
        if not class_code or anchor is None:
            raise ValidationError("Missing class code or location.")
        if teacher_id is not None and self._find_user("teacher", teacher_id) is None:
            raise ForbiddenError("Only a teacher can start a session.")

        self.store.open_session(class_code, anchor)
        return f"Session for {class_code} started."

    def verify_location(
        self,
        class_code: Optional[str],
        coords: Optional[Coordinate],
        student_id: Optional[str] = None,
    ) -> Verification:
        if not class_code or coords is None:
            raise ValidationError("Missing class code or location.")

        session = self.store.get_session(class_code)
        if session is None or session.location is None:
            raise SessionNotOpenError()

        inside, distance = within_radius(session.location, coords, self.radius_meters)
        if isnan(distance):
            raise ValidationError("Location could not be compared.")
        if not inside:
            logger.info("Location mismatch for %s in %s: %.0fm", student_id or "?", class_code, distance)
            raise LocationMismatchError(distance)

        proof = self.proofs.issue(class_code, student_id) if self.proofs else ""
        return Verification(distance_meters=distance, proof=proof)

    def mark_attendance(
        self,
        class_code: Optional[str],
        student_id: Optional[str],
        proof: Optional[str] = None,
    ) -> MarkOutcome:
        if not class_code or not student_id:
            raise ValidationError("Missing class code or user ID.")
        if self.require_proof:
            self.proofs.check(proof, class_code, student_id)

        marked_at = time_of_day(self.clock())
        result = self.store.mark_present(class_code, student_id, marked_at)
        if result.already_marked:
            logger.info("Attendance was already marked for %s in %s", student_id, class_code)
            return MarkOutcome.ALREADY_MARKED

        logger.info("Attendance marked for %s in %s at %s", student_id, class_code, marked_at)
        return MarkOutcome.MARKED

    def roster(self, class_code: Optional[str]) -> List[RosterEntry]:
        if not class_code:
            raise ValidationError("Missing class code.")
        return self.store.list_present(class_code)
