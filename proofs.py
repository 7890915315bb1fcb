"""
Short-lived location proofs.

VerifyLocation and MarkAttendance are separate calls. A proof is an HS256
token issued after a successful geofence check and bound to the class code
(and the student, when known) so MarkAttendance can demand evidence that the
check actually happened.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from errors import ForbiddenError


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LocationProofs:
    def __init__(
        self,
        secret: str,
        ttl_seconds: int = 120,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.secret = secret
        self.ttl_seconds = ttl_seconds
        self.algorithm = algorithm
        self.clock = clock

    def issue(self, class_code: str, student_id: Optional[str] = None) -> str:
        now = self.clock()
        payload: Dict[str, Any] = {
            "cls": class_code,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.ttl_seconds)).timestamp()),
        }
        if student_id:
            payload["sub"] = student_id
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def check(self, token: Optional[str], class_code: str, student_id: str) -> None:
        if not token:
            raise ForbiddenError("Location must be verified before marking attendance.")
        try:
            data = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise ForbiddenError("Location verification expired. Verify again.") from e
        except JWTError as e:
            raise ForbiddenError("Invalid location proof.") from e

        if data.get("cls") != class_code:
            raise ForbiddenError("Location proof is for a different class.")
        if "sub" in data and data["sub"] != student_id:
            raise ForbiddenError("Location proof is for a different student.")
