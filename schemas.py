"""
Document Schemas for the Classroom Attendance Backend

Everything lives in one MongoDB document (``_id: "main"``). Each Pydantic
model below describes one of the shapes nested inside it:

- users.<role>-<id>            -> User
- master_timetables.<name>     -> weekday name -> [ClassSlot]
- class_locations.<code>       -> ClassSession
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["student", "teacher"]
ROLES = ("student", "teacher")

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def user_key(role: str, user_id: str) -> str:
    return f"{role}-{user_id}"


def normalize_hhmm(value: str) -> str:
    """Zero-pad ``"9:05"`` to ``"09:05"`` so string comparison orders times."""
    parts = str(value).strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"time must be HH:MM, got {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 24 and 0 <= minute < 60) or (hour == 24 and minute):
        raise ValueError(f"time out of range: {value!r}")
    return f"{hour:02d}:{minute:02d}"


class Coordinate(BaseModel):
    lat: float = Field(..., ge=-90, le=90, allow_inf_nan=False, description="Latitude in degrees")
    lon: float = Field(..., ge=-180, le=180, allow_inf_nan=False, description="Longitude in degrees")


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Role = Field(..., description="student|teacher")
    id: str = Field(..., description="User id, unique within its role")
    name: str = Field(..., description="Display name")
    passwordHash: Optional[str] = Field(None, description="bcrypt digest, never sent to clients")
    timetableId: Optional[str] = Field(None, description="Name of a master timetable")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_string(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    def public(self) -> dict:
        return self.model_dump(exclude={"passwordHash"})


class ClassSlot(BaseModel):
    # Descriptive fields (name, room, teacher, ...) are passed through as-is
    model_config = ConfigDict(extra="allow")

    code: str = Field(..., description="Key into class_locations")
    startTime: str = Field(..., description="HH:MM, inclusive")
    endTime: str = Field(..., description="HH:MM, exclusive")

    @field_validator("startTime", "endTime")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        return normalize_hhmm(v)


class PresentEntry(BaseModel):
    userId: str
    time: Optional[str] = Field(None, description="Local HH:MM when attendance was marked")


class ClassSession(BaseModel):
    model_config = ConfigDict(extra="allow")

    isAttendanceActive: bool = False
    location: Optional[Coordinate] = Field(None, description="Anchor set by the teacher")
    presentCount: int = Field(0, ge=0)
    presentList: List[PresentEntry] = Field(default_factory=list)

    @field_validator("presentList", mode="before")
    @classmethod
    def _legacy_ids(cls, v: Any) -> Any:
        # Older documents stored bare ids
        if isinstance(v, list):
            return [{"userId": str(item)} if isinstance(item, (str, int)) else item for item in v]
        return v

    def is_marked(self, student_id: str) -> bool:
        return any(entry.userId == student_id for entry in self.presentList)


class RosterEntry(BaseModel):
    name: str
    userId: str
    time: Optional[str] = None
