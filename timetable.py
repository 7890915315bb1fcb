from datetime import datetime
from typing import Any, Dict, Iterator, List, Mapping, Optional
from zoneinfo import ZoneInfo

from schemas import ClassSession, ClassSlot, WEEKDAYS

# ----------------------
# Clock
# ----------------------

def local_now(tz: str) -> datetime:
    return datetime.now(ZoneInfo(tz))


def weekday_name(now: datetime) -> str:
    return WEEKDAYS[now.weekday()]


def time_of_day(now: datetime) -> str:
    return now.strftime("%H:%M")


# ----------------------
# Resolution
# ----------------------

def is_time_correct(slot: ClassSlot, now_hhmm: str) -> bool:
    return slot.startTime <= now_hhmm < slot.endTime


def slots_for_day(weekly: Optional[Mapping[str, Any]], weekday: str) -> List[ClassSlot]:
    if not weekly:
        return []
    return [ClassSlot.model_validate(raw) for raw in weekly.get(weekday) or []]


def resolve_teacher_day(
    slots: List[ClassSlot], sessions: Mapping[str, ClassSession], now_hhmm: str
) -> Iterator[Dict[str, Any]]:
    """Teachers see a slot as live purely by the clock, so they can re-open it."""
    for slot in slots:
        session = sessions.get(slot.code)
        yield {
            **slot.model_dump(),
            "live": is_time_correct(slot, now_hhmm),
            "presentCount": session.presentCount if session else 0,
        }


def resolve_student_day(
    slots: List[ClassSlot], sessions: Mapping[str, ClassSession], student_id: str, now_hhmm: str
) -> Iterator[Dict[str, Any]]:
    """Students see a slot as live only once the teacher has opened it."""
    for slot in slots:
        session = sessions.get(slot.code)
        active = bool(session and session.isAttendanceActive)
        yield {
            **slot.model_dump(),
            "live": is_time_correct(slot, now_hhmm) and active,
            "isMarked": bool(session and session.is_marked(student_id)),
        }


def resolve_today(
    role: str,
    user_id: str,
    weekly: Optional[Mapping[str, Any]],
    sessions: Mapping[str, ClassSession],
    now: datetime,
) -> Iterator[Dict[str, Any]]:
    slots = slots_for_day(weekly, weekday_name(now))
    hhmm = time_of_day(now)
    if role == "teacher":
        return resolve_teacher_day(slots, sessions, hhmm)
    return resolve_student_day(slots, sessions, user_id, hhmm)
