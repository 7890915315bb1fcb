from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from schemas import ClassSession, ClassSlot
from timetable import (
    is_time_correct,
    local_now,
    resolve_student_day,
    resolve_teacher_day,
    resolve_today,
    slots_for_day,
    time_of_day,
    weekday_name,
)

SLOT = ClassSlot(code="CS101", name="Data Structures", startTime="09:00", endTime="10:00")

WEEKLY = {
    "Monday": [SLOT.model_dump()],
}


@pytest.mark.parametrize(
    "now, expected",
    [("08:59", False), ("09:00", True), ("09:59", True), ("10:00", False)],
)
def test_time_window_is_half_open(now, expected):
    assert is_time_correct(SLOT, now) is expected


def test_single_digit_hours_are_padded():
    slot = ClassSlot(code="X", startTime="9:05", endTime="9:50")
    assert slot.startTime == "09:05"
    assert is_time_correct(slot, "09:10")


def test_bad_time_is_rejected():
    with pytest.raises(ValidationError):
        ClassSlot(code="X", startTime="nine", endTime="10:00")


def test_student_not_live_until_teacher_opens():
    sessions = {"CS101": ClassSession(isAttendanceActive=False)}
    [slot] = resolve_student_day([SLOT], sessions, "101", "09:30")
    assert slot["live"] is False
    assert slot["isMarked"] is False


def test_teacher_live_by_time_alone():
    sessions = {"CS101": ClassSession(isAttendanceActive=False)}
    [slot] = resolve_teacher_day([SLOT], sessions, "09:30")
    assert slot["live"] is True
    assert slot["presentCount"] == 0


def test_student_live_when_open_and_in_window():
    sessions = {"CS101": ClassSession(isAttendanceActive=True, presentCount=1, presentList=[{"userId": "101", "time": "09:05"}])}
    [slot] = resolve_student_day([SLOT], sessions, "101", "09:30")
    assert slot["live"] is True
    assert slot["isMarked"] is True
    assert slot["name"] == "Data Structures"


def test_student_not_live_outside_window_even_if_open():
    sessions = {"CS101": ClassSession(isAttendanceActive=True)}
    [slot] = resolve_student_day([SLOT], sessions, "101", "10:15")
    assert slot["live"] is False


def test_never_opened_class_has_zero_count():
    [slot] = resolve_teacher_day([SLOT], {}, "11:00")
    assert slot["presentCount"] == 0
    assert slot["live"] is False


def test_missing_day_or_timetable_is_empty():
    assert slots_for_day(WEEKLY, "Sunday") == []
    assert slots_for_day(None, "Monday") == []


def test_resolve_today_recomputes_per_call():
    now = datetime(2025, 10, 6, 9, 30, tzinfo=ZoneInfo("Asia/Kolkata"))
    sessions = {"CS101": ClassSession(isAttendanceActive=True)}
    first = list(resolve_today("student", "101", WEEKLY, sessions, now))
    sessions["CS101"] = ClassSession(isAttendanceActive=False)
    second = list(resolve_today("student", "101", WEEKLY, sessions, now))
    assert first[0]["live"] is True
    assert second[0]["live"] is False


def test_clock_helpers():
    now = datetime(2025, 10, 7, 14, 5, tzinfo=ZoneInfo("Asia/Kolkata"))
    assert weekday_name(now) == "Tuesday"
    assert time_of_day(now) == "14:05"
    assert local_now("Asia/Kolkata").utcoffset().total_seconds() == 5.5 * 3600
