"""
Weekly agenda view model.

Turns a flat list of timetable entries into the day-grouped, time-ordered,
display-formatted agenda a student sees. Everything here is pure.
"""
from typing import Dict, Iterable, List

from portal.schemas.timetable import (
    WEEKDAYS,
    TimetableEntry,
    AgendaItem,
    DayAgenda,
    WeeklyAgenda,
)
from portal.utils.clock import parse_clock_time

EMPTY_AGENDA_MESSAGE = "No classes scheduled for your level yet."

DEFAULT_LECTURER_NAME = "Lecturer"


def group_by_day(entries: Iterable[TimetableEntry]) -> Dict[str, List[TimetableEntry]]:
    """
    Group entries by weekday, Monday to Friday.

    Each day's entries are ordered by start_time as plain strings, which is
    chronological for zero-padded HH:MM. The sort is stable, so entries that
    start at the same time keep their fetch order. Days without entries are
    left out, as are entries whose day is not a weekday.
    """
    entries = list(entries)
    grouped: Dict[str, List[TimetableEntry]] = {}

    for day in WEEKDAYS:
        day_entries = sorted(
            (entry for entry in entries if entry.day_of_week == day),
            key=lambda entry: entry.start_time,
        )
        if day_entries:
            grouped[day] = day_entries

    return grouped


def format_time(value: str) -> str:
    """
    Format 24-hour HH:MM as 12-hour h:MM AM/PM.

    "00:00" -> "12:00 AM", "12:00" -> "12:00 PM", "13:30" -> "1:30 PM"

    Raises:
        MalformedTimeValueError: value is not a zero-padded HH:MM string
    """
    hour, minutes = parse_clock_time(value)
    suffix = "PM" if hour >= 12 else "AM"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{minutes} {suffix}"


def format_time_range(start_time: str, end_time: str) -> str:
    return f"{format_time(start_time)} - {format_time(end_time)}"


def agenda_item(entry: TimetableEntry) -> AgendaItem:
    course = entry.course
    lecturer = course.lecturer if course else None

    lecturer_name = None
    if lecturer is not None:
        lecturer_name = lecturer.full_name or DEFAULT_LECTURER_NAME

    return AgendaItem(
        entry_id=entry.id,
        start_time=entry.start_time,
        end_time=entry.end_time,
        time_range=format_time_range(entry.start_time, entry.end_time),
        room=entry.room,
        course_code=course.course_code if course else None,
        course_title=course.course_title if course else None,
        lecturer_name=lecturer_name,
    )


def build_agenda(entries: Iterable[TimetableEntry]) -> WeeklyAgenda:
    """Build the display-ready weekly agenda"""
    return WeeklyAgenda(
        days=[
            DayAgenda(day=day, items=[agenda_item(entry) for entry in day_entries])
            for day, day_entries in group_by_day(entries).items()
        ]
    )
