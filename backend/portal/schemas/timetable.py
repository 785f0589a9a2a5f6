from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from typing import Optional, List
from datetime import datetime

from portal.core.exceptions import MalformedTimeValueError
from portal.schemas.announcement import Announcement
from portal.schemas.course import Course
from portal.utils.clock import normalize_clock_time

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")

DAY_PATTERN = "^(" + "|".join(WEEKDAYS) + ")$"


def _validate_clock(value: Optional[str], field: str) -> Optional[str]:
    if value is None:
        return value
    try:
        return normalize_clock_time(value, field)
    except MalformedTimeValueError as e:
        raise ValueError(e.message)


class TimetableEntry(BaseModel):
    """
    A scheduled class as read from the directory store.

    Times are kept as the raw strings the store returned; they are checked
    when formatted for display.
    """
    id: str
    course_id: Optional[str] = None
    day_of_week: str
    start_time: str
    end_time: str
    room: str = ""
    level: Optional[str] = None
    created_at: Optional[datetime] = None
    course: Optional[Course] = None

    model_config = ConfigDict(extra="ignore")


class TimetableEntryCreate(BaseModel):
    course_id: str
    day_of_week: str = Field(..., pattern=DAY_PATTERN)
    start_time: str
    end_time: str
    room: str = Field(..., min_length=1, max_length=100)
    level: Optional[str] = None  # Copied from the course when omitted

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_clock(cls, v, info):
        return _validate_clock(v, info.field_name)

    @model_validator(mode='after')
    def validate_order(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class TimetableEntryUpdate(BaseModel):
    course_id: Optional[str] = None
    day_of_week: Optional[str] = Field(None, pattern=DAY_PATTERN)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    room: Optional[str] = Field(None, min_length=1, max_length=100)
    level: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_clock(cls, v, info):
        return _validate_clock(v, info.field_name)

    @model_validator(mode='after')
    def validate_order(self):
        # Only checkable when both ends are part of the same patch
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


# ============================================
# Weekly agenda (display-ready view model)
# ============================================

class AgendaItem(BaseModel):
    entry_id: str
    start_time: str
    end_time: str
    time_range: str
    room: str
    course_code: Optional[str] = None
    course_title: Optional[str] = None
    lecturer_name: Optional[str] = None


class DayAgenda(BaseModel):
    day: str
    items: List[AgendaItem]


class WeeklyAgenda(BaseModel):
    days: List[DayAgenda] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.days

    def day(self, name: str) -> Optional[DayAgenda]:
        for day_agenda in self.days:
            if day_agenda.day == name:
                return day_agenda
        return None


class TimetableSnapshot(BaseModel):
    """
    Everything a student view renders, rebuilt wholesale on every fetch.

    `error` is set when the fetch failed; the agenda is then empty.
    """
    sequence: int = 0
    level: Optional[str] = None
    entries: List[TimetableEntry] = Field(default_factory=list)
    agenda: WeeklyAgenda = Field(default_factory=WeeklyAgenda)
    announcements: List[Announcement] = Field(default_factory=list)
    fetched_at: Optional[datetime] = None
    error: Optional[str] = None
    empty_message: Optional[str] = None
