# Pydantic schemas
from portal.schemas.user import (
    UserRole,
    User,
    UserCreate,
    UserUpdate,
    UserLogin,
    Identity,
    Token,
)
from portal.schemas.course import (
    Course,
    CourseCreate,
    CourseUpdate,
)
from portal.schemas.announcement import (
    Announcement,
    AnnouncementCreate,
)
from portal.schemas.timetable import (
    WEEKDAYS,
    TimetableEntry,
    TimetableEntryCreate,
    TimetableEntryUpdate,
    AgendaItem,
    DayAgenda,
    WeeklyAgenda,
    TimetableSnapshot,
)
