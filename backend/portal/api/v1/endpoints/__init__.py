# API endpoints
from . import auth, timetable, announcements, changes, health

__all__ = ["auth", "timetable", "announcements", "changes", "health"]
