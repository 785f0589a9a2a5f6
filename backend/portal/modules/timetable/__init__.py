# Student timetable: agenda view model and live sync

from portal.modules.timetable.view_model import (
    EMPTY_AGENDA_MESSAGE,
    group_by_day,
    format_time,
    format_time_range,
    build_agenda,
)
from portal.modules.timetable.live_sync import LiveSyncController

__all__ = [
    "EMPTY_AGENDA_MESSAGE",
    "group_by_day",
    "format_time",
    "format_time_range",
    "build_agenda",
    "LiveSyncController",
]
