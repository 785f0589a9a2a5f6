"""
Student-facing reads: a level's timetable rows and announcements.

A timetable row's own `level` column is the filter key. Admin writes copy
the course's level onto the row, so the two never have to be joined here.
"""
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from portal.core.config import settings
from portal.core.exceptions import FetchError
from portal.schemas.announcement import Announcement
from portal.schemas.timetable import TimetableEntry
from portal.services.directory_store import DirectoryStore, COURSE_EMBED, AUTHOR_EMBED


async def fetch_timetable_for_level(store: DirectoryStore, level: str) -> List[TimetableEntry]:
    """
    Timetable rows for one level, with course and lecturer embedded.

    Raises:
        FetchError: the store returned nothing usable
    """
    table = settings.TIMETABLE_TABLE
    rows = await store.select(table, filters={"level": level}, embeds=[COURSE_EMBED])
    if rows is None:
        raise FetchError(table)
    try:
        return [TimetableEntry.model_validate(row) for row in rows]
    except PydanticValidationError as e:
        raise FetchError(table, f"unexpected row shape: {e.error_count()} error(s)") from e


async def fetch_announcements_for_level(
    store: DirectoryStore,
    level: Optional[str]
) -> List[Announcement]:
    """Announcements targeted at the level plus broadcasts, newest first"""
    table = settings.ANNOUNCEMENTS_TABLE
    accepted_levels = [level, None] if level else [None]
    rows = await store.select(
        table,
        any_of={"level": accepted_levels},
        embeds=[AUTHOR_EMBED],
        order=["created_at.desc"],
    )
    if rows is None:
        raise FetchError(table)
    try:
        return [Announcement.model_validate(row) for row in rows]
    except PydanticValidationError as e:
        raise FetchError(table, f"unexpected row shape: {e.error_count()} error(s)") from e
