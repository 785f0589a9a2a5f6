"""
Admin CRUD over courses, timetable entries, announcements and users.

Thin pass-through to the directory store: validate, write, return the
stored row. Every write is followed by the store's own change notification,
which is what refreshes student views.
"""
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from portal.core.config import settings
from portal.core.exceptions import (
    DirectoryStoreError,
    ValidationError,
    ResourceNotFoundError,
    CourseNotFoundError,
    TimetableEntryNotFoundError,
    AnnouncementNotFoundError,
    UserNotFoundError,
)
from portal.core.logging_config import logger
from portal.core.security import get_password_hash
from portal.modules.auth.session import SessionProvider, normalize_email
from portal.schemas.announcement import Announcement, AnnouncementCreate
from portal.schemas.course import Course, CourseCreate, CourseUpdate
from portal.schemas.timetable import (
    WEEKDAYS,
    TimetableEntry,
    TimetableEntryCreate,
    TimetableEntryUpdate,
)
from portal.schemas.user import Identity, User, UserCreate, UserUpdate, UserRole
from portal.services.directory_store import (
    DirectoryStore,
    COURSE_EMBED,
    LECTURER_EMBED,
    AUTHOR_EMBED,
    USER_PUBLIC_COLUMNS,
)

NotFoundFactory = Callable[[str], ResourceNotFoundError]


def _weekday_index(day: str) -> int:
    return WEEKDAYS.index(day) if day in WEEKDAYS else len(WEEKDAYS)


class AdminService:
    """CRUD operations behind the admin panels"""

    def __init__(self, store: DirectoryStore, session_provider: Optional[SessionProvider] = None):
        self._store = store
        self._sessions = session_provider or SessionProvider(store)

    # ========== Helpers ==========

    async def _update(
        self,
        table: str,
        row_id: str,
        patch: Dict[str, Any],
        not_found: NotFoundFactory,
    ) -> Dict[str, Any]:
        if not patch:
            raise ValidationError("No fields to update")
        rows = await self._store.update(table, patch, {"id": row_id})
        if not rows:
            raise not_found(row_id)
        logger.info(f"[Admin] Updated {table} {row_id}: {', '.join(sorted(patch))}")
        return rows[0]

    async def _delete(self, table: str, row_id: str, not_found: NotFoundFactory) -> None:
        rows = await self._store.delete(table, {"id": row_id})
        if not rows:
            raise not_found(row_id)
        logger.info(f"[Admin] Deleted {table} {row_id}")

    async def _insert_one(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        rows = await self._store.insert(table, [data])
        if not rows:
            # Row-level security can hide the row from return=representation
            raise DirectoryStoreError("Insert returned no rows", table=table)
        logger.info(f"[Admin] Created {table} {rows[0].get('id')}")
        return rows[0]

    @staticmethod
    def _patch(data: BaseModel) -> Dict[str, Any]:
        return data.model_dump(exclude_unset=True, mode="json")

    # ========== Courses ==========

    async def list_courses(self) -> List[Course]:
        rows = await self._store.select(
            settings.COURSES_TABLE,
            embeds=[LECTURER_EMBED],
            order=["course_code.asc"],
        )
        return [Course.model_validate(row) for row in rows]

    async def get_course(self, course_id: str) -> Course:
        rows = await self._store.select(settings.COURSES_TABLE, filters={"id": course_id})
        if not rows:
            raise CourseNotFoundError(course_id)
        return Course.model_validate(rows[0])

    async def create_course(self, data: CourseCreate) -> Course:
        row = await self._insert_one(settings.COURSES_TABLE, data.model_dump(mode="json"))
        return Course.model_validate(row)

    async def update_course(self, course_id: str, data: CourseUpdate) -> Course:
        row = await self._update(
            settings.COURSES_TABLE, course_id, self._patch(data), CourseNotFoundError
        )
        return Course.model_validate(row)

    async def delete_course(self, course_id: str) -> None:
        await self._delete(settings.COURSES_TABLE, course_id, CourseNotFoundError)

    # ========== Timetable ==========

    async def list_timetable(self) -> List[TimetableEntry]:
        """Every entry, Monday to Friday, then by start time"""
        rows = await self._store.select(settings.TIMETABLE_TABLE, embeds=[COURSE_EMBED])
        entries = [TimetableEntry.model_validate(row) for row in rows]
        return sorted(entries, key=lambda e: (_weekday_index(e.day_of_week), e.start_time))

    async def create_entry(self, data: TimetableEntryCreate) -> TimetableEntry:
        payload = data.model_dump(mode="json")
        if not payload.get("level"):
            # The row's own level is what students are filtered by
            course = await self.get_course(data.course_id)
            payload["level"] = course.level
        row = await self._insert_one(settings.TIMETABLE_TABLE, payload)
        return TimetableEntry.model_validate(row)

    async def update_entry(self, entry_id: str, data: TimetableEntryUpdate) -> TimetableEntry:
        patch = self._patch(data)
        if patch.get("course_id") and not patch.get("level"):
            course = await self.get_course(patch["course_id"])
            patch["level"] = course.level
        row = await self._update(
            settings.TIMETABLE_TABLE, entry_id, patch, TimetableEntryNotFoundError
        )
        return TimetableEntry.model_validate(row)

    async def delete_entry(self, entry_id: str) -> None:
        await self._delete(settings.TIMETABLE_TABLE, entry_id, TimetableEntryNotFoundError)

    # ========== Announcements ==========

    async def list_announcements(self) -> List[Announcement]:
        rows = await self._store.select(
            settings.ANNOUNCEMENTS_TABLE,
            embeds=[AUTHOR_EMBED],
            order=["created_at.desc"],
        )
        return [Announcement.model_validate(row) for row in rows]

    async def post_announcement(self, author: Identity, data: AnnouncementCreate) -> Announcement:
        row = await self._insert_one(
            settings.ANNOUNCEMENTS_TABLE,
            {"message": data.message, "level": data.level or None, "posted_by": author.id},
        )
        return Announcement.model_validate(row)

    async def delete_announcement(self, announcement_id: str) -> None:
        await self._delete(
            settings.ANNOUNCEMENTS_TABLE, announcement_id, AnnouncementNotFoundError
        )

    # ========== Users ==========

    async def list_users(self, role: Optional[UserRole] = None) -> List[User]:
        filters = {"role": role.value} if role else None
        rows = await self._store.select(
            settings.USERS_TABLE,
            filters=filters,
            order=["created_at.desc"],
            columns=USER_PUBLIC_COLUMNS,
        )
        return [User.model_validate(row) for row in rows]

    async def list_lecturers(self) -> List[User]:
        return await self.list_users(role=UserRole.LECTURER)

    async def create_user(self, data: UserCreate) -> User:
        identity = await self._sessions.register(data)
        return User(
            id=identity.id,
            email=identity.email,
            full_name=identity.full_name,
            role=identity.role,
            level=identity.level,
        )

    async def update_user(self, user_id: str, data: UserUpdate) -> User:
        patch = self._patch(data)
        password = patch.pop("password", None)
        if password:
            patch["password"] = get_password_hash(password)
        if patch.get("email"):
            patch["email"] = normalize_email(patch["email"])
        row = await self._update(settings.USERS_TABLE, user_id, patch, UserNotFoundError)
        return User.model_validate(row)

    async def delete_user(self, user_id: str) -> None:
        await self._delete(settings.USERS_TABLE, user_id, UserNotFoundError)
