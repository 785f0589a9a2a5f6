"""
Unit Tests for the admin service
Tests for: course, timetable, announcement and user management
"""
from unittest.mock import AsyncMock

import pytest

from portal.core.exceptions import (
    DirectoryStoreError,
    CourseNotFoundError,
    TimetableEntryNotFoundError,
    AnnouncementNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from portal.core.security import verify_password
from portal.schemas.announcement import AnnouncementCreate
from portal.schemas.course import CourseCreate, CourseUpdate
from portal.schemas.timetable import TimetableEntryCreate, TimetableEntryUpdate
from portal.schemas.user import UserCreate, UserRole, UserUpdate
from portal.services.admin_service import AdminService

from mocks.helpers import LEVEL, OTHER_LEVEL


@pytest.fixture
def service(store):
    return AdminService(store)


class TestCourses:

    @pytest.mark.asyncio
    async def test_list_courses_embeds_lecturer(self, service, course, lecturer):
        courses = await service.list_courses()

        assert len(courses) == 1
        assert courses[0].lecturer.id == lecturer["id"]

    @pytest.mark.asyncio
    async def test_create_update_delete(self, service, store):
        created = await service.create_course(
            CourseCreate(course_code="ICT205", course_title="Networks", level=OTHER_LEVEL)
        )
        assert created.id

        updated = await service.update_course(created.id, CourseUpdate(course_title="Computer Networks"))
        assert updated.course_title == "Computer Networks"
        assert updated.course_code == "ICT205"

        await service.delete_course(created.id)
        assert store.tables["courses"] == []

    @pytest.mark.asyncio
    async def test_missing_course(self, service):
        with pytest.raises(CourseNotFoundError):
            await service.get_course("nope")
        with pytest.raises(CourseNotFoundError):
            await service.update_course("nope", CourseUpdate(course_title="x"))
        with pytest.raises(CourseNotFoundError):
            await service.delete_course("nope")

    @pytest.mark.asyncio
    async def test_empty_patch_rejected(self, service, course):
        with pytest.raises(ValidationError):
            await service.update_course(course["id"], CourseUpdate())

    @pytest.mark.asyncio
    async def test_create_hidden_by_store(self, service, store, monkeypatch):
        # Store accepted the write but returned no representation
        monkeypatch.setattr(store, "insert", AsyncMock(return_value=[]))

        with pytest.raises(DirectoryStoreError) as exc_info:
            await service.create_course(
                CourseCreate(course_code="ICT205", course_title="Networks", level=OTHER_LEVEL)
            )

        assert exc_info.value.status_code == 502
        assert exc_info.value.details["table"] == "courses"


class TestTimetable:

    @pytest.mark.asyncio
    async def test_list_ordered_by_weekday_then_time(self, service, timetable):
        entries = await service.list_timetable()

        assert [(e.day_of_week, e.start_time) for e in entries] == [
            ("Monday", "08:00"),
            ("Monday", "09:00"),
            ("Tuesday", "10:00"),
            ("Wednesday", "14:00"),
        ]
        assert entries[0].course.course_code == "ICT101"

    @pytest.mark.asyncio
    async def test_create_copies_course_level(self, service, course):
        entry = await service.create_entry(TimetableEntryCreate(
            course_id=course["id"], day_of_week="Friday",
            start_time="15:00", end_time="16:30", room="B12",
        ))

        assert entry.level == LEVEL
        assert entry.start_time == "15:00"

    @pytest.mark.asyncio
    async def test_create_with_explicit_level(self, service, course):
        entry = await service.create_entry(TimetableEntryCreate(
            course_id=course["id"], day_of_week="Friday",
            start_time="15:00", end_time="16:30", room="B12", level=OTHER_LEVEL,
        ))

        assert entry.level == OTHER_LEVEL

    @pytest.mark.asyncio
    async def test_create_for_unknown_course(self, service):
        with pytest.raises(CourseNotFoundError):
            await service.create_entry(TimetableEntryCreate(
                course_id="missing", day_of_week="Friday",
                start_time="15:00", end_time="16:00", room="B12",
            ))

    @pytest.mark.asyncio
    async def test_update_course_recopies_level(self, service, store, timetable):
        other = store.add("courses", course_code="ICT201", course_title="Databases", level=OTHER_LEVEL)

        entry = await service.update_entry(
            timetable[0]["id"], TimetableEntryUpdate(course_id=other["id"])
        )

        assert entry.course_id == other["id"]
        assert entry.level == OTHER_LEVEL

    @pytest.mark.asyncio
    async def test_update_and_delete_missing(self, service):
        with pytest.raises(TimetableEntryNotFoundError):
            await service.update_entry("missing", TimetableEntryUpdate(room="C1"))
        with pytest.raises(TimetableEntryNotFoundError):
            await service.delete_entry("missing")


class TestAnnouncements:

    @pytest.mark.asyncio
    async def test_post_sets_author(self, service, admin):
        announcement = await service.post_announcement(admin, AnnouncementCreate(message="Welcome back"))

        assert announcement.posted_by == admin.id
        assert announcement.is_broadcast

    @pytest.mark.asyncio
    async def test_list_newest_first_with_author(self, service, admin):
        await service.post_announcement(admin, AnnouncementCreate(message="first", level=LEVEL))
        await service.post_announcement(admin, AnnouncementCreate(message="second"))

        announcements = await service.list_announcements()

        assert [a.message for a in announcements] == ["second", "first"]
        assert announcements[0].author.email == admin.email

    @pytest.mark.asyncio
    async def test_delete_missing(self, service):
        with pytest.raises(AnnouncementNotFoundError):
            await service.delete_announcement("missing")


class TestUsers:

    @pytest.mark.asyncio
    async def test_list_users_hides_password(self, service, student_row, admin_row):
        users = await service.list_users()

        assert {u.email for u in users} == {"student@example.com", "admin@example.com"}
        assert all(not hasattr(u, "password") for u in users)

    @pytest.mark.asyncio
    async def test_list_lecturers(self, service, lecturer, student_row):
        lecturers = await service.list_lecturers()

        assert [u.id for u in lecturers] == [lecturer["id"]]

    @pytest.mark.asyncio
    async def test_create_lecturer(self, service, store):
        user = await service.create_user(UserCreate(
            email="New.Lecturer@Example.com", password="secret123",
            full_name="New Lecturer", role=UserRole.LECTURER,
        ))

        assert user.email == "new.lecturer@example.com"
        assert user.role == "lecturer"
        assert store.tables["users"][-1]["password"] != "secret123"

    @pytest.mark.asyncio
    async def test_update_password_is_hashed(self, service, store, student_row):
        await service.update_user(student_row["id"], UserUpdate(password="changed123"))

        stored = store.tables["users"][0]["password"]
        assert verify_password("changed123", stored)

    @pytest.mark.asyncio
    async def test_update_and_delete_missing(self, service):
        with pytest.raises(UserNotFoundError):
            await service.update_user("missing", UserUpdate(full_name="x"))
        with pytest.raises(UserNotFoundError):
            await service.delete_user("missing")
