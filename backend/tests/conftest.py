"""
Timetable Portal - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from faker import Faker

# Set testing environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DIRECTORY_URL'] = 'https://directory.test'
os.environ['DIRECTORY_API_KEY'] = 'test-directory-key'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['CHANGE_WEBHOOK_SECRET'] = ''
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['LOG_FILE'] = ''

from portal.main import app
from portal.api.deps import get_feed
from portal.core.directory import get_store
from portal.core.security import create_access_token, get_password_hash
from portal.schemas.user import Identity, UserRole
from portal.services.change_feed import ChangeFeed

from mocks.fake_directory import FakeDirectoryStore
from mocks.helpers import LEVEL, OTHER_LEVEL

fake = Faker()


@pytest.fixture
def store() -> FakeDirectoryStore:
    return FakeDirectoryStore()


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed(queue_size=10, max_history=50)


@pytest.fixture
def lecturer(store: FakeDirectoryStore) -> dict:
    return store.add(
        "users",
        email=fake.email(),
        password=get_password_hash("lecturerpass"),
        full_name="Dr. Mensah",
        role="lecturer",
        level=None,
    )


@pytest.fixture
def course(store: FakeDirectoryStore, lecturer: dict) -> dict:
    return store.add(
        "courses",
        course_code="ICT101",
        course_title="Introduction to Computing",
        level=LEVEL,
        lecturer_id=lecturer["id"],
    )


@pytest.fixture
def timetable(store: FakeDirectoryStore, course: dict) -> list:
    """Three classes for LEVEL and one for OTHER_LEVEL"""
    return [
        store.add("timetable", course_id=course["id"], day_of_week="Monday",
                  start_time="09:00", end_time="10:00", room="101", level=LEVEL),
        store.add("timetable", course_id=course["id"], day_of_week="Monday",
                  start_time="08:00", end_time="09:00", room="100", level=LEVEL),
        store.add("timetable", course_id=course["id"], day_of_week="Wednesday",
                  start_time="14:00", end_time="15:00", room="202", level=LEVEL),
        store.add("timetable", course_id=course["id"], day_of_week="Tuesday",
                  start_time="10:00", end_time="11:00", room="300", level=OTHER_LEVEL),
    ]


@pytest.fixture
def student_row(store: FakeDirectoryStore) -> dict:
    return store.add(
        "users",
        email="student@example.com",
        password=get_password_hash("studentpass"),
        full_name=fake.name(),
        role="student",
        level=LEVEL,
    )


@pytest.fixture
def admin_row(store: FakeDirectoryStore) -> dict:
    return store.add(
        "users",
        email="admin@example.com",
        password=get_password_hash("adminpass"),
        full_name=fake.name(),
        role="admin",
        level=None,
    )


@pytest.fixture
def student(student_row: dict) -> Identity:
    return Identity(
        id=student_row["id"],
        email=student_row["email"],
        full_name=student_row["full_name"],
        role=UserRole.STUDENT,
        level=LEVEL,
    )


@pytest.fixture
def admin(admin_row: dict) -> Identity:
    return Identity(
        id=admin_row["id"],
        email=admin_row["email"],
        full_name=admin_row["full_name"],
        role=UserRole.ADMIN,
    )


@pytest.fixture
async def client(store: FakeDirectoryStore, feed: ChangeFeed) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with store and feed overrides"""
    async def override_get_store():
        return store

    async def override_get_feed():
        return feed

    app.dependency_overrides[get_store] = override_get_store
    app.dependency_overrides[get_feed] = override_get_feed

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(student: Identity) -> dict:
    """Generate authentication headers for the student"""
    token = create_access_token(student.to_claims())
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_auth_headers(admin: Identity) -> dict:
    """Generate authentication headers for the admin"""
    token = create_access_token(admin.to_claims())
    return {'Authorization': f'Bearer {token}'}
