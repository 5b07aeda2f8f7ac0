"""
Pytest configuration.

Every test gets a fresh in-memory SQLite database and an application built
around it. Email delivery is disabled and Resend is mocked globally so no
test can send a real email; Stripe and object storage run in mock mode.
"""

import os

# Set before any coachhub import so Settings picks them up
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = ""
os.environ["STORAGE_ENDPOINT"] = ""
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, Iterator, List, Optional
import unittest.mock

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from coachhub.api.dependencies.services import get_storage
from coachhub.auth import create_access_token, get_password_hash
from coachhub.core.enums import CoachStatus, CourseStatus, SessionStatus, UserRole
from coachhub.database import Database
from coachhub.main import create_app
from coachhub.models.child import Child
from coachhub.models.coach import Coach
from coachhub.models.course import Course
from coachhub.models.credit import CreditPackage
from coachhub.models.session import CoachingSession
from coachhub.models.user import User
from coachhub.services.storage_client import PresignedUrl

TEST_PASSWORD = "Str0ngPassw0rd!"


class FakeStorage:
    """Records storage calls and hands out deterministic URLs."""

    def __init__(self) -> None:
        self.deleted: List[str] = []
        self.fail_deletes = False

    def _url(self, method: str, key: str, content_type: Optional[str] = None) -> PresignedUrl:
        headers = {"Content-Type": content_type} if content_type else {}
        return PresignedUrl(
            url=f"https://storage.example.com/bucket/{key}?method={method}",
            method=method,
            headers=headers,
            expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
        )

    def generate_presigned_put(self, object_key: str, content_type: str, expires_seconds=None) -> PresignedUrl:
        return self._url("PUT", object_key, content_type)

    def generate_presigned_get(self, object_key: str, expires_seconds=None) -> PresignedUrl:
        return self._url("GET", object_key)

    def generate_presigned_delete(self, object_key: str, expires_seconds=None) -> PresignedUrl:
        return self._url("DELETE", object_key)

    def public_url(self, object_key: str) -> str:
        return f"https://storage.example.com/bucket/{object_key}"

    def delete_object(self, object_key: str) -> bool:
        self.deleted.append(object_key)
        return not self.fail_deletes


@pytest.fixture(autouse=True)
def mock_resend() -> Iterator[unittest.mock.MagicMock]:
    with unittest.mock.patch("resend.Emails.send") as mocked_send:
        mocked_send.return_value = {"id": "test-email-id"}
        yield mocked_send


@pytest.fixture
def database() -> Iterator[Database]:
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.drop_all()
    database.dispose()


@pytest.fixture
def db(database: Database) -> Iterator[Session]:
    session = database.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def app(database: Database, storage: FakeStorage):
    application = create_app(database=database)
    application.dependency_overrides[get_storage] = lambda: storage
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_user(
    db: Session,
    email: str,
    role: UserRole = UserRole.PARENT,
    *,
    first_name: str = "Test",
    last_name: str = "User",
    is_active: bool = True,
) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash(TEST_PASSWORD),
        first_name=first_name,
        last_name=last_name,
        role=role.value,
        timezone="UTC",
        is_verified=True,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    return user


def make_coach(db: Session, email: str, status: CoachStatus = CoachStatus.APPROVED) -> Coach:
    user = make_user(db, email, UserRole.COACH, first_name="Casey", last_name="Coach")
    coach = Coach(user_id=user.id, domain="Mathematics", languages=["en"], status=status.value)
    db.add(coach)
    db.commit()
    return coach


def make_course(
    db: Session,
    coach: Coach,
    *,
    title: str = "Algebra Foundations",
    credit_cost: Decimal = Decimal("10.00"),
    status: CourseStatus = CourseStatus.APPROVED,
    is_active: bool = True,
) -> Course:
    course = Course(
        coach_id=coach.id,
        title=title,
        description="Step by step algebra",
        category="Mathematics",
        duration=60,
        price=Decimal("50.00"),
        currency="usd",
        credit_cost=credit_cost,
        status=status.value,
        is_active=is_active,
    )
    db.add(course)
    db.commit()
    return course


def make_session(
    db: Session,
    course: Course,
    student: User,
    start: datetime,
    minutes: int = 60,
    status: SessionStatus = SessionStatus.SCHEDULED,
) -> CoachingSession:
    session = CoachingSession(
        course_id=course.id,
        coach_id=course.coach_id,
        student_id=student.id,
        title=f"{course.title} session",
        session_type="ONE_ON_ONE",
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        duration=minutes,
        status=status.value,
    )
    db.add(session)
    db.commit()
    return session


def make_child(db: Session, parent: User, first_name: str = "Robin", years: int = 9) -> Child:
    today = date.today()
    child = Child(
        parent_id=parent.id,
        first_name=first_name,
        last_name="Parent",
        date_of_birth=date(today.year - years, 1, 15),
        interests=["math"],
    )
    db.add(child)
    db.commit()
    return child


def make_package(db: Session, *, credits: str = "100", bonus: str = "10", price: str = "90.00") -> CreditPackage:
    package = CreditPackage(
        name="Starter",
        credits=Decimal(credits),
        bonus_credits=Decimal(bonus),
        price=Decimal(price),
        currency="usd",
        is_active=True,
    )
    db.add(package)
    db.commit()
    return package


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token({"sub": user.id, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


def future(hours: int = 48, minute: int = 0) -> datetime:
    base = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
    return base + timedelta(hours=hours, minutes=minute)


# ---------------------------------------------------------------------------
# Common fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def parent(db: Session) -> User:
    return make_user(db, "parent@example.com", UserRole.PARENT, first_name="Pat", last_name="Parent")


@pytest.fixture
def other_parent(db: Session) -> User:
    return make_user(db, "other.parent@example.com", UserRole.PARENT, first_name="Olive", last_name="Other")


@pytest.fixture
def admin(db: Session) -> User:
    return make_user(db, "admin@example.com", UserRole.ADMIN, first_name="Ada", last_name="Admin")


@pytest.fixture
def coach(db: Session) -> Coach:
    return make_coach(db, "coach@example.com")


@pytest.fixture
def coach_user(coach: Coach) -> User:
    return coach.user


@pytest.fixture
def course(db: Session, coach: Coach) -> Course:
    return make_course(db, coach)


@pytest.fixture
def child(db: Session, parent: User) -> Child:
    return make_child(db, parent)


@pytest.fixture
def parent_headers(parent: User) -> Dict[str, str]:
    return auth_headers(parent)


@pytest.fixture
def coach_headers(coach_user: User) -> Dict[str, str]:
    return auth_headers(coach_user)


@pytest.fixture
def admin_headers(admin: User) -> Dict[str, str]:
    return auth_headers(admin)
