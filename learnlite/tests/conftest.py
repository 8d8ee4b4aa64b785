"""
Shared fixtures: a fresh in-memory database per test, an HTTP client bound
to it, and a small factory for seeding rows.
"""
import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["NOTIFICATIONS_ENABLED"] = "true"
os.environ["NOTIFICATIONS_WORKER_ENABLED"] = "false"

from typing import AsyncGenerator, Iterable, Optional, Sequence, Tuple

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from learnlite.database import build_engine, build_sessionmaker, get_db
from learnlite.main import app
from learnlite.orm.base import Base, utcnow
from learnlite.orm.course import Course
from learnlite.orm.enrollment import Enrollment, EnrollmentStatus
from learnlite.orm.lesson import Lesson
from learnlite.orm.lesson_progress import LessonProgress
from learnlite.orm.quiz import Quiz, QuizQuestion
from learnlite.orm.user import User, UserRole
from learnlite.security.rbac import create_access_token
from learnlite.services.auth_service import pwd_context

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "password123"


@pytest_asyncio.fixture
async def engine():
    engine = build_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """
    Sessionmaker over a file-backed database with a real connection pool,
    so concurrent sessions hold separate connections and race on commit.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'learnlite.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_sessionmaker(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async client whose requests use the per-test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


class Factory:
    """Seeds rows directly, bypassing the API."""

    def __init__(self, session):
        self.session = session
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def user(self, role: UserRole = UserRole.student, name: Optional[str] = None) -> User:
        n = self._next()
        return await self._save(User(
            email=f"{role.value}{n}@example.com",
            password_hash=pwd_context.hash(TEST_PASSWORD),
            name=name or f"{role.value.title()} {n}",
            role=role,
        ))

    async def course(self, instructor: User, published: bool = True, title: Optional[str] = None) -> Course:
        return await self._save(Course(
            title=title or f"Course {self._next()}",
            description="",
            price_cents=1000,
            published=published,
            instructor_id=instructor.id,
        ))

    async def lessons(self, course: Course, count: int) -> list:
        lessons = []
        for position in range(1, count + 1):
            lessons.append(await self._save(Lesson(
                course_id=course.id, title=f"Lesson {position}", position=position,
            )))
        return lessons

    async def enrollment(
        self,
        user: User,
        course: Course,
        status: EnrollmentStatus = EnrollmentStatus.active,
    ) -> Enrollment:
        return await self._save(Enrollment(user_id=user.id, course_id=course.id, status=status))

    async def complete(self, enrollment: Enrollment, lessons: Iterable[Lesson]) -> None:
        for lesson in lessons:
            self.session.add(LessonProgress(
                enrollment_id=enrollment.id, lesson_id=lesson.id,
                completed=True, completed_at=utcnow(),
            ))
        await self.session.commit()

    async def quiz(self, course: Course, questions: Sequence[Tuple[str, list, int]] = ()) -> Tuple[Quiz, list]:
        quiz = await self._save(Quiz(course_id=course.id, title=f"Quiz {self._next()}"))
        saved = []
        for prompt, choices, correct_index in questions:
            saved.append(await self._save(QuizQuestion(
                quiz_id=quiz.id, prompt=prompt, choices=choices, correct_index=correct_index,
            )))
        return quiz, saved


@pytest_asyncio.fixture
async def factory(db) -> Factory:
    return Factory(db)


@pytest_asyncio.fixture
async def admin(factory) -> User:
    return await factory.user(UserRole.admin, name="Ada Admin")


@pytest_asyncio.fixture
async def instructor(factory) -> User:
    return await factory.user(UserRole.instructor, name="Ivy Instructor")


@pytest_asyncio.fixture
async def other_instructor(factory) -> User:
    return await factory.user(UserRole.instructor, name="Otto Instructor")


@pytest_asyncio.fixture
async def student(factory) -> User:
    return await factory.user(UserRole.student, name="Sam Student")
