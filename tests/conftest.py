import fnmatch
import json
import os
from decimal import Decimal
from typing import Any, Callable, Dict, Generator, Optional

# Минимальная стоимость bcrypt для тестов; должно быть выставлено до импорта app.*
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.database import make_session_factory
from app.core.security import create_access_token, hash_password
from app.main import create_app
from app.models.base import Base
from app.models.category import Category
from app.models.course import Course, CourseStatus, Lesson, Section
from app.models.user import User, UserRole

PASSWORD = "secret123"


class MemoryCache:
    """In-memory замена Cache с тем же интерфейсом; TTL только запоминается."""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    def get(self, key: str) -> Optional[Any]:
        data = self.store.get(key)
        if data is None:
            return None
        try:
            return json.loads(data)
        except ValueError:
            return data

    def set(self, key: str, value: Any, ttl_seconds: int = 3600) -> None:
        self.store[key] = value if isinstance(value, str) else json.dumps(value)
        self.ttls[key] = ttl_seconds

    def delete(self, *keys: str) -> None:
        for key in keys:
            self.store.pop(key, None)
            self.ttls.pop(key, None)

    def delete_pattern(self, pattern: str) -> int:
        keys = [key for key in self.store if fnmatch.fnmatchcase(key, pattern)]
        self.delete(*keys)
        return len(keys)

    def exists(self, key: str) -> bool:
        return key in self.store

    def incr(self, key: str) -> int:
        value = int(self.store.get(key, "0")) + 1
        self.store[key] = str(value)
        return value

    def expire(self, key: str, ttl_seconds: int) -> None:
        self.ttls[key] = ttl_seconds

    def close(self) -> None:
        pass


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        future=True,
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(engine: Engine, cache: MemoryCache) -> Generator[TestClient, None, None]:
    app = create_app(engine=engine, cache=cache)
    with TestClient(app) as test_client:
        yield test_client


def _persist(session_factory: sessionmaker, obj):
    session = session_factory()
    try:
        session.add(obj)
        session.commit()
        session.refresh(obj)
        session.expunge(obj)
        return obj
    finally:
        session.close()


@pytest.fixture
def make_user(session_factory: sessionmaker) -> Callable[..., User]:
    def factory(
        email: str,
        role: UserRole = UserRole.STUDENT,
        name: str = "Test User",
        password: Optional[str] = PASSWORD,
        is_active: bool = True,
    ) -> User:
        user = User(
            email=email,
            name=name,
            role=role,
            password_hash=hash_password(password) if password else None,
            is_active=is_active,
        )
        return _persist(session_factory, user)

    return factory


@pytest.fixture
def make_category(session_factory: sessionmaker) -> Callable[..., Category]:
    def factory(name: str, slug: str, parent_id: Optional[str] = None) -> Category:
        return _persist(session_factory, Category(name=name, slug=slug, parent_id=parent_id))

    return factory


@pytest.fixture
def make_course(session_factory: sessionmaker) -> Callable[..., Course]:
    def factory(
        instructor: User,
        title: str = "Python from Scratch",
        slug: Optional[str] = None,
        status: CourseStatus = CourseStatus.PUBLISHED,
        price: Decimal = Decimal("49.99"),
        category_id: Optional[str] = None,
        **fields: Any,
    ) -> Course:
        course = Course(
            title=title,
            slug=slug or title.lower().replace(" ", "-"),
            description="A thorough introduction for complete beginners.",
            price=price,
            status=status,
            instructor_id=instructor.id,
            category_id=category_id,
            **fields,
        )
        return _persist(session_factory, course)

    return factory


@pytest.fixture
def make_lesson(session_factory: sessionmaker) -> Callable[..., Lesson]:
    def factory(course: Course, title: str = "Intro", video_duration: int = 60, order: int = 1) -> Lesson:
        section = _persist(session_factory, Section(title=f"{title} section", order=order, course_id=course.id))
        lesson = Lesson(title=title, video_duration=video_duration, order=order, section_id=section.id)
        return _persist(session_factory, lesson)

    return factory


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user.id, user.email, user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for() -> Callable[[User], Dict[str, str]]:
    return auth_headers
