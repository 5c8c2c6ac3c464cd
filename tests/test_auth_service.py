from datetime import timedelta

import pytest
from jose import jwt

from app.core.config import settings
from app.core.errors import AppError, ErrorKind
from app.core.security import (
    REFRESH_TOKEN,
    _create_token,
    create_refresh_token,
    decode_token,
    verify_password,
)
from app.models.user import User, UserRole
from app.repositories.enrollment_repository import EnrollmentRepository
from app.schemas.auth import LoginRequest, RegisterRequest
from app.services.auth import AuthService, blacklist_key


def test_auth_service_register_and_login(db, cache):
    service = AuthService(cache)

    result = service.register(
        db, RegisterRequest(email="unit@example.com", password="secret123", name="Unit Tester")
    )
    assert result.user.email == "unit@example.com"
    assert result.user.role == UserRole.STUDENT
    stored = db.query(User).filter(User.email == "unit@example.com").one()
    assert stored.password_hash != "secret123"
    assert verify_password("secret123", stored.password_hash)

    claims = decode_token(result.access_token)
    assert claims["sub"] == stored.id
    assert claims["email"] == "unit@example.com"
    assert claims["role"] == UserRole.STUDENT.value
    assert decode_token(result.refresh_token, REFRESH_TOKEN)["type"] == REFRESH_TOKEN

    logged_in = service.login(db, LoginRequest(email="unit@example.com", password="secret123"))
    assert logged_in.user.id == stored.id
    assert logged_in.user.last_login_at is not None


def test_register_duplicate_email_is_conflict(db, cache):
    service = AuthService(cache)
    data = RegisterRequest(email="twice@example.com", password="secret123", name="Twice")
    service.register(db, data)

    with pytest.raises(AppError) as exc_info:
        service.register(db, data)
    assert exc_info.value.kind is ErrorKind.CONFLICT
    assert exc_info.value.status_code == 409


def test_refresh_invalid_token_raises(db, cache):
    service = AuthService(cache)
    with pytest.raises(AppError) as exc_info:
        service.refresh_token(db, "not-a-token")
    assert exc_info.value.message == "Invalid refresh token"


def test_refresh_blacklisted_token_is_rejected(db, cache, make_user):
    user = make_user("black@example.com")
    service = AuthService(cache)
    token = create_refresh_token(user.id, user.email, user.role.value)
    assert service.refresh_token(db, token).access_token

    service.logout(user.id, token)
    assert cache.exists(blacklist_key(token))
    assert cache.ttls[blacklist_key(token)] == int(settings.refresh_token_expires.total_seconds())

    with pytest.raises(AppError):
        service.refresh_token(db, token)


def test_refresh_for_deactivated_user_is_rejected(db, cache, make_user):
    user = make_user("gone@example.com", is_active=False)
    with pytest.raises(AppError) as exc_info:
        AuthService(cache).refresh_token(db, create_refresh_token(user.id, user.email, user.role.value))
    assert exc_info.value.kind is ErrorKind.UNAUTHORIZED


def test_expired_token_has_distinct_message():
    token = _create_token("user-1", "x@example.com", "STUDENT", timedelta(seconds=-10), "access")
    with pytest.raises(AppError) as exc_info:
        decode_token(token)
    assert exc_info.value.message == "Token expired"


def test_tampered_token_is_invalid():
    token = jwt.encode({"sub": "user-1", "type": "access"}, "other-secret", algorithm=settings.algorithm)
    with pytest.raises(AppError) as exc_info:
        decode_token(token)
    assert exc_info.value.message == "Invalid token"


def test_change_password_requires_current(db, cache, make_user):
    user = make_user("pw@example.com")
    service = AuthService(cache)

    with pytest.raises(AppError) as exc_info:
        service.change_password(db, user.id, "wrong-one", "another-secret")
    assert exc_info.value.kind is ErrorKind.BAD_REQUEST

    service.change_password(db, user.id, "secret123", "another-secret")
    service.login(db, LoginRequest(email="pw@example.com", password="another-secret"))


def test_current_user_lists_recent_enrollments(db, cache, make_user, make_course):
    instructor = make_user("author@example.com", role=UserRole.INSTRUCTOR)
    student = make_user("reader@example.com")
    repo = EnrollmentRepository()
    for index in range(6):
        course = make_course(instructor, title=f"Course number {index}")
        repo.create(db, user_id=student.id, course_id=course.id)

    current = AuthService(cache).get_current_user(db, student.id)
    assert current.counts.enrollments == 6
    assert len(current.enrollments) == 5
    assert current.enrollments[0].course.slug.startswith("course-number-")

    author = AuthService(cache).get_current_user(db, instructor.id)
    assert author.counts.instructor_courses == 6
