from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field, constr, field_validator

from app.models.user import UserRole
from app.schemas.common import APIModel


class UserOut(APIModel):
    """Пользователь без хеша пароля."""

    id: str
    email: str
    name: str
    role: UserRole
    is_active: bool
    is_verified: bool
    bio: Optional[str] = None
    avatar: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime


class UserCounts(APIModel):
    enrollments: int = 0
    instructor_courses: int = 0


class UserWithCounts(UserOut):
    counts: UserCounts = Field(default_factory=UserCounts)


class RecentCourse(APIModel):
    id: str
    title: str
    slug: str
    thumbnail: Optional[str] = None


class RecentEnrollment(APIModel):
    id: str
    progress: int
    enrolled_at: datetime
    course: RecentCourse


class CurrentUserOut(UserWithCounts):
    enrollments: List[RecentEnrollment] = []


class RegisterRequest(APIModel):
    email: EmailStr
    password: constr(min_length=8, max_length=128)  # type: ignore[valid-type]
    name: constr(strip_whitespace=True, min_length=2, max_length=100)  # type: ignore[valid-type]
    role: UserRole = UserRole.STUDENT

    @field_validator("role")
    @classmethod
    def role_is_self_assignable(cls, role: UserRole) -> UserRole:
        if role == UserRole.ADMIN:
            raise ValueError("Role must be STUDENT or INSTRUCTOR")
        return role


class LoginRequest(APIModel):
    email: EmailStr
    password: constr(min_length=1)  # type: ignore[valid-type]


class RefreshRequest(APIModel):
    refresh_token: constr(min_length=1)  # type: ignore[valid-type]


class LogoutRequest(RefreshRequest):
    pass


class ChangePasswordRequest(APIModel):
    current_password: constr(min_length=1)  # type: ignore[valid-type]
    new_password: constr(min_length=8, max_length=128)  # type: ignore[valid-type]


class TokenPairOut(APIModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResult(TokenPairOut):
    user: UserOut
