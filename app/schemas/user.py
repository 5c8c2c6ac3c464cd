from typing import Optional

from pydantic import AnyHttpUrl, constr, field_validator

from app.models.user import UserRole
from app.schemas.common import APIModel


class UpdateProfileRequest(APIModel):
    name: Optional[constr(strip_whitespace=True, min_length=2, max_length=100)] = None  # type: ignore[valid-type]
    bio: Optional[constr(max_length=500)] = None  # type: ignore[valid-type]
    avatar: Optional[AnyHttpUrl] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, name: Optional[str]) -> str:
        if name is None:
            raise ValueError("Name cannot be null")
        return name


class UpdateRoleRequest(APIModel):
    role: UserRole


class InstructorStats(APIModel):
    total_courses: int
    total_students: int
    average_rating: float
    total_reviews: int
