from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import get_current_user, require_roles
from app.models.user import User, UserRole
from app.schemas.auth import UserOut, UserWithCounts
from app.schemas.common import Envelope, MessageResponse, PaginatedEnvelope
from app.schemas.course import SortOrder
from app.schemas.user import InstructorStats, UpdateProfileRequest, UpdateRoleRequest
from app.services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])
user_service = UserService()

admins = require_roles({UserRole.ADMIN})
authors = require_roles({UserRole.INSTRUCTOR, UserRole.ADMIN})


class UserSortField(str, Enum):
    CREATED_AT = "createdAt"
    NAME = "name"
    EMAIL = "email"


def get_user_service() -> UserService:
    return user_service


@router.get("/profile", response_model=Envelope[UserWithCounts])
def get_profile(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
) -> Envelope[UserWithCounts]:
    return Envelope[UserWithCounts](data=service.get_by_id(db, user.id))


@router.patch("/profile", response_model=Envelope[UserOut])
def update_profile(
    payload: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
) -> Envelope[UserOut]:
    return Envelope[UserOut](message="Profile updated successfully", data=service.update_profile(db, user.id, payload))


@router.get("/instructor/stats", response_model=Envelope[InstructorStats])
def instructor_stats(
    user: User = Depends(authors),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
) -> Envelope[InstructorStats]:
    return Envelope[InstructorStats](data=service.get_instructor_stats(db, user.id))


@router.get("", response_model=PaginatedEnvelope[UserOut])
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: UserSortField = Query(UserSortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    _: User = Depends(admins),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
) -> PaginatedEnvelope[UserOut]:
    result = service.get_all(
        db,
        page=page,
        limit=limit,
        sort_by=sort_by.value,
        sort_order=sort_order.value,
        role=role,
        search=search,
    )
    return PaginatedEnvelope[UserOut](data=result.data, pagination=result.pagination)


@router.get("/{user_id}", response_model=Envelope[UserWithCounts])
def get_user(
    user_id: str,
    _: User = Depends(admins),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
) -> Envelope[UserWithCounts]:
    return Envelope[UserWithCounts](data=service.get_by_id(db, user_id))


@router.patch("/{user_id}/role", response_model=Envelope[UserOut])
def update_role(
    user_id: str,
    payload: UpdateRoleRequest,
    _: User = Depends(admins),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
) -> Envelope[UserOut]:
    return Envelope[UserOut](message="User role updated successfully", data=service.update_role(db, user_id, payload.role))


@router.post("/{user_id}/deactivate", response_model=MessageResponse)
def deactivate_user(
    user_id: str,
    _: User = Depends(admins),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
) -> MessageResponse:
    return service.deactivate(db, user_id)


@router.post("/{user_id}/activate", response_model=MessageResponse)
def activate_user(
    user_id: str,
    _: User = Depends(admins),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
) -> MessageResponse:
    return service.activate(db, user_id)
