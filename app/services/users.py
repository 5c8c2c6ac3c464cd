import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.models.user import User, UserRole
from app.repositories.course_repository import CourseRepository
from app.repositories.user_repository import UserRepository
from app.schemas.auth import UserCounts, UserOut, UserWithCounts
from app.schemas.common import MessageResponse, Page
from app.schemas.user import InstructorStats, UpdateProfileRequest
from app.utils.helpers import build_pagination, page_offset, sanitize_user

logger = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        user_repo: UserRepository | None = None,
        course_repo: CourseRepository | None = None,
    ):
        self.user_repo = user_repo or UserRepository()
        self.course_repo = course_repo or CourseRepository()

    def _get_or_404(self, db: Session, user_id: str) -> User:
        user = self.user_repo.get(db, user_id)
        if not user:
            raise AppError.not_found("User not found")
        return user

    def get_by_id(self, db: Session, user_id: str) -> UserWithCounts:
        user = self._get_or_404(db, user_id)
        enrollments, instructor_courses = self.user_repo.counts(db, user.id)
        return UserWithCounts(
            **sanitize_user(user).model_dump(),
            counts=UserCounts(enrollments=enrollments, instructor_courses=instructor_courses),
        )

    def get_all(
        self,
        db: Session,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
    ) -> Page[UserOut]:
        users, total = self.user_repo.list(
            db,
            offset=page_offset(page, limit),
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
            role=role,
            search=search,
        )
        return Page[UserOut](
            data=[sanitize_user(user) for user in users],
            pagination=build_pagination(page, limit, total),
        )

    def update_profile(self, db: Session, user_id: str, data: UpdateProfileRequest) -> UserOut:
        user = self._get_or_404(db, user_id)
        fields = data.model_dump(exclude_unset=True)
        if data.avatar is not None:
            fields["avatar"] = str(data.avatar)
        return sanitize_user(self.user_repo.update(db, user, **fields))

    def update_role(self, db: Session, user_id: str, role: UserRole) -> UserOut:
        user = self._get_or_404(db, user_id)
        user = self.user_repo.update(db, user, role=role)
        logger.info("User %s role changed to %s", user.id, role.value)
        return sanitize_user(user)

    def _set_active(self, db: Session, user_id: str, is_active: bool) -> None:
        user = self._get_or_404(db, user_id)
        self.user_repo.update(db, user, is_active=is_active)
        logger.info("User %s %s", user_id, "activated" if is_active else "deactivated")

    def activate(self, db: Session, user_id: str) -> MessageResponse:
        self._set_active(db, user_id, True)
        return MessageResponse(message="User activated successfully")

    def deactivate(self, db: Session, user_id: str) -> MessageResponse:
        self._set_active(db, user_id, False)
        return MessageResponse(message="User deactivated successfully")

    def get_instructor_stats(self, db: Session, instructor_id: str) -> InstructorStats:
        courses, students, average, reviews = self.course_repo.instructor_aggregates(db, instructor_id)
        return InstructorStats(
            total_courses=int(courses or 0),
            total_students=int(students or 0),
            average_rating=float(average) if average is not None else 0.0,
            total_reviews=int(reviews or 0),
        )
