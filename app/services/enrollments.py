import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import AppError, is_unique_violation
from app.models.course import CourseStatus
from app.repositories.course_repository import CourseRepository
from app.repositories.enrollment_repository import EnrollmentRepository
from app.schemas.enrollment import (
    EnrollmentCreated,
    EnrollmentDetail,
    EnrollmentWithCourse,
    LessonProgressOut,
)

logger = logging.getLogger(__name__)


class EnrollmentService:
    def __init__(
        self,
        enrollment_repo: EnrollmentRepository | None = None,
        course_repo: CourseRepository | None = None,
    ):
        self.enrollment_repo = enrollment_repo or EnrollmentRepository()
        self.course_repo = course_repo or CourseRepository()

    def enroll(self, db: Session, user_id: str, course_id: str) -> EnrollmentCreated:
        course = self.course_repo.get(db, course_id)
        if not course or course.status != CourseStatus.PUBLISHED:
            raise AppError.not_found("Course not found")

        if self.enrollment_repo.get(db, user_id, course_id):
            raise AppError.conflict("Already enrolled in this course")

        try:
            enrollment = self.enrollment_repo.create(db, user_id=user_id, course_id=course_id)
        except IntegrityError as exc:
            db.rollback()
            if is_unique_violation(exc):
                raise AppError.conflict("Already enrolled in this course") from exc
            raise

        logger.info("User %s enrolled in course %s", user_id, course_id)
        return EnrollmentCreated.model_validate(enrollment)

    def get_my_enrollments(self, db: Session, user_id: str) -> List[EnrollmentWithCourse]:
        enrollments = self.enrollment_repo.list_for_user(db, user_id)
        counts = self.course_repo.enrollment_counts(db, [item.course_id for item in enrollments])

        result = []
        for enrollment in enrollments:
            item = EnrollmentWithCourse.model_validate(enrollment)
            item.course.enrollment_count = counts.get(enrollment.course_id, 0)
            result.append(item)
        return result

    def get_enrollment(self, db: Session, user_id: str, course_id: str) -> EnrollmentDetail:
        enrollment = self.enrollment_repo.get_with_structure(db, user_id, course_id)
        if not enrollment:
            raise AppError.not_found("Enrollment not found")

        progress = self.enrollment_repo.lesson_progress(db, user_id, course_id)
        detail = EnrollmentDetail.model_validate(enrollment)
        detail.lesson_progress = [LessonProgressOut.model_validate(record) for record in progress]
        return detail
