from typing import List, Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from app.models.course import Course, Lesson, Section
from app.models.enrollment import Enrollment, EnrollmentStatus, LessonProgress


class EnrollmentRepository:
    def get(self, db: Session, user_id: str, course_id: str) -> Optional[Enrollment]:
        return (
            db.query(Enrollment)
            .filter(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
            .first()
        )

    def get_with_structure(self, db: Session, user_id: str, course_id: str) -> Optional[Enrollment]:
        return (
            db.query(Enrollment)
            .options(
                joinedload(Enrollment.course)
                .selectinload(Course.sections)
                .selectinload(Section.lessons)
            )
            .filter(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
            .first()
        )

    def create(self, db: Session, user_id: str, course_id: str) -> Enrollment:
        enrollment = Enrollment(
            user_id=user_id,
            course_id=course_id,
            status=EnrollmentStatus.ACTIVE,
            progress=0,
        )
        db.add(enrollment)
        db.commit()
        db.refresh(enrollment)
        return enrollment

    def list_for_user(self, db: Session, user_id: str, limit: Optional[int] = None) -> List[Enrollment]:
        query = (
            db.query(Enrollment)
            .options(
                joinedload(Enrollment.course).selectinload(Course.instructor),
                joinedload(Enrollment.course).selectinload(Course.category),
            )
            .filter(Enrollment.user_id == user_id)
            .order_by(Enrollment.enrolled_at.desc(), Enrollment.id)
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def lesson_progress(self, db: Session, user_id: str, course_id: str) -> List[LessonProgress]:
        return (
            db.query(LessonProgress)
            .join(Lesson, LessonProgress.lesson_id == Lesson.id)
            .join(Section, Lesson.section_id == Section.id)
            .filter(LessonProgress.user_id == user_id, Section.course_id == course_id)
            .all()
        )
