from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.models.course import Lesson, Section


class SectionRepository:
    def get_with_course(self, db: Session, section_id: str) -> Optional[Section]:
        return (
            db.query(Section)
            .options(joinedload(Section.course))
            .filter(Section.id == section_id)
            .first()
        )

    def max_order(self, db: Session, course_id: str) -> int:
        value = db.query(func.max(Section.order)).filter(Section.course_id == course_id).scalar()
        return value or 0

    def create(self, db: Session, **fields: Any) -> Section:
        section = Section(**fields)
        db.add(section)
        db.commit()
        db.refresh(section)
        return section


class LessonRepository:
    def max_order(self, db: Session, section_id: str) -> int:
        value = db.query(func.max(Lesson.order)).filter(Lesson.section_id == section_id).scalar()
        return value or 0

    def create(self, db: Session, **fields: Any) -> Lesson:
        lesson = Lesson(**fields)
        db.add(lesson)
        db.commit()
        db.refresh(lesson)
        return lesson
