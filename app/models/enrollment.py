import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.models.base import Base


class EnrollmentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),)

    id: str = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: str = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    course_id: str = Column(String, ForeignKey("courses.id"), nullable=False, index=True)
    status: EnrollmentStatus = Column(
        SqlEnum(EnrollmentStatus, name="enrollment_statuses", native_enum=False),
        nullable=False,
        default=EnrollmentStatus.ACTIVE,
    )
    progress: int = Column(Integer, nullable=False, default=0)
    enrolled_at: datetime = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at: Optional[datetime] = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")


class LessonProgress(Base):
    __tablename__ = "lesson_progress"
    __table_args__ = (UniqueConstraint("user_id", "lesson_id", name="uq_lesson_progress_user_lesson"),)

    id: str = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: str = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    lesson_id: str = Column(String, ForeignKey("lessons.id"), nullable=False, index=True)
    is_completed: bool = Column(Boolean, nullable=False, default=False)
    watched_seconds: int = Column(Integer, nullable=False, default=0)
    completed_at: Optional[datetime] = Column(DateTime, nullable=True)
    updated_at: datetime = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    lesson = relationship("Lesson", back_populates="progress_records")
