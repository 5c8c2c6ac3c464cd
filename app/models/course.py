import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.models.base import Base


class CourseStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class CourseLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class LessonType(str, Enum):
    VIDEO = "VIDEO"
    TEXT = "TEXT"
    QUIZ = "QUIZ"
    ASSIGNMENT = "ASSIGNMENT"


class Course(Base):
    __tablename__ = "courses"

    id: str = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title: str = Column(String(200), nullable=False)
    slug: str = Column(String, unique=True, nullable=False, index=True)
    description: str = Column(Text, nullable=False)
    short_desc: Optional[str] = Column(String(300), nullable=True)
    thumbnail: Optional[str] = Column(String, nullable=True)
    price: Decimal = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    discount_price: Optional[Decimal] = Column(Numeric(10, 2), nullable=True)
    status: CourseStatus = Column(
        SqlEnum(CourseStatus, name="course_statuses", native_enum=False),
        nullable=False,
        default=CourseStatus.DRAFT,
        index=True,
    )
    level: Optional[CourseLevel] = Column(
        SqlEnum(
            CourseLevel,
            name="course_levels",
            native_enum=False,
            values_callable=lambda levels: [level.value for level in levels],
        ),
        nullable=True,
    )
    language: str = Column(String, nullable=False, default="English")
    instructor_id: str = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    category_id: Optional[str] = Column(String, ForeignKey("categories.id"), nullable=True, index=True)
    # Денормализованные агрегаты, пересчитываются при добавлении уроков
    total_lessons: int = Column(Integer, nullable=False, default=0)
    duration: int = Column(Integer, nullable=False, default=0)
    published_at: Optional[datetime] = Column(DateTime, nullable=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: datetime = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    instructor = relationship("User", back_populates="courses")
    category = relationship("Category", back_populates="courses")
    sections = relationship(
        "Section",
        back_populates="course",
        order_by="Section.order",
        cascade="all, delete-orphan",
    )
    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="course", cascade="all, delete-orphan")


class Section(Base):
    __tablename__ = "sections"

    id: str = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title: str = Column(String(200), nullable=False)
    description: Optional[str] = Column(String(500), nullable=True)
    order: int = Column(Integer, nullable=False, default=0)
    course_id: str = Column(String, ForeignKey("courses.id"), nullable=False, index=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow, nullable=False)

    course = relationship("Course", back_populates="sections")
    lessons = relationship(
        "Lesson",
        back_populates="section",
        order_by="Lesson.order",
        cascade="all, delete-orphan",
    )


class Lesson(Base):
    __tablename__ = "lessons"

    id: str = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title: str = Column(String(200), nullable=False)
    description: Optional[str] = Column(String(1000), nullable=True)
    type: LessonType = Column(
        SqlEnum(LessonType, name="lesson_types", native_enum=False),
        nullable=False,
        default=LessonType.VIDEO,
    )
    video_url: Optional[str] = Column(String, nullable=True)
    video_duration: int = Column(Integer, nullable=False, default=0)
    content: Optional[str] = Column(Text, nullable=True)
    order: int = Column(Integer, nullable=False, default=0)
    is_free: bool = Column(Boolean, nullable=False, default=False)
    is_published: bool = Column(Boolean, nullable=False, default=False)
    section_id: str = Column(String, ForeignKey("sections.id"), nullable=False, index=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow, nullable=False)

    section = relationship("Section", back_populates="lessons")
    progress_records = relationship("LessonProgress", back_populates="lesson", cascade="all, delete-orphan")
