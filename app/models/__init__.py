from app.models.base import Base
from app.models.category import Category
from app.models.course import Course, CourseLevel, CourseStatus, Lesson, LessonType, Section
from app.models.enrollment import Enrollment, EnrollmentStatus, LessonProgress
from app.models.review import Review
from app.models.user import User, UserRole

__all__ = [
    "Base",
    "Category",
    "Course",
    "CourseLevel",
    "CourseStatus",
    "Enrollment",
    "EnrollmentStatus",
    "Lesson",
    "LessonProgress",
    "LessonType",
    "Review",
    "Section",
    "User",
    "UserRole",
]
