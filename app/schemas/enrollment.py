from datetime import datetime
from typing import List, Optional

from app.models.enrollment import EnrollmentStatus
from app.schemas.common import APIModel
from app.schemas.course import CourseOut, CourseSummary, LessonOut


class EnrolledCourse(APIModel):
    id: str
    title: str
    slug: str
    thumbnail: Optional[str] = None


class EnrollmentOut(APIModel):
    id: str
    user_id: str
    course_id: str
    status: EnrollmentStatus
    progress: int
    enrolled_at: datetime
    completed_at: Optional[datetime] = None


class EnrollmentCreated(EnrollmentOut):
    course: EnrolledCourse


class EnrollmentWithCourse(EnrollmentOut):
    course: CourseSummary


class SectionWithLessons(APIModel):
    id: str
    title: str
    description: Optional[str] = None
    order: int
    lessons: List[LessonOut] = []


class CourseStructure(CourseOut):
    sections: List[SectionWithLessons] = []


class LessonProgressOut(APIModel):
    id: str
    lesson_id: str
    is_completed: bool
    watched_seconds: int
    completed_at: Optional[datetime] = None
    updated_at: datetime


class EnrollmentDetail(EnrollmentOut):
    course: CourseStructure
    lesson_progress: List[LessonProgressOut] = []
