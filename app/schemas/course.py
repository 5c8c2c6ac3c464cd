from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import AnyHttpUrl, Field, constr, field_validator

from app.models.course import CourseLevel, CourseStatus, LessonType
from app.schemas.common import APIModel


class CourseSortField(str, Enum):
    CREATED_AT = "createdAt"
    PRICE = "price"
    TITLE = "title"
    ENROLLMENTS = "enrollments"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class CourseCreate(APIModel):
    title: constr(strip_whitespace=True, min_length=5, max_length=200)  # type: ignore[valid-type]
    description: constr(min_length=20, max_length=5000)  # type: ignore[valid-type]
    short_desc: Optional[constr(max_length=300)] = None  # type: ignore[valid-type]
    thumbnail: Optional[str] = None
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    discount_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    category_id: Optional[str] = None
    level: Optional[CourseLevel] = None
    language: str = "English"


class CourseUpdate(APIModel):
    title: Optional[constr(strip_whitespace=True, min_length=5, max_length=200)] = None  # type: ignore[valid-type]
    description: Optional[constr(min_length=20, max_length=5000)] = None  # type: ignore[valid-type]
    short_desc: Optional[constr(max_length=300)] = None  # type: ignore[valid-type]
    thumbnail: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    discount_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    category_id: Optional[str] = None
    level: Optional[CourseLevel] = None
    language: Optional[str] = None
    status: Optional[CourseStatus] = None

    @field_validator("title", "description", "price", "language", "status")
    @classmethod
    def not_null(cls, value):
        # Поле можно не передавать, но нельзя обнулить
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class CourseQuery(APIModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=50)
    category: Optional[str] = None
    level: Optional[CourseLevel] = None
    status: Optional[CourseStatus] = None
    search: Optional[str] = None
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    sort_by: CourseSortField = CourseSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    def cache_key(self) -> str:
        parts = self.model_dump(mode="json", exclude_none=True)
        return "courses:list:" + "&".join(f"{key}={parts[key]}" for key in sorted(parts))


class SectionCreate(APIModel):
    title: constr(strip_whitespace=True, min_length=2, max_length=200)  # type: ignore[valid-type]
    description: Optional[constr(max_length=500)] = None  # type: ignore[valid-type]
    order: Optional[int] = Field(None, ge=0)


class LessonCreate(APIModel):
    title: constr(strip_whitespace=True, min_length=2, max_length=200)  # type: ignore[valid-type]
    description: Optional[constr(max_length=1000)] = None  # type: ignore[valid-type]
    type: LessonType = LessonType.VIDEO
    video_url: Optional[AnyHttpUrl] = None
    video_duration: int = Field(0, ge=0)
    content: Optional[str] = None
    order: Optional[int] = Field(None, ge=0)
    is_free: bool = False
    is_published: bool = False


class InstructorBrief(APIModel):
    id: str
    name: str
    avatar: Optional[str] = None


class InstructorProfile(InstructorBrief):
    bio: Optional[str] = None


class CategoryBrief(APIModel):
    id: str
    name: str
    slug: str


class CategoryOut(CategoryBrief):
    parent_id: Optional[str] = None
    course_count: int = 0
    children: List["CategoryOut"] = []


class LessonOut(APIModel):
    id: str
    title: str
    description: Optional[str] = None
    type: LessonType
    video_url: Optional[str] = None
    video_duration: int
    content: Optional[str] = None
    is_free: bool
    is_published: bool
    order: int
    section_id: str


class LessonSummary(APIModel):
    id: str
    title: str
    type: LessonType
    video_duration: int
    is_free: bool
    is_published: bool
    order: int


class SectionOut(APIModel):
    id: str
    title: str
    description: Optional[str] = None
    order: int
    course_id: str
    lessons: List[LessonSummary] = []


class CourseOut(APIModel):
    id: str
    title: str
    slug: str
    description: str
    short_desc: Optional[str] = None
    thumbnail: Optional[str] = None
    price: Decimal
    discount_price: Optional[Decimal] = None
    status: CourseStatus
    level: Optional[CourseLevel] = None
    language: str
    instructor_id: str
    category_id: Optional[str] = None
    total_lessons: int
    duration: int
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class CourseSummary(CourseOut):
    instructor: Optional[InstructorBrief] = None
    category: Optional[CategoryBrief] = None
    enrollment_count: int = 0
    review_count: int = 0


class CourseDetail(CourseSummary):
    instructor: Optional[InstructorProfile] = None
    sections: List[SectionOut] = []
    average_rating: float = 0.0
