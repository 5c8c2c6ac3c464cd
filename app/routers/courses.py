from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.cache import Cache, get_cache
from app.core.database import get_db
from app.core.security import get_optional_user, require_roles
from app.models.course import CourseLevel, CourseStatus
from app.models.user import User, UserRole
from app.schemas.common import Envelope, MessageResponse, PaginatedEnvelope
from app.schemas.course import (
    CategoryOut,
    CourseCreate,
    CourseDetail,
    CourseQuery,
    CourseSortField,
    CourseSummary,
    CourseUpdate,
    LessonCreate,
    LessonOut,
    SectionCreate,
    SectionOut,
    SortOrder,
)
from app.services.courses import CourseService

router = APIRouter(prefix="/courses", tags=["courses"])

authors = require_roles({UserRole.INSTRUCTOR, UserRole.ADMIN})


def get_course_service(cache: Cache = Depends(get_cache)) -> CourseService:
    return CourseService(cache)


def course_query(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    category: Optional[str] = None,
    level: Optional[CourseLevel] = None,
    status: Optional[CourseStatus] = None,
    search: Optional[str] = None,
    min_price: Optional[Decimal] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[Decimal] = Query(None, ge=0, alias="maxPrice"),
    sort_by: CourseSortField = Query(CourseSortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
) -> CourseQuery:
    return CourseQuery(
        page=page,
        limit=limit,
        category=category,
        level=level,
        status=status,
        search=search,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/categories", response_model=Envelope[List[CategoryOut]])
def list_categories(
    db: Session = Depends(get_db),
    service: CourseService = Depends(get_course_service),
) -> Envelope[List[CategoryOut]]:
    return Envelope[List[CategoryOut]](data=service.get_categories(db))


@router.get("", response_model=PaginatedEnvelope[CourseSummary])
def list_courses(
    query: CourseQuery = Depends(course_query),
    db: Session = Depends(get_db),
    service: CourseService = Depends(get_course_service),
) -> PaginatedEnvelope[CourseSummary]:
    page = service.get_all(db, query)
    return PaginatedEnvelope[CourseSummary](data=page.data, pagination=page.pagination)


@router.get("/my-courses", response_model=PaginatedEnvelope[CourseSummary])
def my_courses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    user: User = Depends(authors),
    db: Session = Depends(get_db),
    service: CourseService = Depends(get_course_service),
) -> PaginatedEnvelope[CourseSummary]:
    result = service.get_instructor_courses(db, user.id, page, limit)
    return PaginatedEnvelope[CourseSummary](data=result.data, pagination=result.pagination)


@router.get("/{id_or_slug}", response_model=Envelope[CourseDetail])
def get_course(
    id_or_slug: str,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    service: CourseService = Depends(get_course_service),
) -> Envelope[CourseDetail]:
    privileged = user is not None and user.role in (UserRole.ADMIN, UserRole.INSTRUCTOR)
    return Envelope[CourseDetail](data=service.get_by_id_or_slug(db, id_or_slug, include_unpublished=privileged))


@router.post("", response_model=Envelope[CourseSummary], status_code=201)
def create_course(
    payload: CourseCreate,
    user: User = Depends(authors),
    db: Session = Depends(get_db),
    service: CourseService = Depends(get_course_service),
) -> Envelope[CourseSummary]:
    course = service.create(db, user.id, payload)
    return Envelope[CourseSummary](message="Course created successfully", data=course)


@router.patch("/{course_id}", response_model=Envelope[CourseSummary])
def update_course(
    course_id: str,
    payload: CourseUpdate,
    user: User = Depends(authors),
    db: Session = Depends(get_db),
    service: CourseService = Depends(get_course_service),
) -> Envelope[CourseSummary]:
    course = service.update(db, course_id, user.id, payload, is_admin=user.role == UserRole.ADMIN)
    return Envelope[CourseSummary](message="Course updated successfully", data=course)


@router.delete("/{course_id}", response_model=MessageResponse)
def delete_course(
    course_id: str,
    user: User = Depends(authors),
    db: Session = Depends(get_db),
    service: CourseService = Depends(get_course_service),
) -> MessageResponse:
    service.delete(db, course_id, user.id, is_admin=user.role == UserRole.ADMIN)
    return MessageResponse(message="Course deleted successfully")


@router.post("/{course_id}/sections", response_model=Envelope[SectionOut], status_code=201)
def add_section(
    course_id: str,
    payload: SectionCreate,
    user: User = Depends(authors),
    db: Session = Depends(get_db),
    service: CourseService = Depends(get_course_service),
) -> Envelope[SectionOut]:
    section = service.add_section(db, course_id, user.id, payload, is_admin=user.role == UserRole.ADMIN)
    return Envelope[SectionOut](message="Section added successfully", data=SectionOut.model_validate(section))


@router.post("/sections/{section_id}/lessons", response_model=Envelope[LessonOut], status_code=201)
def add_lesson(
    section_id: str,
    payload: LessonCreate,
    user: User = Depends(authors),
    db: Session = Depends(get_db),
    service: CourseService = Depends(get_course_service),
) -> Envelope[LessonOut]:
    lesson = service.add_lesson(db, section_id, user.id, payload, is_admin=user.role == UserRole.ADMIN)
    return Envelope[LessonOut](message="Lesson added successfully", data=LessonOut.model_validate(lesson))
