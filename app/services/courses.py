import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.cache import Cache
from app.core.config import settings
from app.core.errors import AppError, is_unique_violation
from app.models.course import Course, CourseStatus, Lesson, Section
from app.repositories.category_repository import CategoryRepository
from app.repositories.course_repository import CourseRepository, CourseRow
from app.repositories.section_repository import LessonRepository, SectionRepository
from app.schemas.common import Page
from app.schemas.course import (
    CategoryOut,
    CourseCreate,
    CourseDetail,
    CourseQuery,
    CourseSummary,
    CourseUpdate,
    LessonCreate,
    SectionCreate,
)
from app.utils.helpers import build_pagination, page_offset, slugify, timestamp_suffix

logger = logging.getLogger(__name__)

CATEGORIES_KEY = "categories"
COURSES_PATTERN = "courses:*"


def course_key(id_or_slug: str) -> str:
    return f"course:{id_or_slug}"


class CourseService:
    def __init__(
        self,
        cache: Cache,
        course_repo: CourseRepository | None = None,
        section_repo: SectionRepository | None = None,
        lesson_repo: LessonRepository | None = None,
        category_repo: CategoryRepository | None = None,
    ):
        self.cache = cache
        self.course_repo = course_repo or CourseRepository()
        self.section_repo = section_repo or SectionRepository()
        self.lesson_repo = lesson_repo or LessonRepository()
        self.category_repo = category_repo or CategoryRepository()

    # --- кеш -----------------------------------------------------------------

    def _invalidate(self, *keys: str, patterns: tuple = ()) -> None:
        """Сброс кеша после записи; не транзакционен с самой записью."""
        try:
            for pattern in patterns:
                self.cache.delete_pattern(pattern)
            self.cache.delete(*keys)
        except RedisError as exc:
            logger.warning("Cache invalidation failed for %s %s: %s", keys, patterns, exc)

    def _cache_get(self, key: str) -> Optional[Any]:
        try:
            return self.cache.get(key)
        except RedisError as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None

    def _cache_set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            self.cache.set(key, value, ttl_seconds)
        except RedisError as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    # --- слаги ---------------------------------------------------------------

    def _unique_slug(self, db: Session, title: str, exclude_id: Optional[str] = None) -> str:
        slug = slugify(title) or "course"
        if self.course_repo.slug_taken(db, slug, exclude_id=exclude_id):
            slug = f"{slug}-{timestamp_suffix()}"
        return slug

    # --- курсы ---------------------------------------------------------------

    def create(self, db: Session, instructor_id: str, data: CourseCreate) -> CourseSummary:
        fields = data.model_dump()
        slug = self._unique_slug(db, data.title)
        try:
            course = self.course_repo.create(db, slug=slug, instructor_id=instructor_id, **fields)
        except IntegrityError as exc:
            db.rollback()
            if not is_unique_violation(exc):
                raise
            # Слаг заняли между проверкой и вставкой
            course = self.course_repo.create(
                db,
                slug=f"{slugify(data.title) or 'course'}-{timestamp_suffix()}",
                instructor_id=instructor_id,
                **fields,
            )

        self._invalidate(patterns=(COURSES_PATTERN,))
        logger.info("Course %s (%s) created by %s", course.id, course.slug, instructor_id)
        return CourseSummary.model_validate(course)

    def get_by_id_or_slug(
        self, db: Session, id_or_slug: str, include_unpublished: bool = False
    ) -> CourseDetail:
        cacheable = not include_unpublished
        if cacheable:
            cached = self._cache_get(course_key(id_or_slug))
            if cached:
                return CourseDetail.model_validate(cached)

        row = self.course_repo.find_by_id_or_slug(db, id_or_slug, published_only=not include_unpublished)
        if row is None:
            raise AppError.not_found("Course not found")

        course, enrollment_count, review_count = row
        detail = CourseDetail.model_validate(course).model_copy(
            update={
                "enrollment_count": enrollment_count,
                "review_count": review_count,
                "average_rating": self.course_repo.average_rating(db, course.id),
            }
        )
        if cacheable:
            self._cache_set(
                course_key(id_or_slug),
                detail.model_dump(mode="json"),
                settings.courses_cache_ttl_seconds,
            )
        return detail

    @staticmethod
    def _summaries(rows: List[CourseRow]) -> List[CourseSummary]:
        return [
            CourseSummary.model_validate(course).model_copy(
                update={"enrollment_count": enrolled, "review_count": reviewed}
            )
            for course, enrolled, reviewed in rows
        ]

    def get_all(self, db: Session, query: CourseQuery) -> Page[CourseSummary]:
        key = query.cache_key()
        cached = self._cache_get(key)
        if cached:
            return Page[CourseSummary].model_validate(cached)

        rows, total = self.course_repo.search(
            db,
            offset=page_offset(query.page, query.limit),
            limit=query.limit,
            status=query.status or CourseStatus.PUBLISHED,
            category_slug=query.category,
            level=query.level,
            search=query.search,
            min_price=query.min_price,
            max_price=query.max_price,
            sort_by=query.sort_by.value,
            sort_order=query.sort_order.value,
        )
        page = Page[CourseSummary](
            data=self._summaries(rows),
            pagination=build_pagination(query.page, query.limit, total),
        )
        self._cache_set(key, page.model_dump(mode="json"), settings.courses_cache_ttl_seconds)
        return page

    def get_instructor_courses(
        self, db: Session, instructor_id: str, page: int, limit: int
    ) -> Page[CourseSummary]:
        rows, total = self.course_repo.list_by_instructor(
            db, instructor_id, offset=page_offset(page, limit), limit=limit
        )
        return Page[CourseSummary](
            data=self._summaries(rows),
            pagination=build_pagination(page, limit, total),
        )

    def _get_owned(self, db: Session, course_id: str, user_id: str, is_admin: bool, action: str) -> Course:
        course = self.course_repo.get(db, course_id)
        if not course:
            raise AppError.not_found("Course not found")
        if not is_admin and course.instructor_id != user_id:
            raise AppError.forbidden(f"You can only {action} your own courses")
        return course

    def update(
        self, db: Session, course_id: str, user_id: str, data: CourseUpdate, is_admin: bool = False
    ) -> CourseSummary:
        course = self._get_owned(db, course_id, user_id, is_admin, "update")
        old_slug = course.slug

        fields: Dict[str, Any] = data.model_dump(exclude_unset=True)
        if data.title and data.title != course.title:
            fields["slug"] = self._unique_slug(db, data.title, exclude_id=course.id)
        if data.status == CourseStatus.PUBLISHED and course.published_at is None:
            fields["published_at"] = datetime.utcnow()

        course = self.course_repo.update(db, course, fields)
        self._invalidate(
            course_key(course.id),
            course_key(old_slug),
            course_key(course.slug),
            patterns=(COURSES_PATTERN,),
        )
        return CourseSummary.model_validate(course)

    def delete(self, db: Session, course_id: str, user_id: str, is_admin: bool = False) -> None:
        course = self._get_owned(db, course_id, user_id, is_admin, "delete")
        slug = course.slug
        self.course_repo.delete(db, course)
        self._invalidate(course_key(course_id), course_key(slug), patterns=(COURSES_PATTERN,))
        logger.info("Course %s deleted by %s", course_id, user_id)

    # --- структура курса -----------------------------------------------------

    def add_section(
        self, db: Session, course_id: str, user_id: str, data: SectionCreate, is_admin: bool = False
    ) -> Section:
        course = self.course_repo.get(db, course_id)
        if not course or (not is_admin and course.instructor_id != user_id):
            raise AppError.forbidden("You can only modify your own courses")

        order = data.order if data.order is not None else self.section_repo.max_order(db, course_id) + 1
        section = self.section_repo.create(
            db,
            title=data.title,
            description=data.description,
            order=order,
            course_id=course_id,
        )
        self._invalidate(course_key(course.id), course_key(course.slug))
        return section

    def add_lesson(
        self, db: Session, section_id: str, user_id: str, data: LessonCreate, is_admin: bool = False
    ) -> Lesson:
        section = self.section_repo.get_with_course(db, section_id)
        if not section or (not is_admin and section.course.instructor_id != user_id):
            raise AppError.forbidden("You can only modify your own courses")

        fields = data.model_dump(exclude={"order", "video_url"})
        order = data.order if data.order is not None else self.lesson_repo.max_order(db, section_id) + 1
        lesson = self.lesson_repo.create(
            db,
            section_id=section_id,
            order=order,
            video_url=str(data.video_url) if data.video_url else None,
            **fields,
        )

        course = self.update_course_stats(db, section.course_id)
        self._invalidate(course_key(course.id), course_key(course.slug), patterns=(COURSES_PATTERN,))
        return lesson

    def update_course_stats(self, db: Session, course_id: str) -> Course:
        """Полный пересчёт total_lessons и duration по всем урокам курса."""
        course = self.course_repo.get(db, course_id)
        if not course:
            raise AppError.not_found("Course not found")
        total_lessons, duration = self.course_repo.lesson_totals(db, course_id)
        return self.course_repo.update(db, course, {"total_lessons": total_lessons, "duration": duration})

    # --- категории -----------------------------------------------------------

    def get_categories(self, db: Session) -> List[CategoryOut]:
        cached = self._cache_get(CATEGORIES_KEY)
        if cached:
            return [CategoryOut.model_validate(item) for item in cached]

        counts = self.category_repo.course_counts(db)
        categories = [
            CategoryOut(
                id=category.id,
                name=category.name,
                slug=category.slug,
                parent_id=category.parent_id,
                course_count=counts.get(category.id, 0),
                children=[
                    CategoryOut(
                        id=child.id,
                        name=child.name,
                        slug=child.slug,
                        parent_id=child.parent_id,
                        course_count=counts.get(child.id, 0),
                    )
                    for child in category.children
                ],
            )
            for category in self.category_repo.list_top_level(db)
        ]
        self._cache_set(
            CATEGORIES_KEY,
            [category.model_dump(mode="json") for category in categories],
            settings.categories_cache_ttl_seconds,
        )
        return categories
