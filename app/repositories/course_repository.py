from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from app.models.category import Category
from app.models.course import Course, CourseLevel, CourseStatus, Lesson, Section
from app.models.enrollment import Enrollment
from app.models.review import Review

# (курс, число записей, число отзывов)
CourseRow = Tuple[Course, int, int]


def _enrollment_count():
    return (
        select(func.count(Enrollment.id))
        .where(Enrollment.course_id == Course.id)
        .correlate(Course)
        .scalar_subquery()
    )


def _review_count():
    return (
        select(func.count(Review.id))
        .where(Review.course_id == Course.id)
        .correlate(Course)
        .scalar_subquery()
    )


class CourseRepository:
    def get(self, db: Session, course_id: str) -> Optional[Course]:
        return db.query(Course).filter(Course.id == course_id).first()

    def slug_taken(self, db: Session, slug: str, exclude_id: Optional[str] = None) -> bool:
        query = db.query(Course.id).filter(Course.slug == slug)
        if exclude_id:
            query = query.filter(Course.id != exclude_id)
        return query.first() is not None

    def create(self, db: Session, **fields: Any) -> Course:
        course = Course(**fields)
        db.add(course)
        db.commit()
        db.refresh(course)
        return course

    def update(self, db: Session, course: Course, fields: Dict[str, Any]) -> Course:
        for field, value in fields.items():
            setattr(course, field, value)
        db.add(course)
        db.commit()
        db.refresh(course)
        return course

    def delete(self, db: Session, course: Course) -> None:
        db.delete(course)
        db.commit()

    def find_by_id_or_slug(
        self, db: Session, id_or_slug: str, published_only: bool
    ) -> Optional[CourseRow]:
        stmt = (
            select(Course, _enrollment_count(), _review_count())
            .where(or_(Course.id == id_or_slug, Course.slug == id_or_slug))
            .options(
                selectinload(Course.instructor),
                selectinload(Course.category),
                selectinload(Course.sections).selectinload(Section.lessons),
            )
        )
        if published_only:
            stmt = stmt.where(Course.status == CourseStatus.PUBLISHED)
        row = db.execute(stmt).first()
        if row is None:
            return None
        return row[0], int(row[1]), int(row[2])

    def average_rating(self, db: Session, course_id: str) -> float:
        value = db.query(func.avg(Review.rating)).filter(Review.course_id == course_id).scalar()
        return float(value) if value is not None else 0.0

    def search(
        self,
        db: Session,
        *,
        offset: int,
        limit: int,
        status: CourseStatus,
        category_slug: Optional[str] = None,
        level: Optional[CourseLevel] = None,
        search: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[CourseRow], int]:
        conditions = [Course.status == status]
        if category_slug:
            conditions.append(Course.category.has(Category.slug == category_slug))
        if level:
            conditions.append(Course.level == level)
        if search:
            conditions.append(
                or_(
                    Course.title.icontains(search, autoescape=True),
                    Course.description.icontains(search, autoescape=True),
                )
            )
        if min_price is not None:
            conditions.append(Course.price >= min_price)
        if max_price is not None:
            conditions.append(Course.price <= max_price)

        enrollment_count = _enrollment_count()
        sort_columns = {
            "createdAt": Course.created_at,
            "price": Course.price,
            "title": Course.title,
            "enrollments": enrollment_count,
        }
        column = sort_columns.get(sort_by, Course.created_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()

        stmt = (
            select(Course, enrollment_count, _review_count())
            .where(*conditions)
            .options(selectinload(Course.instructor), selectinload(Course.category))
            .order_by(ordering, Course.id)
            .offset(offset)
            .limit(limit)
        )
        rows = [(course, int(enrolled), int(reviewed)) for course, enrolled, reviewed in db.execute(stmt)]
        total = db.scalar(select(func.count(Course.id)).where(*conditions)) or 0
        return rows, int(total)

    def list_by_instructor(
        self, db: Session, instructor_id: str, offset: int, limit: int
    ) -> Tuple[List[CourseRow], int]:
        stmt = (
            select(Course, _enrollment_count(), _review_count())
            .where(Course.instructor_id == instructor_id)
            .options(selectinload(Course.category))
            .order_by(Course.created_at.desc(), Course.id)
            .offset(offset)
            .limit(limit)
        )
        rows = [(course, int(enrolled), int(reviewed)) for course, enrolled, reviewed in db.execute(stmt)]
        total = db.scalar(select(func.count(Course.id)).where(Course.instructor_id == instructor_id)) or 0
        return rows, int(total)

    def enrollment_counts(self, db: Session, course_ids: Sequence[str]) -> Dict[str, int]:
        if not course_ids:
            return {}
        rows = (
            db.query(Enrollment.course_id, func.count(Enrollment.id))
            .filter(Enrollment.course_id.in_(list(course_ids)))
            .group_by(Enrollment.course_id)
            .all()
        )
        return {course_id: int(count) for course_id, count in rows}

    def lesson_totals(self, db: Session, course_id: str) -> Tuple[int, int]:
        """(число уроков, суммарная длительность видео) по всем секциям курса."""
        row = (
            db.query(func.count(Lesson.id), func.coalesce(func.sum(Lesson.video_duration), 0))
            .join(Section, Lesson.section_id == Section.id)
            .filter(Section.course_id == course_id)
            .one()
        )
        return int(row[0]), int(row[1])

    def instructor_aggregates(self, db: Session, instructor_id: str) -> Sequence[Any]:
        """Три независимых агрегата одним запросом: курсы, студенты, средний рейтинг + число отзывов."""
        owned = select(Course.id).where(Course.instructor_id == instructor_id)
        return db.execute(
            select(
                select(func.count(Course.id))
                .where(Course.instructor_id == instructor_id)
                .scalar_subquery(),
                select(func.count(Enrollment.id))
                .where(Enrollment.course_id.in_(owned))
                .scalar_subquery(),
                select(func.avg(Review.rating))
                .where(Review.course_id.in_(owned))
                .scalar_subquery(),
                select(func.count(Review.id))
                .where(Review.course_id.in_(owned))
                .scalar_subquery(),
            )
        ).one()
