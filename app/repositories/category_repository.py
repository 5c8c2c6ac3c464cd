from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.models.category import Category
from app.models.course import Course


class CategoryRepository:
    def list_top_level(self, db: Session) -> List[Category]:
        return (
            db.query(Category)
            .options(selectinload(Category.children))
            .filter(Category.parent_id.is_(None))
            .order_by(Category.name.asc())
            .all()
        )

    def course_counts(self, db: Session) -> Dict[str, int]:
        rows = (
            db.query(Course.category_id, func.count(Course.id))
            .filter(Course.category_id.is_not(None))
            .group_by(Course.category_id)
            .all()
        )
        return {category_id: int(count) for category_id, count in rows}
