from typing import Any, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.user import User, UserRole

USER_SORT_COLUMNS = {
    "createdAt": User.created_at,
    "name": User.name,
    "email": User.email,
}


class UserRepository:
    def get_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    def get(self, db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    def create(
        self,
        db: Session,
        email: str,
        password_hash: Optional[str],
        name: str,
        role: UserRole,
        **extra: Any,
    ) -> User:
        user = User(email=email, password_hash=password_hash, name=name, role=role, **extra)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    def update(self, db: Session, user: User, **fields: Any) -> User:
        for field, value in fields.items():
            setattr(user, field, value)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    def list(
        self,
        db: Session,
        offset: int,
        limit: int,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[User], int]:
        query = db.query(User)
        if role:
            query = query.filter(User.role == role)
        if search:
            query = query.filter(
                or_(User.name.icontains(search, autoescape=True), User.email.icontains(search, autoescape=True))
            )

        column = USER_SORT_COLUMNS.get(sort_by, User.created_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        total = query.count()
        users = query.order_by(ordering).offset(offset).limit(limit).all()
        return users, total

    def counts(self, db: Session, user_id: str) -> Tuple[int, int]:
        """(число записей на курсы, число курсов автора)."""
        row = db.execute(
            select(
                select(func.count(Enrollment.id))
                .where(Enrollment.user_id == user_id)
                .scalar_subquery(),
                select(func.count(Course.id))
                .where(Course.instructor_id == user_id)
                .scalar_subquery(),
            )
        ).one()
        return int(row[0]), int(row[1])
