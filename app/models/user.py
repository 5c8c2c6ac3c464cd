import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, Enum as SqlEnum, String, Text
from sqlalchemy.orm import relationship

from app.models.base import Base


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    INSTRUCTOR = "INSTRUCTOR"
    STUDENT = "STUDENT"


class User(Base):
    __tablename__ = "users"

    id: str = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email: str = Column(String, unique=True, nullable=False, index=True)
    # None для аккаунтов, созданных через социальный вход
    password_hash: Optional[str] = Column(String, nullable=True)
    name: str = Column(String, nullable=False)
    role: UserRole = Column(
        SqlEnum(UserRole, name="user_roles", native_enum=False),
        nullable=False,
        default=UserRole.STUDENT,
    )
    is_active: bool = Column(Boolean, default=True, nullable=False)
    is_verified: bool = Column(Boolean, default=False, nullable=False)
    bio: Optional[str] = Column(Text, nullable=True)
    avatar: Optional[str] = Column(String, nullable=True)
    last_login_at: Optional[datetime] = Column(DateTime, nullable=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: datetime = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    courses = relationship("Course", back_populates="instructor")
    enrollments = relationship("Enrollment", back_populates="user", cascade="all, delete-orphan")
