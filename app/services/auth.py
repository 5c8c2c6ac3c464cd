import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.cache import Cache
from app.core.config import settings
from app.core.errors import AppError, is_unique_violation
from app.core.security import (
    REFRESH_TOKEN,
    TokenPair,
    decode_token,
    generate_tokens,
    hash_password,
    verify_password,
)
from app.models.user import User
from app.repositories.enrollment_repository import EnrollmentRepository
from app.repositories.user_repository import UserRepository
from app.schemas.auth import (
    AuthResult,
    CurrentUserOut,
    LoginRequest,
    RecentEnrollment,
    RegisterRequest,
    UserCounts,
)
from app.utils.helpers import sanitize_user

logger = logging.getLogger(__name__)

BLACKLIST_PREFIX = "blacklist:"
RECENT_ENROLLMENTS = 5


def blacklist_key(refresh_token: str) -> str:
    return f"{BLACKLIST_PREFIX}{refresh_token}"


class AuthService:
    def __init__(
        self,
        cache: Cache,
        user_repo: UserRepository | None = None,
        enrollment_repo: EnrollmentRepository | None = None,
    ):
        self.cache = cache
        self.user_repo = user_repo or UserRepository()
        self.enrollment_repo = enrollment_repo or EnrollmentRepository()

    @staticmethod
    def _tokens_for(user: User) -> TokenPair:
        return generate_tokens(user.id, user.email, user.role.value)

    def _result(self, user: User) -> AuthResult:
        tokens = self._tokens_for(user)
        return AuthResult(
            user=sanitize_user(user),
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        )

    def register(self, db: Session, data: RegisterRequest) -> AuthResult:
        if self.user_repo.get_by_email(db, data.email):
            raise AppError.conflict("Email already registered")

        try:
            user = self.user_repo.create(
                db,
                email=data.email,
                password_hash=hash_password(data.password),
                name=data.name,
                role=data.role,
            )
        except IntegrityError as exc:
            db.rollback()
            # Параллельная регистрация того же email ловится уникальным индексом
            if is_unique_violation(exc):
                raise AppError.conflict("Email already registered") from exc
            raise

        logger.info("Registered user %s with role %s", user.id, user.role.value)
        return self._result(user)

    def login(self, db: Session, data: LoginRequest) -> AuthResult:
        user = self.user_repo.get_by_email(db, data.email)
        if not user:
            raise AppError.unauthorized("Invalid email or password")
        if not user.password_hash:
            raise AppError.unauthorized("Please login with your social account")
        if not user.is_active:
            raise AppError.unauthorized("Account is deactivated")
        if not verify_password(data.password, user.password_hash):
            raise AppError.unauthorized("Invalid email or password")

        user = self.user_repo.update(db, user, last_login_at=datetime.utcnow())
        return self._result(user)

    def refresh_token(self, db: Session, refresh_token: str) -> TokenPair:
        try:
            payload = decode_token(refresh_token, REFRESH_TOKEN)
        except AppError as exc:
            raise AppError.unauthorized("Invalid refresh token") from exc

        if settings.enforce_refresh_blacklist and self.cache.exists(blacklist_key(refresh_token)):
            raise AppError.unauthorized("Invalid refresh token")

        user = self.user_repo.get(db, payload["sub"])
        if not user or not user.is_active:
            raise AppError.unauthorized("Invalid refresh token")

        # Refresh-токен не ротируется: старый остаётся валидным до истечения срока
        return self._tokens_for(user)

    def change_password(self, db: Session, user_id: str, current_password: str, new_password: str) -> None:
        user = self.user_repo.get(db, user_id)
        if not user or not user.password_hash:
            raise AppError.not_found("User not found")
        if not verify_password(current_password, user.password_hash):
            raise AppError.bad_request("Current password is incorrect")

        self.user_repo.update(db, user, password_hash=hash_password(new_password))

    def logout(self, user_id: str, refresh_token: str) -> None:
        ttl = int(settings.refresh_token_expires.total_seconds())
        self.cache.set(blacklist_key(refresh_token), "1", ttl)
        logger.info("User %s logged out", user_id)

    def get_current_user(self, db: Session, user_id: str) -> CurrentUserOut:
        user = self.user_repo.get(db, user_id)
        if not user:
            raise AppError.not_found("User not found")

        enrollments_count, courses_count = self.user_repo.counts(db, user.id)
        recent = self.enrollment_repo.list_for_user(db, user.id, limit=RECENT_ENROLLMENTS)
        return CurrentUserOut(
            **sanitize_user(user).model_dump(),
            counts=UserCounts(enrollments=enrollments_count, instructor_courses=courses_count),
            enrollments=[RecentEnrollment.model_validate(enrollment) for enrollment in recent],
        )
