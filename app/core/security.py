import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.errors import AppError
from app.models.user import User, UserRole

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.password_hash_rounds,
)

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def hash_password(password: str) -> str:
    """Хешируем пароль через bcrypt (passlib)."""
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    return pwd_context.verify(password, hashed_password)


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


def _create_token(
    user_id: str, email: str, role: str, expires_delta: timedelta, token_type: str
) -> str:
    now = datetime.utcnow()
    to_encode = {
        "sub": user_id,
        "email": email,
        "role": role,
        "type": token_type,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_access_token(user_id: str, email: str, role: str) -> str:
    return _create_token(user_id, email, role, settings.access_token_expires, ACCESS_TOKEN)


def create_refresh_token(user_id: str, email: str, role: str) -> str:
    return _create_token(user_id, email, role, settings.refresh_token_expires, REFRESH_TOKEN)


def generate_tokens(user_id: str, email: str, role: str) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user_id, email, role),
        refresh_token=create_refresh_token(user_id, email, role),
    )


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> Dict[str, Any]:
    """Проверяет подпись и срок действия; отзыв токенов здесь не учитывается."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError as exc:
        raise AppError.unauthorized("Token expired") from exc
    except JWTError as exc:
        raise AppError.unauthorized("Invalid token") from exc

    if payload.get("type") != expected_type or not payload.get("sub"):
        raise AppError.unauthorized("Invalid token")
    return payload


bearer_scheme = HTTPBearer(auto_error=False)


def _load_active_user(db: Session, token: str) -> User:
    payload = decode_token(token, ACCESS_TOKEN)
    user = db.get(User, payload["sub"])
    if not user:
        raise AppError.unauthorized("User not found")
    if not user.is_active:
        raise AppError.unauthorized("Account is deactivated")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AppError.unauthorized("No token provided")
    return _load_active_user(db, credentials.credentials)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    if credentials is None or not credentials.credentials:
        return None
    try:
        return _load_active_user(db, credentials.credentials)
    except AppError:
        return None


def require_roles(roles: set[UserRole]) -> Callable:
    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise AppError.forbidden("You do not have permission to access this resource")
        return user

    return dependency
