import math
import re
import time
import unicodedata

from app.models.user import User
from app.schemas.auth import UserOut
from app.schemas.common import PaginationMeta

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """URL-безопасный слаг: ASCII, нижний регистр, дефисы вместо прочих символов."""
    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return _NON_ALNUM.sub("-", normalized.lower()).strip("-")


def timestamp_suffix() -> str:
    return str(int(time.time() * 1000))


def build_pagination(page: int, limit: int, total: int) -> PaginationMeta:
    total_pages = math.ceil(total / limit) if limit else 0
    return PaginationMeta(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def sanitize_user(user: User) -> UserOut:
    return UserOut.model_validate(user)
