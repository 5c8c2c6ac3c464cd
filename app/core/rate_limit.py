import logging

from fastapi import Depends, Request
from redis.exceptions import RedisError

from app.core.cache import Cache, get_cache
from app.core.config import settings
from app.core.errors import AppError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Счётчик запросов в фиксированном окне: INCR ключа, EXPIRE при первом попадании."""

    def __init__(self, scope: str, max_requests: int, window_seconds: int, message: str | None = None):
        self.scope = scope
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message or "Too many requests, please try again later"

    def key(self, identifier: str) -> str:
        return f"ratelimit:{self.scope}:{identifier}"

    def hit(self, cache: Cache, identifier: str) -> int:
        key = self.key(identifier)
        try:
            count = cache.incr(key)
            if count == 1:
                cache.expire(key, self.window_seconds)
        except RedisError as exc:
            # Недоступный кеш не блокирует API
            logger.warning("Rate limit check skipped for %s: %s", key, exc)
            return 0

        if count > self.max_requests:
            logger.warning("Rate limit exceeded for %s (%d/%d)", key, count, self.max_requests)
            raise AppError.too_many_requests(self.message)
        return count


api_rate_limiter = RateLimiter(
    scope="api",
    max_requests=settings.rate_limit_max_requests,
    window_seconds=settings.rate_limit_window_seconds,
)

login_rate_limiter = RateLimiter(
    scope="login",
    max_requests=settings.login_rate_limit_max_attempts,
    window_seconds=settings.login_rate_limit_window_seconds,
    message="Too many login attempts, please try again after 15 minutes",
)


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def api_rate_limit(request: Request, cache: Cache = Depends(get_cache)) -> None:
    api_rate_limiter.hit(cache, client_ip(request))
