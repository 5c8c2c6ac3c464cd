import json
import logging
from typing import Any, Optional

from fastapi import Request
from redis import Redis

logger = logging.getLogger(__name__)


class Cache:
    """Key/value кеш поверх Redis: JSON-значения, TTL, удаление по шаблону, счётчики.

    Клиент создаётся явно (``Cache.from_url``) в lifespan приложения и закрывается при остановке.
    """

    def __init__(self, client: Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "Cache":
        return cls(Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[Any]:
        data = self.client.get(key)
        if data is None:
            return None
        try:
            return json.loads(data)
        except ValueError:
            return data

    def set(self, key: str, value: Any, ttl_seconds: int = 3600) -> None:
        data = value if isinstance(value, str) else json.dumps(value)
        self.client.set(key, data, ex=ttl_seconds)

    def delete(self, *keys: str) -> None:
        if keys:
            self.client.delete(*keys)

    def delete_pattern(self, pattern: str) -> int:
        keys = list(self.client.scan_iter(match=pattern))
        if keys:
            self.client.delete(*keys)
        return len(keys)

    def exists(self, key: str) -> bool:
        return bool(self.client.exists(key))

    def incr(self, key: str) -> int:
        return int(self.client.incr(key))

    def expire(self, key: str, ttl_seconds: int) -> None:
        self.client.expire(key, ttl_seconds)

    def close(self) -> None:
        self.client.close()


def get_cache(request: Request) -> Cache:
    return request.app.state.cache
