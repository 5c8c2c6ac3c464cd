from datetime import timedelta
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Настройки приложения; переопределяются через переменные окружения."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "LearnHub API"
    environment: str = Field("development", validation_alias="APP_ENV")
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:3000"]

    secret_key: str = Field("CHANGE_ME", validation_alias="JWT_SECRET")
    algorithm: str = Field("HS256", validation_alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = 60 * 24 * 7
    refresh_token_expire_minutes: int = 60 * 24 * 30
    password_hash_rounds: int = 12
    enforce_refresh_blacklist: bool = True

    database_url: str = "sqlite:///./learnhub.db"
    redis_url: str = "redis://localhost:6379/0"

    categories_cache_ttl_seconds: int = 3600
    courses_cache_ttl_seconds: int = 300

    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max_requests: int = 100
    login_rate_limit_window_seconds: int = 15 * 60
    login_rate_limit_max_attempts: int = 5

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def access_token_expires(self) -> timedelta:
        return timedelta(minutes=self.access_token_expire_minutes)

    @property
    def refresh_token_expires(self) -> timedelta:
        return timedelta(minutes=self.refresh_token_expire_minutes)


settings = Settings()
