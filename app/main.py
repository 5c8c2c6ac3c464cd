import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from app.core.cache import Cache
from app.core.config import settings
from app.core.database import create_db_engine, make_session_factory
from app.core.errors import setup_exception_handlers
from app.core.logging import configure_logging, setup_request_logging
from app.core.rate_limit import api_rate_limit
import app.models  # noqa: F401
from app.models.base import Base
from app.routers import auth as auth_router
from app.routers import courses as courses_router
from app.routers import enrollments as enrollments_router
from app.routers import users as users_router

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def create_app(*, engine: Optional[Engine] = None, cache: Optional[Cache] = None) -> FastAPI:
    """Собирает приложение; engine и cache можно передать готовыми (тесты)."""
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        db_engine = engine or create_db_engine(settings.database_url)
        application.state.engine = db_engine
        application.state.session_factory = make_session_factory(db_engine)
        application.state.cache = cache or Cache.from_url(settings.redis_url)

        Base.metadata.create_all(bind=db_engine)
        logger.info("%s started (%s)", settings.app_name, settings.environment)
        try:
            yield
        finally:
            application.state.cache.close()
            db_engine.dispose()
            logger.info("%s stopped", settings.app_name)

    application = FastAPI(title=settings.app_name, version=API_VERSION, lifespan=lifespan)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_request_logging(application)
    setup_exception_handlers(application)

    for router in (auth_router.router, users_router.router, courses_router.router, enrollments_router.router):
        application.include_router(router, prefix=settings.api_prefix, dependencies=[Depends(api_rate_limit)])

    @application.get("/")
    def root() -> dict:
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": API_VERSION,
            "docs": "/docs",
        }

    @application.get("/health")
    def health_check() -> dict:
        return {"status": "healthy"}

    return application


app = create_app()
