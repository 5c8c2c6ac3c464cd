from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def _sqlite_connect_args(url: str) -> dict:
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


def create_db_engine(url: str, **kwargs) -> Engine:
    """Создаёт engine; вызывается из lifespan приложения, а не при импорте."""
    return create_engine(
        url,
        future=True,
        echo=False,
        connect_args=_sqlite_connect_args(url),
        **kwargs,
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
