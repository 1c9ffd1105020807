from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from practice_api.infra.db.models import Base
from practice_api.settings import load_settings


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    settings = load_settings()
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is required when DB_BACKEND=sql")

    engine: Engine = create_engine(settings.database_url, pool_pre_ping=True)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, class_=Session)


def get_db() -> Generator[Session, None, None]:
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
