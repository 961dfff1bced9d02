from __future__ import annotations

from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import get_settings


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # local runs against a file database; requests are served from a threadpool
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


database_url = get_settings().database_url

engine = create_engine(database_url, **_engine_kwargs(database_url))

# writers flush explicitly inside a unit of work
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Iterator[Session]:
    """Request-scoped session; services commit through unit_of_work()."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
