from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from core.config import settings
from services.persistence.tables import Base

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_session_maker: sessionmaker | None = None


def build_engine(url: str, echo: bool = False) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=echo, pool_pre_ping=True, connect_args=connect_args)


def get_engine() -> Engine:
    """Process-wide engine for ``settings.DATABASE_URL`` (psycopg2 driver in production)."""
    global _engine
    if _engine is None:
        _engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
        logger.info("database engine created for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def get_session_maker() -> sessionmaker:
    global _session_maker
    if _session_maker is None:
        _session_maker = sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)
    return _session_maker


def init_db(engine: Engine | None = None) -> None:
    """Create tables if they don't exist."""
    Base.metadata.create_all(bind=engine or get_engine())


def close_db() -> None:
    global _engine, _session_maker
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_maker = None


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session with rollback on error and guaranteed close."""
    session = get_session_maker()()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
