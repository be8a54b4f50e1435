"""SQLAlchemy engine and session factory for the dispatch database."""

from __future__ import annotations

import logging
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import settings

logger = logging.getLogger(__name__)


def build_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across sessions."""
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            return create_engine(url, echo=echo, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(url, echo=echo, connect_args=connect_args)
    return create_engine(url, echo=echo, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@lru_cache()
def get_engine() -> Engine:
    url = settings.resolved_database_url
    if url.startswith("sqlite:///") and ":memory:" not in url:
        settings.data_root.mkdir(parents=True, exist_ok=True)
    logger.info(f"Connecting to dispatch database at {url.split('@')[-1]}")
    return build_engine(url, echo=settings.database_echo)


@lru_cache()
def get_session_factory() -> sessionmaker[Session]:
    """Get cached session factory bound to the configured engine."""
    return build_session_factory(get_engine())


def init_db(engine: Engine | None = None) -> None:
    """Create all tables that do not exist yet."""
    from ..persistence.tables import Base

    Base.metadata.create_all(bind=engine or get_engine())
