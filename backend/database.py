"""
Database engine and session factory.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from config import settings

logger = logging.getLogger("aegrid.db")


def create_database_engine(url: str, echo: bool = False):
    """
    Create the SQLAlchemy engine for `url`.

    SQLite connections are shared across FastAPI's worker threads, and the
    in-memory URL keeps a single connection so every session sees the same
    database.
    """
    kwargs = {"echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    logger.info("Creating database engine for %s", url.split("@")[-1])
    return create_engine(url, **kwargs)


engine = create_database_engine(settings.database_url, echo=settings.sql_echo)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
