"""
Database configuration for SQLAlchemy + SQLite.

SQLite backs the key-value store: saved cities, the active city, the unit
preference and the per-city weather/forecast cache all live in one table.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""
    pass


def make_engine(sqlite_path: str) -> Engine:
    """
    Create an engine for the given SQLite file and make sure tables exist.

    check_same_thread=False because FastAPI runs sync work on a thread pool.
    """
    engine = create_engine(
        f"sqlite:///{sqlite_path}",
        connect_args={"check_same_thread": False},
    )
    # Importing models registers the tables on Base.metadata.
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    """Session factory used by the key-value store."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
