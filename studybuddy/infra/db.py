from __future__ import annotations

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from studybuddy.config import SETTINGS

engine = create_engine(SETTINGS.database_url, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def make_session_factory(database_url: str) -> sessionmaker:
    """Session factory bound to its own engine, with the schema in place."""
    bound = create_engine(database_url, pool_pre_ping=True)
    init_db(bound)
    return sessionmaker(bind=bound, autoflush=False, autocommit=False)


def init_db(bind: Engine | None = None) -> None:
    from . import models  # noqa: F401  registers the tables on Base.metadata

    bind = bind or engine
    Base.metadata.create_all(bind)
    with bind.connect() as connection:
        connection.execute(text("SELECT 1"))
