"""Database engine and session factory."""

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from groupacl.core.config import get_settings
from groupacl.db.base import Base


def make_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """Create an engine; SQLite connections may be shared across threads."""
    url = database_url or get_settings().database_url
    kwargs = {"echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False)


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    # Models must be imported so their tables are registered on Base
    import groupacl.db.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
