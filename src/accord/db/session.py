"""Engine, session factory and schema helpers for the federation store."""

from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from accord.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for users, guilds, channels, messages and identity records."""


# Model modules register their tables on Base.metadata.
import accord.models  # noqa: E402,F401


def build_engine(url: str) -> Engine:
    """Create an engine for ``url``.

    SQLite connections are shared with the threadpool that serves the
    synchronous federation routes, so the same-thread check is disabled.
    """
    connect_args: dict[str, object] = {}
    if make_url(url).get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
    return create_engine(
        url,
        pool_pre_ping=True,
        echo=settings.sql_debug,
        connect_args=connect_args,
    )


engine = build_engine(settings.effective_database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind: Engine | None = None) -> None:
    """Create every table without going through Alembic (tests and local dev)."""
    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind: Engine | None = None) -> None:
    """Drop every table created by `create_tables`."""
    Base.metadata.drop_all(bind=bind or engine)
