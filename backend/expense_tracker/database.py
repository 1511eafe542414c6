"""
Database configuration using SQLAlchemy.

PostgreSQL (psycopg driver) in deployments; SQLite is accepted for local
runs and tests.
"""
from typing import Iterator
from urllib.parse import urlparse

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from expense_tracker.config import DatabaseSettings

Base = declarative_base()


def _database_url_requires_ssl(database_url: str) -> bool:
    lowered = database_url.lower()
    return (
        "ssl=true" in lowered
        or "sslmode=require" in lowered
        or "sslmode=verify-ca" in lowered
        or "sslmode=verify-full" in lowered
    )


def _is_local_host(database_url: str) -> bool:
    hostname = (urlparse(database_url).hostname or "").lower()
    return hostname in {"localhost", "127.0.0.1", "postgres", "db"}


def normalize_database_url(url: str) -> str:
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def build_engine(settings: DatabaseSettings, production: bool = False) -> Engine:
    db_url = normalize_database_url(settings.url)

    if db_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}, "echo": settings.echo}
        if ":memory:" in db_url or db_url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(db_url, **kwargs)

    if production and not _is_local_host(db_url) and not _database_url_requires_ssl(db_url):
        raise ValueError(
            "Production database url must require TLS. "
            "Use one of: '?sslmode=require', '?sslmode=verify-ca', '?sslmode=verify-full', or '?ssl=true'."
        )

    return create_engine(
        db_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=20,
        echo=settings.echo,
        connect_args={"application_name": settings.app_name},
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    # Registers the mapped tables on Base.metadata.
    from expense_tracker import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    """
    Dependency for FastAPI to get database session.
    Yields a database session and ensures it's closed after use.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
