"""
Database Engine & Session Management
A process-wide Database handle, opened at startup and disposed at shutdown,
with a request-scoped session dependency for FastAPI.
"""
import logging
import os
from typing import Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base, Session

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Owns the SQLAlchemy engine and session factory."""

    def __init__(self, url: str, echo: bool = False, **engine_kwargs):
        parsed = make_url(url)
        if parsed.get_backend_name() == "sqlite":
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})  # Required for SQLite
            # Ensure data directory exists for file databases
            if parsed.database and parsed.database != ":memory:":
                os.makedirs(os.path.dirname(os.path.abspath(parsed.database)), exist_ok=True)

        self.url = url
        self.engine = create_engine(url, echo=echo, **engine_kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        """Create all tables. Called once at application startup."""
        from paygate.models import payment as _payment_model          # noqa: F401
        from paygate.models import webhook_event as _event_model      # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> bool:
        """Return True when a trivial query succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.warning("Database ping failed", exc_info=True)
            return False

    def dispose(self) -> None:
        self.engine.dispose()


def open_database(url: str, echo: bool = False) -> Database:
    db = Database(url, echo=echo)
    logger.info("Database opened: %s", make_url(url).render_as_string(hide_password=True))
    return db


def get_database(request: Request) -> Optional[Database]:
    return getattr(request.app.state, "db", None)


def get_db(request: Request):
    """FastAPI dependency: yields a database session, auto-closes on finish."""
    database = get_database(request)
    if database is None:
        raise RuntimeError("Database is not open; application startup has not run")
    db: Session = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()
