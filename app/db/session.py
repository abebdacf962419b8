from typing import Any, Dict, Generator
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
import logging
import os

from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()
DATABASE_URL = settings.DATABASE_URL


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Connection pool options for the configured backend."""
    if database_url.startswith("sqlite"):
        # SQLite-specific configuration
        return {
            "connect_args": {"check_same_thread": False},
            "pool_pre_ping": True,
        }
    # PostgreSQL, MySQL, etc. configuration
    return {
        "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "10")),
        "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", "30")),
        "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", "1800")),  # 30 minutes
        "pool_pre_ping": True,
    }


# Create SQLAlchemy engine
engine = create_engine(
    DATABASE_URL,
    echo=settings.DB_ECHO,
    **_engine_options(DATABASE_URL)
)


# Enable foreign key support for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI to get a database session.

    Usage:
        @app.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            # Use db session here
            pass
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None) -> None:
    """Initialize database by creating all tables."""
    from app.db.base import Base
    import app.models  # noqa: F401  register mappers

    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating database tables: {str(e)}")
        raise


class DBSessionManager:
    """
    Context manager for database sessions.

    Usage:
        with DBSessionManager() as db:
            # Use db session here
            pass
    """

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory
        self.db = None

    def __enter__(self) -> Session:
        self.db = self.session_factory()
        return self.db

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.db:
            if exc_type:
                self.db.rollback()
            self.db.close()
