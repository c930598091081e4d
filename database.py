"""Local on-device database engine and session management."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from config import settings


db_url = settings.DATABASE_URL

engine = create_engine(
    db_url,
    # Only use check_same_thread for SQLite
    **({"connect_args": {"check_same_thread": False}} if db_url.startswith("sqlite") else {}),
    echo=False,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def get_db():
    """Dependency that provides a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create all tables."""
    # Register the ORM models on the metadata before creating tables
    import models.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
