"""Database configuration using SQLAlchemy."""

from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from .settings import settings

database_url = settings.DATABASE_URL
engine_options = {
    "echo": settings.DEBUG,
    "pool_pre_ping": True,
}

# MARS (Multiple Active Result Sets) allows multiple queries on the same connection
if settings.is_mssql:
    if "MARS_Connection" not in database_url:
        separator = "&" if "?" in database_url else "?"
        database_url = f"{database_url}{separator}MARS_Connection=Yes"
    engine_options.update(pool_size=5, max_overflow=10, pool_recycle=3600)

# Sync engine; FastAPI runs sync database work in its thread pool
engine = create_engine(database_url, **engine_options)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# Base class for models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session.

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Initialize database tables."""
    # Import all models to register them with Base
    from api import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def check_db_connection() -> bool:
    """Check if database connection is working."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
