"""
Database session management.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from dental_lab.core.config import settings


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine, enabling foreign keys on SQLite connections."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    db_engine = create_engine(url, **kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(db_engine, "connect")
        def _enable_sqlite_fk(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return db_engine


# Create SQLAlchemy engine
engine = build_engine(settings.DATABASE_URL, pool_pre_ping=True)

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables():
    """Create database tables."""
    from dental_lab.db.base import Base
    import dental_lab.models  # noqa: F401  registers all mappers
    Base.metadata.create_all(bind=engine)
