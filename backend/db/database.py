from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from config import settings


def _is_sqlite(url: str) -> bool:
    return (url or "").strip().lower().startswith("sqlite")


def enable_sqlite_foreign_keys(target: Engine) -> None:
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""

    @event.listens_for(target, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        _ = connection_record
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite(settings.DATABASE_URL) else {},
    pool_pre_ping=not _is_sqlite(settings.DATABASE_URL),
    echo=False,
)

if _is_sqlite(settings.DATABASE_URL):
    enable_sqlite_foreign_keys(engine)


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create any missing tables."""
    # Model classes must be registered on Base.metadata before create_all.
    import db.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
