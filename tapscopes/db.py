from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from tapscopes.config import settings


class Base(DeclarativeBase):
    pass


_engine = None


def _engine_options(database_url: str) -> dict:
    options: dict = {"echo": settings.db_echo}
    if database_url.startswith("sqlite"):
        # SQLite pools don't take sizing arguments.
        return options
    options.update(
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
    )
    return options


def get_engine():
    global _engine
    if _engine is None:
        _engine = create_engine(settings.database_url, **_engine_options(settings.database_url))
    return _engine


SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)


def get_db():
    """Yield a database session and close it when the caller is done.

    Example:
        db_gen = get_db()
        db = next(db_gen)
        try:
            PostQuery(db).tap(Published()).all()
        finally:
            db_gen.close()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
