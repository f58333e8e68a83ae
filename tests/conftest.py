import os
from datetime import UTC, datetime, timedelta

import pytest
from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tapscopes import models  # noqa: F401
from tapscopes.db import Base
from tapscopes.models.blog import Comment, Post, User

load_dotenv(os.path.join(os.getcwd(), ".env"))

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)


@pytest.fixture(scope="session")
def engine():
    database_url = os.getenv("TEST_DATABASE_URL")
    if database_url:
        engine = create_engine(database_url)
    else:
        engine = create_engine(
            "sqlite+pysqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    Base.metadata.create_all(engine)

    return engine


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(bind=connection, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def now():
    return NOW


@pytest.fixture()
def ada(db_session):
    user = User(name="Ada", email="ada@example.com")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def grace(db_session):
    user = User(name="Grace", email="grace@example.com")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def blog(db_session, ada, grace):
    """A small blog relative to NOW.

    older  - Ada, published 3 days ago; one published, one draft and one
             scheduled comment
    newer  - Grace, published yesterday; one published comment by Ada
    future - Ada, scheduled for tomorrow
    draft  - Ada, never published
    """
    older = Post(user_id=ada.id, title="Older post", published_at=NOW - timedelta(days=3))
    newer = Post(user_id=grace.id, title="Newer post", published_at=NOW - timedelta(days=1))
    future = Post(user_id=ada.id, title="Future post", published_at=NOW + timedelta(days=1))
    draft = Post(user_id=ada.id, title="Draft post", published_at=None)
    db_session.add_all([older, newer, future, draft])
    db_session.flush()

    db_session.add_all(
        [
            Comment(post_id=older.id, user_id=grace.id, body="Published", published_at=NOW - timedelta(days=2)),
            Comment(post_id=older.id, user_id=grace.id, body="Draft", published_at=None),
            Comment(post_id=older.id, user_id=ada.id, body="Scheduled", published_at=NOW + timedelta(hours=2)),
            Comment(post_id=newer.id, user_id=ada.id, body="Nice", published_at=NOW - timedelta(hours=1)),
        ]
    )
    db_session.commit()
    return {"older": older, "newer": newer, "future": future, "draft": draft}
