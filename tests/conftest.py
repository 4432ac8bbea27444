"""Pytest configuration and fixtures."""

import os
from datetime import UTC, datetime

import pytest
import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker

from identity_store.database import make_engine
from identity_store.ddl import apply, rollback
from identity_store.services.user_store import UserStore

STRATEGIES = ["expression", "shadow_column"]


def as_utc(value: datetime) -> datetime:
    """Normalize a stored timestamp to aware UTC (SQLite returns naive UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@pytest.fixture(scope="session")
def database_url(tmp_path_factory):
    """PostgreSQL when TEST_DATABASE_URL is set, a temporary SQLite file otherwise."""
    url = os.getenv("TEST_DATABASE_URL")
    if url:
        from sqlalchemy_utils import create_database, database_exists

        if not database_exists(url):
            create_database(url)
        return url
    return f"sqlite:///{tmp_path_factory.mktemp('db') / 'identity_test.db'}"


@pytest.fixture(scope="session")
def engine(database_url):
    engine = make_engine(database_url)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def drop_users_if_present(engine):
    with engine.begin() as connection:
        if sa.inspect(connection).has_table("users"):
            rollback(connection)


@pytest.fixture(params=STRATEGIES)
def schema(request, engine):
    """Apply the users migration for one test and roll it back afterwards."""
    with engine.begin() as connection:
        apply(connection, request.param)
    yield request.param
    drop_users_if_present(engine)


@pytest.fixture
def clean_schema(engine):
    """Start without a users table and leave none behind."""
    drop_users_if_present(engine)
    yield
    drop_users_if_present(engine)


@pytest.fixture
def db(schema, session_factory):
    """Session for one test, closed before the schema is dropped."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def store(db):
    return UserStore(db)
