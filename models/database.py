"""Database engine and session factory for FightBook."""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_url: str):
    if db_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}  # required for SQLite + threads
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise each session sees an empty DB
            kwargs["poolclass"] = StaticPool
        engine = create_engine(db_url, echo=False, **kwargs)
        # SQLite ignores ON DELETE clauses unless this is set per connection
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(db_url, echo=False)


def create_session_factory(engine):
    return sessionmaker(bind=engine, autoflush=True, expire_on_commit=False)
