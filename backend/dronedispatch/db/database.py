from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str) -> Engine:
    """Create the engine.

    SQLite gets thread sharing and enforced foreign keys. File databases also
    open every transaction with BEGIN IMMEDIATE, which makes the drone row
    lock taken by ``get_for_update`` real on a backend without FOR UPDATE.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False}}
    # In-memory databases live per connection, keep a single one
    in_memory = database_url in ("sqlite://", "sqlite:///:memory:")
    if in_memory:
        kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)

    @event.listens_for(engine, "connect")
    def _configure_connection(dbapi_connection, connection_record):
        if not in_memory:
            # Transactions are opened by the "begin" listener below
            dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    if not in_memory:
        @event.listens_for(engine, "begin")
        def _begin_immediate(conn):
            # Take the write lock on the first read, so a capacity check and
            # the commit that relies on it cannot interleave with another writer
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=True, expire_on_commit=False)


def get_db(request: Request) -> Iterator[Session]:
    # Closing without commit discards whatever a failed request left behind
    db = request.app.state.context.session_factory()
    try:
        yield db
    finally:
        db.close()
