from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from timetabler.core.config import get_settings


def serialize_sqlite_transactions(engine: Engine) -> Engine:
    """Start every SQLite transaction with BEGIN IMMEDIATE so a writer holds the lock from its first read."""

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


settings = get_settings()

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=connect_args)
if engine.dialect.name == "sqlite":
    serialize_sqlite_transactions(engine)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
