# teamspace/database.py

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, scoped_session
from teamspace.core.settings import settings

def enable_sqlite_savepoints(engine) -> None:
    """
    pysqlite сам управляет BEGIN и ломает SAVEPOINT (begin_nested);
    транзакции начинаются явно.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# SQLite требует check_same_thread=False при работе из FastAPI
connect_args = {"check_same_thread": False} if is_sqlite else {}

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
)
if is_sqlite:
    enable_sqlite_savepoints(engine)

# Фабрика сессий (scoped_session для потокобезопасности)
SessionLocal = scoped_session(
    sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
    )
)
